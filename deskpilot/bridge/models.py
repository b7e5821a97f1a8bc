"""Data models for the execution agent (bridge) protocol."""

from dataclasses import dataclass, field
from typing import Any, Dict, Optional


@dataclass
class ToolInfo:
    """A tool advertised by the bridge's ``GET /tools``."""
    name: str
    description: str = ""
    input_schema: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "ToolInfo":
        return cls(
            name=str(d["name"]),
            description=str(d.get("description") or ""),
            input_schema=d.get("inputSchema") or d.get("input_schema") or {},
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "description": self.description,
            "inputSchema": self.input_schema,
        }


@dataclass
class ToolResult:
    """Normalized outcome of ``POST /execute``.

    ``image`` is ``{"data": <base64>, "mimeType": ...}`` when the tool
    produced one (screenshots).
    """
    success: bool
    result: Optional[str] = None
    error: Optional[str] = None
    image: Optional[Dict[str, Any]] = None

    @property
    def text(self) -> str:
        """The user-facing text: result on success, error otherwise."""
        if self.success:
            return self.result or ""
        return self.error or "Unknown error"

    def to_dict(self) -> Dict[str, Any]:
        d: Dict[str, Any] = {"success": self.success}
        if self.result is not None:
            d["result"] = self.result
        if self.error is not None:
            d["error"] = self.error
        if self.image:
            d["image"] = self.image
        return d


@dataclass
class BridgeStatus:
    """Reachability of the bridge as seen from the orchestrator."""
    online: bool
    detail: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {"online": self.online, **self.detail}
