"""
Tool Catalog Client - talks to the local execution agent over HTTP.

The bridge exposes ``GET /tools`` and ``POST /execute`` behind a bearer
token. Nothing here raises: catalog failures yield an empty catalog and
invocation failures yield a failed ToolResult, so a flaky bridge never
breaks an otherwise servable chat turn.
"""

import logging
from typing import Any, Dict, List, Optional

import httpx

from ..constants import (
    BRIDGE_TIMEOUT_ERROR,
    BRIDGE_TIMEOUT_SECONDS,
    BRIDGE_UNREACHABLE_ERROR,
)
from .models import BridgeStatus, ToolInfo, ToolResult

logger = logging.getLogger(__name__)


class BridgeClient:
    """
    HTTP client for the execution agent.

    Args:
        base_url: Bridge root URL, e.g. ``http://localhost:3000``.
        auth_token: Bearer token the bridge expects.
        timeout: Upper bound for one tool invocation, in seconds.
        http_client: Optional pre-built ``httpx.AsyncClient`` (tests inject
            one backed by ``httpx.MockTransport``).

    Example:
        bridge = BridgeClient("http://localhost:3000", auth_token="secret")
        tools = await bridge.list_tools()
        result = await bridge.invoke("battery_status", {})
    """

    def __init__(
        self,
        base_url: str,
        auth_token: str = "",
        timeout: float = BRIDGE_TIMEOUT_SECONDS,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        self._base_url = base_url.rstrip("/")
        self._auth_token = auth_token
        self._timeout = timeout
        self._client = http_client
        self._owns_client = http_client is None

    @property
    def base_url(self) -> str:
        return self._base_url

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self._timeout)
        return self._client

    def _headers(self) -> Dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self._auth_token:
            headers["Authorization"] = f"Bearer {self._auth_token}"
        return headers

    async def list_tools(self) -> List[ToolInfo]:
        """Fetch the tool catalog. Returns [] on any failure."""
        try:
            resp = await self._get_client().get(
                f"{self._base_url}/tools",
                headers=self._headers(),
                timeout=self._timeout,
            )
            resp.raise_for_status()
            data = resp.json()
        except Exception as e:
            logger.warning(f"Tool catalog fetch failed: {e}")
            return []

        tools: List[ToolInfo] = []
        for entry in data.get("tools") or []:
            try:
                tools.append(ToolInfo.from_dict(entry))
            except (KeyError, TypeError) as e:
                logger.debug(f"Skipping malformed tool entry {entry!r}: {e}")
        return tools

    async def invoke(self, tool: str, args: Optional[Dict[str, Any]] = None) -> ToolResult:
        """Execute a tool on the bridge. No retries."""
        try:
            resp = await self._get_client().post(
                f"{self._base_url}/execute",
                json={"tool": tool, "args": args or {}},
                headers=self._headers(),
                timeout=self._timeout,
            )
            data = resp.json()
        except httpx.TimeoutException:
            logger.warning(f"Tool {tool} timed out after {self._timeout}s")
            return ToolResult(success=False, error=BRIDGE_TIMEOUT_ERROR)
        except Exception as e:
            logger.warning(f"Tool {tool} failed, bridge unreachable: {e}")
            return ToolResult(success=False, error=BRIDGE_UNREACHABLE_ERROR)

        if not isinstance(data, dict):
            return ToolResult(success=False, error=BRIDGE_UNREACHABLE_ERROR)

        result = data.get("result")
        error = data.get("error")
        image = data.get("image")
        return ToolResult(
            success=bool(data.get("success")),
            result=str(result) if result is not None else None,
            error=str(error) if error is not None else None,
            image=image if isinstance(image, dict) else None,
        )

    async def health(self) -> BridgeStatus:
        """Probe ``GET /health`` on the bridge."""
        try:
            resp = await self._get_client().get(
                f"{self._base_url}/health",
                headers=self._headers(),
                timeout=self._timeout,
            )
            resp.raise_for_status()
            data = resp.json()
        except Exception as e:
            logger.info(f"Bridge health probe failed: {e}")
            return BridgeStatus(online=False, detail={"error": str(e) or type(e).__name__})
        return BridgeStatus(online=True, detail=data if isinstance(data, dict) else {})

    async def close(self) -> None:
        if self._client is not None and self._owns_client:
            await self._client.aclose()
        self._client = None
