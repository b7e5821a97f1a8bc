"""Execution agent (bridge) client."""

from .client import BridgeClient
from .models import BridgeStatus, ToolInfo, ToolResult

__all__ = ["BridgeClient", "BridgeStatus", "ToolInfo", "ToolResult"]
