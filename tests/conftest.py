"""Shared fixtures: a scripted LLM client and an in-process fake bridge."""

import json
from typing import Any, Callable, Dict, List, Optional, Union

import httpx
import pytest

from deskpilot.bridge.client import BridgeClient
from deskpilot.llm.base import BaseLLMClient, LLMConfig, LLMResponse
from deskpilot.llm.completion import CompletionClient
from deskpilot.orchestrator.models import OrchestratorConfig
from deskpilot.orchestrator.orchestrator import SessionOrchestrator
from deskpilot.orchestrator.pool import SessionPool
from deskpilot.streaming.hub import FanOutHub
from deskpilot.triggers.service import Scheduler
from deskpilot.triggers.store import TriggerStore


class ScriptedLLMClient(BaseLLMClient):
    """Returns queued replies in order; an Exception in the queue is raised."""

    provider = "scripted"

    def __init__(self, replies: Optional[List[Union[str, Exception]]] = None):
        super().__init__(LLMConfig(model="scripted-model"))
        self.replies: List[Union[str, Exception]] = list(replies or [])
        self.calls: List[Dict[str, Any]] = []

    def queue(self, *replies: Union[str, Exception]) -> None:
        self.replies.extend(replies)

    async def _call_api(self, messages, **kwargs) -> LLMResponse:
        self.calls.append({"messages": messages, **kwargs})
        reply = self.replies.pop(0) if self.replies else "ok"
        if isinstance(reply, Exception):
            raise reply
        return LLMResponse(content=reply, model=self.config.model)


ToolHandler = Callable[[Dict[str, Any]], Dict[str, Any]]


class FakeBridge:
    """In-process stand-in for the execution agent's HTTP API."""

    def __init__(self):
        self.tools: Dict[str, Dict[str, Any]] = {}
        self.handlers: Dict[str, ToolHandler] = {}
        self.executed: List[Dict[str, Any]] = []
        self.online = True

    def add_tool(self, name: str, description: str = "", result: Any = "ok",
                 handler: Optional[ToolHandler] = None, input_schema: Optional[dict] = None) -> None:
        self.tools[name] = {"name": name, "description": description or name,
                            "inputSchema": input_schema or {"type": "object", "properties": {}}}
        self.handlers[name] = handler or (lambda args, _r=result: {"success": True, "result": _r})

    def handle(self, request: httpx.Request) -> httpx.Response:
        if not self.online:
            raise httpx.ConnectError("bridge down", request=request)
        path = request.url.path
        if path == "/tools":
            return httpx.Response(200, json={"tools": list(self.tools.values())})
        if path == "/health":
            return httpx.Response(200, json={"status": "ok", "tools": len(self.tools)})
        if path == "/execute":
            body = json.loads(request.content)
            self.executed.append(body)
            handler = self.handlers.get(body["tool"])
            if handler is None:
                return httpx.Response(404, json={"success": False, "error": f"Unknown tool: {body['tool']}"})
            return httpx.Response(200, json=handler(body.get("args") or {}))
        return httpx.Response(404, json={"error": "Not found"})

    def client(self) -> BridgeClient:
        return BridgeClient(
            "http://bridge.test",
            auth_token="bridge-token",
            http_client=httpx.AsyncClient(transport=httpx.MockTransport(self.handle)),
        )

    def executed_tools(self) -> List[str]:
        return [call["tool"] for call in self.executed]


@pytest.fixture
def llm():
    return ScriptedLLMClient()


@pytest.fixture
def bridge():
    fake = FakeBridge()
    fake.add_tool("battery_status", "Battery level", result="Battery: 87%, charging")
    fake.add_tool("notify", "Show a notification", result="Notification shown")
    fake.add_tool("music_play", "Play music", result="Playing")
    fake.add_tool("search_contacts", "Find a contact",
                  result="John Appleseed: (555) 123-4567")
    fake.add_tool("send_imessage", "Send an iMessage", result="Message sent")
    fake.add_tool("screenshot", "Take a screenshot",
                  handler=lambda args: {"success": True, "result": "Screenshot taken",
                                        "image": {"data": "aGVsbG8=", "mimeType": "image/png"}})
    return fake


@pytest.fixture
def scheduler():
    return Scheduler(TriggerStore(store_path=None))


@pytest.fixture
def orchestrator(llm, bridge, scheduler):
    return SessionOrchestrator(
        completion=CompletionClient(llm),
        bridge=bridge.client(),
        scheduler=scheduler,
        pool=SessionPool(),
        hub=FanOutHub(),
        config=OrchestratorConfig(),
    )
