"""Pydantic request models for the DeskPilot API."""

from typing import Any, Dict

from pydantic import BaseModel, Field


class ChatRequest(BaseModel):
    message: str


class ExecuteRequest(BaseModel):
    tool: str = ""
    args: Dict[str, Any] = Field(default_factory=dict)


class NotifyRequest(BaseModel):
    title: str = "Notification"
    message: str
