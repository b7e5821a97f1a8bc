"""
DeskPilot LLM Client - completion service access via litellm

Usage:
    from deskpilot.llm import CompletionClient, LiteLLMClient, LLMConfig

    config = LLMConfig(model="claude-sonnet-4-20250514")
    client = LiteLLMClient(config=config, provider_name="anthropic")
    completion = CompletionClient(client)
    text = await completion.complete(system_prompt, messages)
"""

from .base import BaseLLMClient, LLMConfig, LLMResponse, Usage
from .completion import CompletionClient
from .litellm_client import LiteLLMClient

__all__ = [
    "BaseLLMClient",
    "CompletionClient",
    "LLMConfig",
    "LLMResponse",
    "LiteLLMClient",
    "Usage",
]
