"""
DeskPilot LLM Client Base - shared request shaping for completion clients

This module provides:
- BaseLLMClient: Abstract base class for completion clients
- LLMConfig: Configuration dataclass
- LLMResponse: The text and token usage of one completion
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Dict, List, Optional


@dataclass
class LLMConfig:
    """
    Configuration for LLM clients.

    Attributes:
        api_key: API key for the provider
        model: Model name (e.g., "claude-sonnet-4-20250514", "gpt-4o")
        base_url: Optional base URL override for API
        temperature: Sampling temperature (0.0 - 2.0)
        max_tokens: Maximum tokens in response
        timeout: Request timeout in seconds (None leaves it to the provider)
        max_retries: Maximum number of provider-side retries
        track_costs: Ask the provider library for the USD cost of each call
    """
    api_key: Optional[str] = None
    model: str = "claude-sonnet-4-20250514"
    base_url: Optional[str] = None
    temperature: float = 0.7
    max_tokens: int = 4096
    timeout: Optional[int] = None
    max_retries: int = 0
    track_costs: bool = True


@dataclass
class Usage:
    """Token usage information"""
    prompt_tokens: int = 0
    completion_tokens: int = 0
    total_tokens: int = 0

    # Cost in USD (if available)
    cost: Optional[float] = None


@dataclass
class LLMResponse:
    content: str
    usage: Optional[Usage] = None
    model: Optional[str] = None


class BaseLLMClient(ABC):
    """
    Abstract base class for LLM clients.

    Subclasses implement ``_call_api``; system prompt placement, image
    attachment and sampling parameters are shared.

    Example:
        class MyClient(BaseLLMClient):
            async def _call_api(self, messages, **kwargs):
                # Provider-specific implementation
                pass
    """

    # Provider name (override in subclasses)
    provider: str = "unknown"

    # Models that reject temperature / max_tokens
    _RESTRICTED_PREFIXES = ("o1", "o3", "o4")

    def __init__(self, config: Optional[LLMConfig] = None, **kwargs):
        """
        Initialize the client.

        Args:
            config: LLMConfig instance
            **kwargs: Override config values
        """
        if config is None:
            config = LLMConfig(**kwargs)
        else:
            for key, value in kwargs.items():
                if hasattr(config, key):
                    setattr(config, key, value)

        self.config = config

    def _attach_images(
        self,
        messages: List[Dict[str, Any]],
        media: List[Dict[str, Any]]
    ) -> List[Dict[str, Any]]:
        """
        Put images on the last user message as OpenAI-style image_url parts.

        Args:
            messages: List of message dicts
            media: List of media dicts with 'type', 'data', and 'media_type'

        Returns:
            A copy of messages; the input list is left untouched
        """
        if not media:
            return messages

        messages = [msg.copy() for msg in messages]
        for i in range(len(messages) - 1, -1, -1):
            if messages[i].get("role") != "user":
                continue
            text_content = messages[i].get("content", "")
            content_parts = []
            for item in media:
                if item.get("type") != "image":
                    continue
                data = item.get("data", "")
                if data.startswith(("http://", "https://")):
                    url = data
                else:
                    url = f"data:{item.get('media_type', 'image/png')};base64,{data}"
                content_parts.append({"type": "image_url", "image_url": {"url": url}})
            if text_content:
                content_parts.append({"type": "text", "text": text_content})
            messages[i]["content"] = content_parts
            break

        return messages

    def _is_restricted_model(self, model: str) -> bool:
        """Reasoning models reject sampling parameters."""
        name = model.split("/")[-1].lower()
        return name.startswith(self._RESTRICTED_PREFIXES)

    def _model_params(self, model: str, **kwargs) -> Dict[str, Any]:
        """Sampling params for a model, honouring per-call overrides."""
        if self._is_restricted_model(model):
            return {"max_completion_tokens": kwargs.get("max_tokens", self.config.max_tokens)}
        return {
            "temperature": kwargs.get("temperature", self.config.temperature),
            "max_tokens": kwargs.get("max_tokens", self.config.max_tokens),
        }

    @abstractmethod
    async def _call_api(self, messages: List[Dict[str, Any]], **kwargs) -> LLMResponse:
        """
        Make the actual API call (provider-specific).

        Args:
            messages: List of message dicts, system message first if any
            **kwargs: Per-call overrides (model, temperature, max_tokens, media)
        """

    async def chat_completion(
        self,
        messages: List[Dict[str, Any]],
        system: Optional[str] = None,
        media: Optional[List[Dict[str, Any]]] = None,
        config: Optional[Dict[str, Any]] = None,
        **kwargs
    ) -> LLMResponse:
        """
        Send a chat completion request.

        Args:
            messages: List of message dicts with 'role' and 'content'
            system: Optional system prompt, sent as the leading system message
            media: Optional images attached to the last user message
            config: Optional per-call overrides, e.g. {"model": ..., "max_tokens": ...}

        Example:
            response = await client.chat_completion(
                [{"role": "user", "content": "Hello!"}],
                system="You are helpful.",
            )
            print(response.content)
        """
        if system:
            messages = [{"role": "system", "content": system}, *messages]

        merged_kwargs = {**kwargs}
        if config:
            merged_kwargs.update(config)
        if media:
            merged_kwargs["media"] = media

        return await self._call_api(messages, **merged_kwargs)

    async def close(self) -> None:
        """Release provider resources. Nothing is held by default."""
