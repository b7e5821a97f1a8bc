"""
DeskPilot LiteLLM Client - completion client powered by litellm

One client covers every provider litellm routes to (Anthropic, OpenAI,
Azure, Gemini, Ollama); the provider name only selects the model prefix
and the API key environment variable.
"""

import logging
import os
from typing import Any, Dict, List, Optional

from .base import BaseLLMClient, LLMConfig, LLMResponse, Usage

logger = logging.getLogger(__name__)

# Provider -> default environment variable for API key
_PROVIDER_ENV_VARS: Dict[str, Optional[str]] = {
    "anthropic": "ANTHROPIC_API_KEY",
    "openai": "OPENAI_API_KEY",
    "azure": "AZURE_OPENAI_API_KEY",
    "gemini": "GOOGLE_API_KEY",
    "ollama": None,
}


def build_litellm_model_string(provider: str, model: str) -> str:
    """Map provider + model to the litellm model string.

    litellm uses prefixed model strings to route to the correct provider.
    See https://docs.litellm.ai/docs/providers
    """
    provider = provider.lower()
    if provider == "openai":
        return model
    if provider in ("anthropic", "azure", "gemini", "ollama"):
        if model.startswith(f"{provider}/"):
            return model
        return f"{provider}/{model}"
    return model


class LiteLLMClient(BaseLLMClient):
    """
    Completion client powered by litellm.

    Example:
        from deskpilot.llm import LiteLLMClient, LLMConfig

        config = LLMConfig(model="claude-sonnet-4-20250514")
        client = LiteLLMClient(config=config, provider_name="anthropic")
        response = await client.chat_completion(
            [{"role": "user", "content": "Hello!"}],
            system="Be brief.",
        )
    """

    def __init__(
        self,
        config: Optional[LLMConfig] = None,
        provider_name: str = "anthropic",
        **kwargs,
    ):
        if config is None:
            if "model" not in kwargs:
                raise ValueError("model is required")
            model = kwargs.pop("model")
            config = LLMConfig(model=model, **kwargs)

        super().__init__(config, **kwargs)

        self.provider = provider_name.lower()
        self._litellm_model = build_litellm_model_string(self.provider, self.config.model)

        # Resolve API key: explicit config > env var
        api_key = self.config.api_key
        if not api_key:
            env_var = _PROVIDER_ENV_VARS.get(self.provider)
            if env_var:
                api_key = os.environ.get(env_var)

        self._base_kwargs: Dict[str, Any] = {}
        if self.config.base_url:
            self._base_kwargs["api_base"] = self.config.base_url
        if api_key:
            self._base_kwargs["api_key"] = api_key
        if self.config.timeout:
            self._base_kwargs["timeout"] = self.config.timeout
        if self.config.max_retries:
            self._base_kwargs["num_retries"] = self.config.max_retries

        logger.info(
            f"LiteLLMClient initialized: provider={self.provider}, "
            f"litellm_model={self._litellm_model}"
        )

    async def _call_api(self, messages: List[Dict[str, Any]], **kwargs) -> LLMResponse:
        """Make a non-streaming call via litellm.acompletion."""
        import litellm

        media = kwargs.pop("media", None)
        if media and messages:
            messages = self._attach_images(messages, media)

        override = kwargs.pop("model", None)
        model = build_litellm_model_string(self.provider, override) if override else self._litellm_model
        params: Dict[str, Any] = {
            "model": model,
            "messages": messages,
            **self._model_params(override or self.config.model, **kwargs),
            **self._base_kwargs,
        }
        if "stop" in kwargs:
            params["stop"] = kwargs["stop"]

        logger.debug(f"[LiteLLM] model={model}, messages={len(messages)}, media={bool(media)}")

        response = await litellm.acompletion(**params)

        choice = response.choices[0]
        usage = None
        if getattr(response, "usage", None):
            usage = Usage(
                prompt_tokens=response.usage.prompt_tokens,
                completion_tokens=response.usage.completion_tokens,
                total_tokens=response.usage.total_tokens,
            )
            if self.config.track_costs:
                try:
                    usage.cost = litellm.completion_cost(completion_response=response)
                except Exception as e:
                    logger.debug(f"Cost lookup failed for {model}: {e}")

        return LLMResponse(
            content=choice.message.content or "",
            usage=usage,
            model=getattr(response, "model", self.config.model),
        )
