"""
Completion Client - system prompt + history in, raw model text out.

Wraps a BaseLLMClient with the three request shapes the orchestrator
needs: a normal chat turn, a vision turn describing a screenshot, and a
short free-form message draft.
"""

import logging
from typing import Any, Dict, List, Optional

from .base import BaseLLMClient

logger = logging.getLogger(__name__)

EMPTY_RESPONSE = "No response"

VISION_SYSTEM_PROMPT = (
    "You are looking at a screenshot taken on the user's computer. "
    "Describe what you see briefly and address the user's request."
)

DRAFT_SYSTEM_PROMPT = "Write a short, friendly message. Just the text, nothing else."


class CompletionClient:
    """
    Thin facade over an LLM client.

    Errors from the provider are not caught here; the orchestrator turns
    them into failed chat turns.

    Example:
        completion = CompletionClient(LiteLLMClient(model="claude-sonnet-4-20250514",
                                                    provider_name="anthropic"))
        text = await completion.complete(system_prompt, [{"role": "user", "content": "hi"}])
    """

    def __init__(self, llm_client: BaseLLMClient, model: Optional[str] = None):
        self._llm = llm_client
        self._model = model

    @property
    def llm_client(self) -> BaseLLMClient:
        return self._llm

    def _overrides(self) -> Dict[str, Any]:
        return {"model": self._model} if self._model else {}

    async def complete(self, system: str, messages: List[Dict[str, str]]) -> str:
        """Run one chat turn and return the raw generated text."""
        response = await self._llm.chat_completion(
            messages=[{"role": m["role"], "content": m["content"]} for m in messages],
            system=system,
            config=self._overrides(),
        )
        if response.usage:
            logger.debug(
                f"Completion used {response.usage.total_tokens} tokens "
                f"(cost={response.usage.cost})"
            )
        return response.content or EMPTY_RESPONSE

    async def describe_image(self, image: Dict[str, Any], user_request: str = "") -> str:
        """Ask the model to describe an image returned by a tool.

        Args:
            image: ``{"data": <base64>, "mimeType": "image/png"}`` as sent by the bridge.
            user_request: The chat message that produced the image.
        """
        if user_request:
            prompt = (
                f'The user asked: "{user_request}"\n\n'
                "Here is the screenshot I just took. Please describe what you see "
                "and address the user's request."
            )
        else:
            prompt = "Here is a screenshot I just took. Please describe what you see."

        media = [{
            "type": "image",
            "data": image.get("data", ""),
            "media_type": image.get("mimeType") or image.get("media_type") or "image/png",
        }]
        response = await self._llm.chat_completion(
            messages=[{"role": "user", "content": prompt}],
            system=VISION_SYSTEM_PROMPT,
            media=media,
            config=self._overrides(),
        )
        return response.content or EMPTY_RESPONSE

    async def draft_message(self, request: str) -> str:
        """Write a short message body for the user's request."""
        response = await self._llm.chat_completion(
            messages=[{"role": "user", "content": f'Write: "{request}"'}],
            system=DRAFT_SYSTEM_PROMPT,
            config=self._overrides(),
        )
        return (response.content or "").strip()
