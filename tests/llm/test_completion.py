"""Tests for deskpilot.llm.completion — CompletionClient request shapes"""

import pytest

from deskpilot.llm.completion import (
    DRAFT_SYSTEM_PROMPT,
    EMPTY_RESPONSE,
    VISION_SYSTEM_PROMPT,
    CompletionClient,
)


class TestComplete:

    @pytest.mark.asyncio
    async def test_returns_raw_text(self, llm):
        llm.queue("```action\n{}\n```")
        text = await CompletionClient(llm).complete("system", [{"role": "user", "content": "hi"}])
        assert text == "```action\n{}\n```"
        assert llm.calls[0]["messages"][0] == {"role": "system", "content": "system"}

    @pytest.mark.asyncio
    async def test_empty_reply(self, llm):
        llm.queue("")
        assert await CompletionClient(llm).complete("s", [{"role": "user", "content": "hi"}]) == EMPTY_RESPONSE

    @pytest.mark.asyncio
    async def test_errors_propagate(self, llm):
        llm.queue(RuntimeError("boom"))
        with pytest.raises(RuntimeError):
            await CompletionClient(llm).complete("s", [{"role": "user", "content": "hi"}])

    @pytest.mark.asyncio
    async def test_model_override(self, llm):
        await CompletionClient(llm, model="other-model").complete("s", [{"role": "user", "content": "hi"}])
        assert llm.calls[0]["model"] == "other-model"


class TestDescribeImage:

    @pytest.mark.asyncio
    async def test_image_request_shape(self, llm):
        llm.queue("A desktop.")
        text = await CompletionClient(llm).describe_image(
            {"data": "aGVsbG8=", "mimeType": "image/jpeg"}, "what's open"
        )
        assert text == "A desktop."
        call = llm.calls[0]
        assert call["messages"][0] == {"role": "system", "content": VISION_SYSTEM_PROMPT}
        assert 'The user asked: "what\'s open"' in call["messages"][1]["content"]
        assert call["media"] == [{"type": "image", "data": "aGVsbG8=", "media_type": "image/jpeg"}]

    @pytest.mark.asyncio
    async def test_without_request(self, llm):
        await CompletionClient(llm).describe_image({"data": "x"})
        call = llm.calls[0]
        assert call["messages"][1]["content"].startswith("Here is a screenshot")
        assert call["media"][0]["media_type"] == "image/png"


class TestDraftMessage:

    @pytest.mark.asyncio
    async def test_draft_is_stripped(self, llm):
        llm.queue("  Happy birthday!  \n")
        assert await CompletionClient(llm).draft_message("write a birthday text") == "Happy birthday!"
        assert llm.calls[0]["messages"][0]["content"] == DRAFT_SYSTEM_PROMPT
