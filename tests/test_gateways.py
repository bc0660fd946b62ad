"""Tests for the embedding and generation gateways (mocked clients, no external APIs)."""

from __future__ import annotations

import asyncio
from unittest.mock import AsyncMock, MagicMock, PropertyMock

import pytest
from anthropic import AnthropicError
from anthropic.types import TextBlock
from openai import OpenAIError

from tribal_knowledge.errors import EmbeddingFailure, GenerationFailure
from tribal_knowledge.ingestion.embeddings import GeminiEmbedder, OpenAIEmbedder, embed_all
from tribal_knowledge.retrieval.generation import (
    JSON_OUTPUT_INSTRUCTION,
    ClaudeGenerator,
    GeminiGenerator,
    InlineData,
)

# ---------------------------------------------------------------------------
# Embedding gateway
# ---------------------------------------------------------------------------


def _openai_client(vector: list[float]) -> MagicMock:
    client = MagicMock()
    client.embeddings.create = AsyncMock(return_value=MagicMock(data=[MagicMock(embedding=vector)]))
    return client


class TestOpenAIEmbedder:
    def test_embed(self) -> None:
        client = _openai_client([0.1, 0.2, 0.3])
        embedder = OpenAIEmbedder(client, model="text-embedding-3-small")

        vector = asyncio.run(embedder.embed("vacuum first"))

        assert vector == [0.1, 0.2, 0.3]
        client.embeddings.create.assert_awaited_once_with(
            input=["vacuum first"], model="text-embedding-3-small"
        )

    def test_api_error(self) -> None:
        client = MagicMock()
        client.embeddings.create = AsyncMock(side_effect=OpenAIError("rate limited"))
        with pytest.raises(EmbeddingFailure, match="rate limited"):
            asyncio.run(OpenAIEmbedder(client).embed("x"))

    def test_empty_vector(self) -> None:
        with pytest.raises(EmbeddingFailure):
            asyncio.run(OpenAIEmbedder(_openai_client([])).embed("x"))


class TestGeminiEmbedder:
    def test_embed(self) -> None:
        genai = MagicMock()
        genai.embed_content_async = AsyncMock(return_value={"embedding": [1.0, 2.0]})
        embedder = GeminiEmbedder(genai, model="text-embedding-004")

        assert asyncio.run(embedder.embed("hello")) == [1.0, 2.0]
        genai.embed_content_async.assert_awaited_once_with(
            model="models/text-embedding-004", content="hello"
        )

    def test_api_error(self) -> None:
        genai = MagicMock()
        genai.embed_content_async = AsyncMock(side_effect=RuntimeError("quota"))
        with pytest.raises(EmbeddingFailure, match="quota"):
            asyncio.run(GeminiEmbedder(genai).embed("x"))

    def test_missing_embedding(self) -> None:
        genai = MagicMock()
        genai.embed_content_async = AsyncMock(return_value={})
        with pytest.raises(EmbeddingFailure):
            asyncio.run(GeminiEmbedder(genai).embed("x"))


class _DelayedEmbedder:
    def __init__(self) -> None:
        self.cancelled: list[str] = []

    async def embed(self, text: str) -> list[float]:
        if text == "bad":
            raise EmbeddingFailure("bad input")
        try:
            await asyncio.sleep(0.05 if text == "slow" else 0)
        except asyncio.CancelledError:
            self.cancelled.append(text)
            raise
        return [float(len(text))]


class TestEmbedAll:
    def test_preserves_input_order(self) -> None:
        vectors = asyncio.run(embed_all(_DelayedEmbedder(), ["slow", "a", "abc"]))
        assert vectors == [[4.0], [1.0], [3.0]]

    def test_empty(self) -> None:
        assert asyncio.run(embed_all(_DelayedEmbedder(), [])) == []

    def test_failure_cancels_pending_calls(self) -> None:
        embedder = _DelayedEmbedder()

        async def run() -> None:
            with pytest.raises(EmbeddingFailure):
                await embed_all(embedder, ["slow", "bad"])
            await asyncio.sleep(0)
            await asyncio.sleep(0)

        asyncio.run(run())
        assert embedder.cancelled == ["slow"]


# ---------------------------------------------------------------------------
# Generation gateway
# ---------------------------------------------------------------------------


def _genai_with_response(response: MagicMock) -> tuple[MagicMock, MagicMock]:
    genai = MagicMock()
    model = MagicMock()
    model.generate_content_async = AsyncMock(return_value=response)
    genai.GenerativeModel.return_value = model
    return genai, model


class TestGeminiGenerator:
    def test_generate_json(self) -> None:
        genai, model = _genai_with_response(MagicMock(text='{"markdown": "ok"}'))
        generator = GeminiGenerator(genai, model_name="gemini-2.5-flash", timeout_seconds=30)

        text = asyncio.run(
            generator.generate(["Describe:", InlineData(data=b"img", mime_type="image/png")], json_output=True)
        )

        assert text == '{"markdown": "ok"}'
        genai.GenerativeModel.assert_called_once_with(
            "gemini-2.5-flash",
            generation_config={"max_output_tokens": 8192, "response_mime_type": "application/json"},
        )
        contents = model.generate_content_async.call_args.args[0]
        assert contents == ["Describe:", {"mime_type": "image/png", "data": b"img"}]
        assert model.generate_content_async.call_args.kwargs["request_options"] == {"timeout": 30}

    def test_plain_text_has_no_mime_type(self) -> None:
        genai, _ = _genai_with_response(MagicMock(text="hi"))
        asyncio.run(GeminiGenerator(genai).generate(["hello"]))
        config = genai.GenerativeModel.call_args.kwargs["generation_config"]
        assert "response_mime_type" not in config

    def test_api_error(self) -> None:
        genai = MagicMock()
        genai.GenerativeModel.return_value.generate_content_async = AsyncMock(
            side_effect=RuntimeError("deadline exceeded")
        )
        with pytest.raises(GenerationFailure, match="deadline exceeded"):
            asyncio.run(GeminiGenerator(genai).generate(["x"]))

    def test_blocked_response(self) -> None:
        response = MagicMock()
        type(response).text = PropertyMock(side_effect=ValueError("blocked by safety"))
        genai, _ = _genai_with_response(response)
        with pytest.raises(GenerationFailure, match="blocked"):
            asyncio.run(GeminiGenerator(genai).generate(["x"]))

    def test_empty_response(self) -> None:
        genai, _ = _genai_with_response(MagicMock(text=""))
        with pytest.raises(GenerationFailure):
            asyncio.run(GeminiGenerator(genai).generate(["x"]))


def _anthropic_client(content: list) -> MagicMock:
    client = MagicMock()
    client.messages.create = AsyncMock(return_value=MagicMock(content=content))
    return client


class TestClaudeGenerator:
    def test_generate_json(self) -> None:
        client = _anthropic_client([TextBlock(type="text", text='{"markdown": "ok"}')])
        generator = ClaudeGenerator(client, model="claude-test", max_tokens=100)

        text = asyncio.run(generator.generate(["a", "b"], json_output=True))

        assert text == '{"markdown": "ok"}'
        kwargs = client.messages.create.call_args.kwargs
        assert kwargs["model"] == "claude-test"
        assert kwargs["max_tokens"] == 100
        assert kwargs["system"] == JSON_OUTPUT_INSTRUCTION
        assert kwargs["messages"] == [{"role": "user", "content": [{"type": "text", "text": "ab"}]}]

    def test_images_become_base64_blocks(self) -> None:
        blocks = ClaudeGenerator._to_blocks(
            ["look", InlineData(data=b"png", mime_type="image/png"), "here"]
        )
        assert [b["type"] for b in blocks] == ["text", "image", "text"]
        assert blocks[1]["source"] == {"type": "base64", "media_type": "image/png", "data": "cG5n"}

    def test_video_is_skipped(self) -> None:
        blocks = ClaudeGenerator._to_blocks(["a", InlineData(data=b"v", mime_type="video/mp4"), "b"])
        assert blocks == [{"type": "text", "text": "ab"}]

    def test_no_system_prompt_without_json(self) -> None:
        client = _anthropic_client([TextBlock(type="text", text="hi")])
        asyncio.run(ClaudeGenerator(client).generate(["x"]))
        assert "system" not in client.messages.create.call_args.kwargs

    def test_api_error(self) -> None:
        client = MagicMock()
        client.messages.create = AsyncMock(side_effect=AnthropicError("overloaded"))
        with pytest.raises(GenerationFailure, match="overloaded"):
            asyncio.run(ClaudeGenerator(client).generate(["x"]))

    def test_non_text_first_block(self) -> None:
        client = _anthropic_client([MagicMock(type="tool_use")])
        with pytest.raises(GenerationFailure):
            asyncio.run(ClaudeGenerator(client).generate(["x"]))
