"""Embedding gateway: turn text into vectors via an external embedding model."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Sequence
from typing import Any, Protocol

from openai import AsyncOpenAI, OpenAIError

from tribal_knowledge.errors import EmbeddingFailure

logger = logging.getLogger(__name__)

GEMINI_EMBEDDING_MODEL = "models/text-embedding-004"


class Embedder(Protocol):
    """Anything that can embed a single string."""

    async def embed(self, text: str) -> list[float]: ...


class OpenAIEmbedder:
    """Embeds text with the OpenAI embeddings API.

    Args:
        client: A configured ``AsyncOpenAI`` client, shared for the process.
        model: OpenAI embedding model name.
    """

    def __init__(self, client: AsyncOpenAI, model: str = "text-embedding-3-small") -> None:
        self.client = client
        self.model = model

    async def embed(self, text: str) -> list[float]:
        try:
            response = await self.client.embeddings.create(input=[text], model=self.model)
        except OpenAIError as exc:
            raise EmbeddingFailure(f"OpenAI embedding call failed: {exc}") from exc
        if not response.data or not response.data[0].embedding:
            raise EmbeddingFailure(f"OpenAI returned no embedding for model {self.model}")
        return list(response.data[0].embedding)


class GeminiEmbedder:
    """Embeds text with a Gemini embedding model.

    Args:
        genai: The ``google.generativeai`` module, already configured with
            an API key.
        model: Gemini embedding model name.
    """

    def __init__(self, genai: Any, model: str = GEMINI_EMBEDDING_MODEL) -> None:
        self.genai = genai
        self.model = model if model.startswith("models/") else f"models/{model}"

    async def embed(self, text: str) -> list[float]:
        try:
            result = await self.genai.embed_content_async(model=self.model, content=text)
        except Exception as exc:
            raise EmbeddingFailure(f"Gemini embedding call failed: {exc}") from exc
        values = result.get("embedding") if isinstance(result, dict) else None
        if not values:
            raise EmbeddingFailure(f"Gemini returned no embedding for model {self.model}")
        return list(values)


async def embed_all(embedder: Embedder, texts: Sequence[str]) -> list[list[float]]:
    """Embed *texts* concurrently, returning vectors in input order.

    The first failure propagates and the remaining in-flight calls are
    cancelled.
    """
    if not texts:
        return []
    logger.debug("Embedding %d texts", len(texts))
    tasks = [asyncio.ensure_future(embedder.embed(t)) for t in texts]
    try:
        return list(await asyncio.gather(*tasks))
    except BaseException:
        for task in tasks:
            task.cancel()
        raise
