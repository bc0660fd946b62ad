"""Pipeline configuration: provider enums and PipelineConfig dataclass."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from tribal_knowledge.config import Settings


class GenerationProvider(str, Enum):
    """Available backends for the generation call."""

    GEMINI = "gemini"
    CLAUDE = "claude"


class EmbeddingProvider(str, Enum):
    """Available backends for text embeddings."""

    OPENAI = "openai"
    GEMINI = "gemini"


@dataclass(frozen=True)
class PipelineConfig:
    """Immutable configuration for the retrieval and extraction pipeline.

    Defaults mirror the behaviour the prompts were tuned against: five
    segments per chunk, five chunks of grounding, Gemini generation and
    OpenAI embeddings.
    """

    generation_provider: GenerationProvider = GenerationProvider.GEMINI
    embedding_provider: EmbeddingProvider = EmbeddingProvider.OPENAI
    chunk_size: int = 5
    top_k: int = 5
    min_fallback_length: int = 20

    def __post_init__(self) -> None:
        if self.chunk_size < 1:
            raise ValueError(f"chunk_size must be >= 1, got {self.chunk_size}")
        if self.top_k < 0:
            raise ValueError(f"top_k must be >= 0, got {self.top_k}")

    @classmethod
    def from_settings(cls, settings: Settings) -> PipelineConfig:
        """Build a config from application settings, normalising provider names."""
        return cls(
            generation_provider=GenerationProvider(settings.generation_provider),
            embedding_provider=EmbeddingProvider(settings.embedding_provider),
            chunk_size=settings.chunk_size,
            top_k=settings.top_k,
            min_fallback_length=settings.min_fallback_length,
        )
