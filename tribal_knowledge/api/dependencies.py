"""FastAPI dependency providers.

API clients are built once per process and injected into the assemblers.
Tests replace any of these through ``app.dependency_overrides``.
"""

from __future__ import annotations

from functools import lru_cache
from typing import Annotated, Any

from anthropic import AsyncAnthropic
from fastapi import Depends, HTTPException
from openai import AsyncOpenAI
from supabase import Client

from tribal_knowledge.config import settings
from tribal_knowledge.extraction.consolidation import ConsolidationAssembler
from tribal_knowledge.ingestion.embeddings import Embedder, GeminiEmbedder, OpenAIEmbedder
from tribal_knowledge.ingestion.storage import get_supabase_client
from tribal_knowledge.pipeline_config import EmbeddingProvider, GenerationProvider, PipelineConfig
from tribal_knowledge.prompts import PromptTemplates, load_templates
from tribal_knowledge.retrieval.answer import AnswerAssembler
from tribal_knowledge.retrieval.generation import ClaudeGenerator, GeminiGenerator, Generator


@lru_cache(maxsize=1)
def get_pipeline_config() -> PipelineConfig:
    return PipelineConfig.from_settings(settings)


@lru_cache(maxsize=1)
def get_templates() -> PromptTemplates:
    return load_templates(settings.prompts_dir or None)


def _configured_genai() -> Any:
    """Return ``google.generativeai`` configured with the Gemini key, or 501."""
    if not settings.gemini_api_key:
        raise HTTPException(
            status_code=501,
            detail="Gemini is not available: GEMINI_API_KEY is not configured.",
        )
    import google.generativeai as genai

    genai.configure(api_key=settings.gemini_api_key)  # type: ignore[attr-defined]
    return genai


@lru_cache(maxsize=1)
def get_generator() -> Generator:
    """Generation gateway for the configured provider."""
    provider = get_pipeline_config().generation_provider
    if provider is GenerationProvider.CLAUDE:
        if not settings.anthropic_api_key:
            raise HTTPException(
                status_code=501,
                detail="Claude is not available: ANTHROPIC_API_KEY is not configured.",
            )
        client = AsyncAnthropic(
            api_key=settings.anthropic_api_key,
            timeout=settings.generation_timeout_seconds,
        )
        return ClaudeGenerator(client, model=settings.claude_model, max_tokens=settings.max_output_tokens)
    return GeminiGenerator(
        _configured_genai(),
        model_name=settings.gemini_model,
        timeout_seconds=settings.generation_timeout_seconds,
        max_output_tokens=settings.max_output_tokens,
    )


@lru_cache(maxsize=1)
def get_embedder() -> Embedder:
    """Embedding gateway for the configured provider."""
    provider = get_pipeline_config().embedding_provider
    if provider is EmbeddingProvider.GEMINI:
        return GeminiEmbedder(_configured_genai(), model=settings.gemini_embedding_model)
    if not settings.openai_api_key:
        raise HTTPException(
            status_code=501,
            detail="Embeddings are not available: OPENAI_API_KEY is not configured.",
        )
    return OpenAIEmbedder(AsyncOpenAI(api_key=settings.openai_api_key), model=settings.embedding_model)


def get_store() -> Client:
    return get_supabase_client()


def get_answer_assembler(
    embedder: Annotated[Embedder, Depends(get_embedder)],
    generator: Annotated[Generator, Depends(get_generator)],
    templates: Annotated[PromptTemplates, Depends(get_templates)],
    config: Annotated[PipelineConfig, Depends(get_pipeline_config)],
) -> AnswerAssembler:
    return AnswerAssembler(
        embedder,
        generator,
        templates.question,
        chunk_size=config.chunk_size,
        top_k=config.top_k,
        min_fallback_length=config.min_fallback_length,
    )


def get_consolidation_assembler(
    generator: Annotated[Generator, Depends(get_generator)],
    templates: Annotated[PromptTemplates, Depends(get_templates)],
    config: Annotated[PipelineConfig, Depends(get_pipeline_config)],
) -> ConsolidationAssembler:
    return ConsolidationAssembler(
        generator, templates.summarize, min_fallback_length=config.min_fallback_length
    )
