"""Retrieval-augmented answers grounded in transcript chunks and the latest SOP."""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass, field

from tribal_knowledge.extraction.extractor import (
    DEFAULT_MIN_FALLBACK_LENGTH,
    extract_structured_response,
)
from tribal_knowledge.ingestion.chunking import chunk_transcripts
from tribal_knowledge.ingestion.embeddings import Embedder, embed_all
from tribal_knowledge.ingestion.models import Chunk, MediaAttachment, ProceduralKnowledge, Transcript
from tribal_knowledge.retrieval.generation import ContentPart, Generator, InlineData
from tribal_knowledge.retrieval.similarity import RankedChunk, rank_chunks

logger = logging.getLogger(__name__)


@dataclass
class AnswerResult:
    """Markdown answer plus the sources it was grounded on.

    ``degraded`` marks an answer taken from the model's raw prose because no
    JSON could be recovered.
    """

    markdown: str
    sources: list[str] = field(default_factory=list)
    degraded: bool = False


def format_seconds(value: float) -> str:
    """``113.0`` -> ``"113"``, ``12.5`` -> ``"12.5"``."""
    return str(int(value)) if float(value).is_integer() else str(value)


def chunk_label(index: int, chunk: Chunk) -> str:
    """Label a ranked chunk, e.g. ``Chunk 1 (from filter_change, 113s-140s)``."""
    if chunk.has_timestamps and chunk.start_time is not None and chunk.end_time is not None:
        span = f"{format_seconds(chunk.start_time)}s-{format_seconds(chunk.end_time)}s"
        return f"Chunk {index} (from {chunk.video_name}, {span})"
    return f"Chunk {index} (from {chunk.video_name})"


def format_chunks(ranked: Sequence[RankedChunk]) -> str:
    return "\n\n".join(
        f"{chunk_label(i, item.chunk)}:\n{item.chunk.text}" for i, item in enumerate(ranked, 1)
    )


def build_question_parts(
    template: str,
    question: str,
    chunks_text: str,
    media: Sequence[MediaAttachment] | None = None,
    procedural_knowledge: ProceduralKnowledge | None = None,
) -> list[ContentPart]:
    """Assemble the ordered prompt parts for a question."""
    parts: list[ContentPart] = [
        template,
        "\n\nQuestion:\n",
        question,
        "\n\nTranscript Chunks:\n",
        chunks_text,
    ]

    if media:
        logger.info("Including %d media attachments", len(media))
        parts.append("\n\n---\n\nUser has attached the following media to help with the question:\n")
        for item in media:
            parts.append(InlineData(data=item.data, mime_type=item.mime_type))
            parts.append(f"\n{item.label}\n")

    if procedural_knowledge is not None:
        logger.info("Including SOP context in prompt")
        parts.extend(
            ["\n\n---\n\nLatest Standard Operating Procedure (SOP):\n", procedural_knowledge.markdown]
        )
        if procedural_knowledge.notes:
            parts.extend(["\n\nSOP Notes:\n", procedural_knowledge.notes])

    return parts


class AnswerAssembler:
    """Answers a question over a set of transcripts.

    Args:
        embedder: Embedding gateway used for the question and every chunk.
        generator: Generation gateway for the final answer.
        template: The ``question`` instruction template.
        chunk_size: Segments per retrieval chunk.
        top_k: Default number of chunks used as grounding.
        min_fallback_length: Shortest raw response accepted as a plain-text answer.
    """

    def __init__(
        self,
        embedder: Embedder,
        generator: Generator,
        template: str,
        chunk_size: int = 5,
        top_k: int = 5,
        min_fallback_length: int = DEFAULT_MIN_FALLBACK_LENGTH,
    ) -> None:
        self.embedder = embedder
        self.generator = generator
        self.template = template
        self.chunk_size = chunk_size
        self.top_k = top_k
        self.min_fallback_length = min_fallback_length

    async def retrieve(self, question: str, transcripts: Sequence[Transcript], top_k: int) -> list[RankedChunk]:
        """Chunk, embed and rank; return the *top_k* chunks most similar to *question*."""
        chunks = chunk_transcripts(transcripts, self.chunk_size)
        if not chunks:
            logger.info("No transcript chunks; answering without grounding context")
            return []

        # Embedding APIs reject blank input; silent chunks get a zero vector,
        # which scores NaN and ranks last
        spoken = [c for c in chunks if c.text.strip()]
        if len(spoken) < len(chunks):
            logger.info("Skipping embedding for %d silent chunks", len(chunks) - len(spoken))
        vectors = await embed_all(self.embedder, [question, *(c.text for c in spoken)])
        query_vector = vectors[0]
        spoken_vectors = iter(vectors[1:])
        chunk_vectors = [
            next(spoken_vectors) if c.text.strip() else [0.0] * len(query_vector) for c in chunks
        ]
        ranked = rank_chunks(query_vector, chunks, chunk_vectors, top_k=top_k)
        logger.info("Ranked %d chunks, kept %d", len(chunks), len(ranked))
        return ranked

    async def answer(
        self,
        question: str,
        transcripts: Sequence[Transcript],
        top_k: int | None = None,
        procedural_knowledge: ProceduralKnowledge | None = None,
        media: Sequence[MediaAttachment] | None = None,
    ) -> AnswerResult:
        """Answer *question* grounded in the most relevant transcript chunks.

        Raises:
            ValueError: *top_k* is negative.
            EmbeddingFailure: An embedding call failed.
            GenerationFailure: The generation call failed.
            MissingMarkdownField: The model returned JSON without ``markdown``.
            UnparsableResponse: The response could not be used at all.
        """
        k = self.top_k if top_k is None else top_k
        if k < 0:
            raise ValueError(f"top_k must be >= 0, got {k}")
        ranked = await self.retrieve(question, transcripts, k)

        parts = build_question_parts(
            self.template, question, format_chunks(ranked), media, procedural_knowledge
        )
        raw = await self.generator.generate(parts, json_output=True)
        logger.info("Raw answer length: %d chars", len(raw))

        result = extract_structured_response(raw, self.min_fallback_length)

        sources = result.data.get("sources")
        if isinstance(sources, list):
            sources = [str(s) for s in sources]
        else:
            sources = [chunk_label(i, item.chunk) for i, item in enumerate(ranked, 1)]

        return AnswerResult(markdown=result.markdown, sources=sources, degraded=result.degraded)
