"""Consolidate every transcript of a task into one SOP (markdown + notes)."""

from __future__ import annotations

import json
import logging
import time
from collections.abc import Sequence

from tribal_knowledge.extraction.extractor import (
    DEFAULT_MIN_FALLBACK_LENGTH,
    extract_structured_response,
)
from tribal_knowledge.extraction.models import ConsolidatedProcedure
from tribal_knowledge.ingestion.models import Transcript
from tribal_knowledge.retrieval.generation import ContentPart, Generator

logger = logging.getLogger(__name__)


def build_summarize_parts(template: str, transcripts: Sequence[Transcript]) -> list[ContentPart]:
    """Template followed by all transcripts as one JSON payload."""
    payload = json.dumps([t.to_payload() for t in transcripts], indent=2)
    logger.info("Transcripts JSON size: %d chars", len(payload))
    return [template, "\n\nTranscripts:\n", payload]


class ConsolidationAssembler:
    """Synthesises a procedure from whole transcripts; no chunking or ranking."""

    def __init__(
        self,
        generator: Generator,
        template: str,
        min_fallback_length: int = DEFAULT_MIN_FALLBACK_LENGTH,
    ) -> None:
        self.generator = generator
        self.template = template
        self.min_fallback_length = min_fallback_length

    async def summarize(self, transcripts: Sequence[Transcript]) -> ConsolidatedProcedure:
        """Generate an SOP from *transcripts*.

        Raises:
            ValueError: *transcripts* is empty.
            GenerationFailure: The generation call failed.
            MissingMarkdownField: The model returned JSON without ``markdown``.
            UnparsableResponse: The response could not be used at all.
        """
        if not transcripts:
            raise ValueError("No transcripts to summarize")

        logger.info("Starting SOP generation from %d transcripts", len(transcripts))
        for idx, t in enumerate(transcripts, 1):
            logger.info(
                "Transcript %d: %s - %d audio segments, %d visual segments",
                idx,
                t.video_name,
                len(t.speech_segments),
                len(t.visual_description),
            )

        parts = build_summarize_parts(self.template, transcripts)
        started = time.perf_counter()
        raw = await self.generator.generate(parts, json_output=True)
        logger.info(
            "SOP response received in %.0fms (%d chars)",
            (time.perf_counter() - started) * 1000,
            len(raw),
        )

        result = extract_structured_response(raw, self.min_fallback_length)
        notes = result.data.get("notes")
        return ConsolidatedProcedure(
            markdown=result.markdown,
            notes=notes if isinstance(notes, str) else "",
            degraded=result.degraded,
        )
