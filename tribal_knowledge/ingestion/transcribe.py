"""Transcribe a task video into a structured Transcript via the generation model."""

from __future__ import annotations

import logging

from pydantic import ValidationError

from tribal_knowledge.errors import UnparsableResponse
from tribal_knowledge.extraction.extractor import extract_json_object
from tribal_knowledge.ingestion.models import Transcript
from tribal_knowledge.retrieval.generation import Generator, InlineData

logger = logging.getLogger(__name__)


async def transcribe_video(
    generator: Generator,
    template: str,
    video: bytes,
    mime_type: str = "video/mp4",
    video_name: str = "unknown",
) -> Transcript:
    """Send the video and the ``transcribe`` template; parse the JSON transcript.

    Raises:
        GenerationFailure: The generation call failed.
        ExtractionError: No usable JSON object could be recovered, or the
            object does not look like a transcript.
    """
    logger.info("Transcribing %s (%d bytes, %s)", video_name, len(video), mime_type)
    raw = await generator.generate([InlineData(data=video, mime_type=mime_type), template], json_output=True)

    result = extract_json_object(raw)
    try:
        transcript = Transcript.model_validate({**result.data, "videoName": video_name})
    except ValidationError as exc:
        raise UnparsableResponse(f"Response is not a transcript: {exc}", raw_text=raw) from exc

    logger.info(
        "Transcribed %s: %d audio segments, %d visual segments",
        video_name,
        len(transcript.speech_segments),
        len(transcript.visual_description),
    )
    return transcript
