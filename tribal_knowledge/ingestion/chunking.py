"""Split transcripts into fixed-size, time-stamped chunks for retrieval."""

from __future__ import annotations

import re
from collections.abc import Iterable

from tribal_knowledge.ingestion.models import Chunk, Transcript

# Text-only uploads get artificial timestamps of a few seconds at most
_MEANINGFUL_TIMESTAMP_SECONDS = 5.0

_PARAGRAPH_BREAK = re.compile(r"\n\n+")


def has_meaningful_timestamps(transcript: Transcript) -> bool:
    """Whether chunk time ranges for this transcript are worth showing.

    Real video transcripts either carry visual descriptions or have
    segments that run past the first few seconds.
    """
    if transcript.visual_description:
        return True
    return any(
        seg.start > _MEANINGFUL_TIMESTAMP_SECONDS or seg.end > _MEANINGFUL_TIMESTAMP_SECONDS
        for seg in transcript.speech_segments
    )


def _paragraph_chunks(transcript: Transcript) -> list[Chunk]:
    """Chunk text-only content by blank-line separated paragraphs."""
    paragraphs = _PARAGRAPH_BREAK.split(transcript.text or "")
    return [
        Chunk(text=p.strip(), video_name=transcript.video_name, has_timestamps=False)
        for p in paragraphs
        if p.strip()
    ]


def chunk_transcript(transcript: Transcript, chunk_size: int = 5) -> list[Chunk]:
    """Group consecutive speech segments into runs of *chunk_size*.

    Args:
        transcript: A loaded transcript.
        chunk_size: Maximum number of segments per chunk. The final chunk
            may hold fewer.

    Returns:
        ``ceil(N / chunk_size)`` chunks for N segments, in transcript order.
        A segment with no speech contributes an empty string to the join.
    """
    if chunk_size < 1:
        raise ValueError(f"chunk_size must be >= 1, got {chunk_size}")

    segments = transcript.speech_segments
    if not segments:
        if transcript.text:
            return _paragraph_chunks(transcript)
        return []

    timestamps = has_meaningful_timestamps(transcript)
    chunks: list[Chunk] = []
    for i in range(0, len(segments), chunk_size):
        group = segments[i : i + chunk_size]
        chunks.append(
            Chunk(
                text=" ".join(seg.spoken_text for seg in group),
                video_name=transcript.video_name,
                start_time=group[0].start,
                end_time=group[-1].end,
                has_timestamps=timestamps,
            )
        )
    return chunks


def chunk_transcripts(transcripts: Iterable[Transcript], chunk_size: int = 5) -> list[Chunk]:
    """Chunk every transcript and flatten, preserving transcript order."""
    return [chunk for t in transcripts for chunk in chunk_transcript(t, chunk_size)]
