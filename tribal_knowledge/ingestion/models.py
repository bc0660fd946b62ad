"""Data models for transcripts, chunks and media attachments."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field


class AudioSegment(BaseModel):
    """A timed piece of narration from a task video."""

    model_config = ConfigDict(extra="allow")

    start: float = 0.0
    end: float = 0.0
    speech: str | None = None
    text: str | None = None  # legacy transcripts used "text" instead of "speech"

    @property
    def spoken_text(self) -> str:
        return self.speech or self.text or ""


class VisualSegment(BaseModel):
    """A timed description of what happens on screen."""

    model_config = ConfigDict(extra="allow")

    start: float = 0.0
    end: float = 0.0
    visual: str = ""


class TaskSummary(BaseModel):
    model_config = ConfigDict(extra="allow")

    time_range: str = ""
    summary: str = ""


class Transcript(BaseModel):
    """A transcribed task video, as produced by the transcription call.

    ``audio_transcript`` is the current field; ``segments`` and ``text`` are
    kept for transcripts written before it existed.
    """

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    audio_transcript: list[AudioSegment] | None = None
    visual_description: list[VisualSegment] = Field(default_factory=list)
    task_summaries: list[TaskSummary] = Field(default_factory=list)
    segments: list[AudioSegment] | None = None
    text: str | None = None
    video_name: str = Field(default="unknown", alias="videoName")

    @property
    def speech_segments(self) -> list[AudioSegment]:
        """Audio segments, falling back to the legacy ``segments`` field."""
        if self.audio_transcript is not None:
            return self.audio_transcript
        return self.segments or []

    def to_payload(self) -> dict[str, Any]:
        """Serialise for prompts using the on-disk field names."""
        return self.model_dump(by_alias=True, exclude_none=True)


@dataclass
class ProceduralKnowledge:
    """One saved SOP version for a task."""

    markdown: str
    notes: str = ""
    created_at: str | None = None
    task_name: str = ""


@dataclass
class Chunk:
    """A group of consecutive segments used as the unit of retrieval."""

    text: str
    video_name: str
    start_time: float | None = None
    end_time: float | None = None
    has_timestamps: bool = True


@dataclass
class MediaAttachment:
    """An image or video the user attached to a question."""

    kind: Literal["image", "video"]
    filename: str
    data: bytes
    mime_type: str

    @property
    def label(self) -> str:
        return f"({'Image' if self.kind == 'image' else 'Video'} attachment: {self.filename})"
