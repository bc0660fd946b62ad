"""Pydantic request/response schemas for the Tribal Knowledge API."""

from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field

from tribal_knowledge.ingestion.models import Transcript


class _CamelModel(BaseModel):
    """Accepts and emits the camelCase field names the web client uses."""

    model_config = ConfigDict(populate_by_name=True)


class RagRequest(_CamelModel):
    """Request body for /api/rag: answer over every transcript of a task."""

    task_name: str = Field(alias="taskName", min_length=1)
    question: str = Field(min_length=1)


class SopPayload(BaseModel):
    markdown: str
    notes: str = ""


class MediaPayload(_CamelModel):
    """An attachment sent inline as base64."""

    type: Literal["image", "video"]
    filename: str
    data: str = Field(alias="base64")
    mime_type: str = Field(alias="mimeType")


class AskQuestionRequest(BaseModel):
    """Request body for /api/ask-question: answer over one supplied transcript."""

    transcript: Transcript
    question: str = Field(min_length=1)
    sop: SopPayload | None = None
    media: list[MediaPayload] = []


class AnswerResponse(BaseModel):
    success: bool = True
    markdown: str
    sources: list[str]
    degraded: bool = False


class SummarizeRequest(_CamelModel):
    task_name: str = Field(alias="taskName", min_length=1)


class SopVersion(_CamelModel):
    """One stored SOP version."""

    markdown: str
    notes: str = ""
    created_at: str | None = Field(default=None, alias="createdAt")
    task_name: str = Field(alias="taskName")


class SummarizeResponse(_CamelModel):
    success: bool = True
    markdown: str
    notes: str
    created_at: str | None = Field(default=None, alias="createdAt")
    degraded: bool = False


class TranscribeResponse(_CamelModel):
    success: bool = True
    video_name: str = Field(alias="videoName")
    transcript: dict[str, Any]
