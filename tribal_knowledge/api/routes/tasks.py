"""Task endpoints: list tasks and transcribe task videos."""

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends, File, Form, HTTPException, UploadFile
from supabase import Client

from tribal_knowledge.api.dependencies import get_generator, get_store, get_templates
from tribal_knowledge.api.models import TranscribeResponse
from tribal_knowledge.ingestion.storage import list_tasks, save_transcript
from tribal_knowledge.ingestion.transcribe import transcribe_video
from tribal_knowledge.prompts import PromptTemplates
from tribal_knowledge.retrieval.generation import Generator

router = APIRouter()

# Inline video requests to Gemini are capped at roughly 20 MB
MAX_VIDEO_BYTES = 20 * 1024 * 1024


@router.get("/api/tasks", response_model=list[str])
async def get_tasks(store: Annotated[Client, Depends(get_store)]) -> list[str]:
    """Names of all tasks with at least one transcript."""
    return list_tasks(store)


@router.post("/api/transcribe-video", response_model=TranscribeResponse)
async def transcribe(
    file: Annotated[UploadFile, File(...)],
    task_name: Annotated[str, Form(alias="taskName", min_length=1)],
    generator: Annotated[Generator, Depends(get_generator)],
    templates: Annotated[PromptTemplates, Depends(get_templates)],
    store: Annotated[Client, Depends(get_store)],
    video_name: Annotated[str, Form(alias="videoName")] = "",
) -> TranscribeResponse:
    """Transcribe an uploaded task video and store the transcript under the task."""
    raw = await file.read()
    if len(raw) > MAX_VIDEO_BYTES:
        raise HTTPException(
            status_code=413,
            detail=f"File too large. Maximum size is {MAX_VIDEO_BYTES // (1024 * 1024)} MB.",
        )

    content_type = (file.content_type or "").lower()
    if not content_type.startswith("video/"):
        raise HTTPException(status_code=400, detail="Upload must be a video file")

    filename = file.filename or "video"
    name = video_name or (filename.rsplit(".", 1)[0] if "." in filename else filename)

    transcript = await transcribe_video(
        generator, templates.transcribe, raw, mime_type=content_type, video_name=name
    )
    save_transcript(store, task_name, name, transcript)
    return TranscribeResponse(video_name=name, transcript=transcript.to_payload())
