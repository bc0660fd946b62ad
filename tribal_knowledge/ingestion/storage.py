"""Supabase storage helpers for transcripts and SOP versions."""

from __future__ import annotations

import json
import logging
from typing import Any, cast

from supabase import Client, create_client

from tribal_knowledge.config import settings
from tribal_knowledge.ingestion.models import ProceduralKnowledge, Transcript

logger = logging.getLogger(__name__)

TRANSCRIPTS_TABLE = "transcripts"
SOPS_TABLE = "sops"


def get_supabase_client() -> Client:
    """Create and return a Supabase client from settings."""
    return create_client(settings.supabase_url, settings.supabase_key)


def _rows(result: Any) -> list[dict[str, Any]]:
    # Supabase .data is typed as JSON (broad union); cast to concrete type.
    return cast(list[dict[str, Any]], result.data or [])


def _transcript_from_row(row: dict[str, Any]) -> Transcript:
    data = row.get("data") or {}
    if isinstance(data, str):
        data = json.loads(data)
    return Transcript.model_validate({**data, "videoName": row["video_name"]})


def _sop_from_row(row: dict[str, Any]) -> ProceduralKnowledge:
    return ProceduralKnowledge(
        markdown=row.get("markdown") or "",
        notes=row.get("notes") or "",
        created_at=row.get("created_at"),
        task_name=row.get("task_name") or "",
    )


def load_transcripts(client: Client, task_name: str) -> list[Transcript]:
    """Load every transcript saved for *task_name*, ordered by video name."""
    result = (
        client.table(TRANSCRIPTS_TABLE)
        .select("video_name, data")
        .eq("task_name", task_name)
        .order("video_name")
        .execute()
    )
    transcripts = [_transcript_from_row(row) for row in _rows(result)]
    logger.info("Loaded %d transcripts for task %s", len(transcripts), task_name)
    return transcripts


def save_transcript(client: Client, task_name: str, video_name: str, transcript: Transcript) -> None:
    """Insert or replace the transcript of one video."""
    data = transcript.to_payload()
    data.pop("videoName", None)
    client.table(TRANSCRIPTS_TABLE).upsert(
        {"task_name": task_name, "video_name": video_name, "data": data},
        on_conflict="task_name,video_name",
    ).execute()


def list_tasks(client: Client) -> list[str]:
    """Names of every task that has at least one transcript."""
    result = client.table(TRANSCRIPTS_TABLE).select("task_name").execute()
    return sorted({row["task_name"] for row in _rows(result) if row.get("task_name")})


def save_sop(client: Client, task_name: str, markdown: str, notes: str) -> ProceduralKnowledge:
    """Store a new SOP version. Earlier versions are kept."""
    result = (
        client.table(SOPS_TABLE)
        .insert({"task_name": task_name, "markdown": markdown, "notes": notes})
        .execute()
    )
    rows = _rows(result)
    if rows:
        return _sop_from_row(rows[0])
    return ProceduralKnowledge(markdown=markdown, notes=notes, task_name=task_name)


def list_sops(client: Client, task_name: str) -> list[ProceduralKnowledge]:
    """All SOP versions for *task_name*, newest first."""
    result = (
        client.table(SOPS_TABLE)
        .select("*")
        .eq("task_name", task_name)
        .order("created_at", desc=True)
        .execute()
    )
    return [_sop_from_row(row) for row in _rows(result)]


def get_latest_sop(client: Client, task_name: str) -> ProceduralKnowledge | None:
    """The newest SOP version for *task_name*, or None."""
    result = (
        client.table(SOPS_TABLE)
        .select("*")
        .eq("task_name", task_name)
        .order("created_at", desc=True)
        .limit(1)
        .execute()
    )
    rows = _rows(result)
    return _sop_from_row(rows[0]) if rows else None
