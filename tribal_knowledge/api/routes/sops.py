"""SOP endpoints: consolidate transcripts into a procedure and list versions."""

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Query
from supabase import Client

from tribal_knowledge.api.dependencies import get_consolidation_assembler, get_store
from tribal_knowledge.api.models import SopVersion, SummarizeRequest, SummarizeResponse
from tribal_knowledge.extraction.consolidation import ConsolidationAssembler
from tribal_knowledge.ingestion.storage import list_sops, load_transcripts, save_sop

router = APIRouter()


@router.post("/api/summarize", response_model=SummarizeResponse)
async def summarize(
    request: SummarizeRequest,
    assembler: Annotated[ConsolidationAssembler, Depends(get_consolidation_assembler)],
    store: Annotated[Client, Depends(get_store)],
) -> SummarizeResponse:
    """Generate a new SOP version from every transcript of a task and store it."""
    transcripts = load_transcripts(store, request.task_name)
    if not transcripts:
        raise HTTPException(status_code=404, detail="No transcripts found for this task")

    procedure = await assembler.summarize(transcripts)
    saved = save_sop(store, request.task_name, procedure.markdown, procedure.notes)
    return SummarizeResponse(
        markdown=procedure.markdown,
        notes=procedure.notes,
        created_at=saved.created_at,
        degraded=procedure.degraded,
    )


@router.get("/api/sops", response_model=list[SopVersion])
async def get_sops(
    store: Annotated[Client, Depends(get_store)],
    task_name: Annotated[str, Query(alias="taskName", min_length=1)],
) -> list[SopVersion]:
    """List SOP versions for a task, newest first."""
    return [
        SopVersion(
            markdown=sop.markdown,
            notes=sop.notes,
            created_at=sop.created_at,
            task_name=sop.task_name,
        )
        for sop in list_sops(store, task_name)
    ]
