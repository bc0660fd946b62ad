"""Question endpoints: retrieve grounding chunks and generate answers."""

from __future__ import annotations

import base64
import binascii
import logging
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException
from supabase import Client

from tribal_knowledge.api.dependencies import get_answer_assembler, get_store
from tribal_knowledge.api.models import AnswerResponse, AskQuestionRequest, MediaPayload, RagRequest
from tribal_knowledge.ingestion.models import MediaAttachment, ProceduralKnowledge
from tribal_knowledge.ingestion.storage import get_latest_sop, load_transcripts
from tribal_knowledge.retrieval.answer import AnswerAssembler

logger = logging.getLogger(__name__)

router = APIRouter()


def _decode_media(items: list[MediaPayload]) -> list[MediaAttachment]:
    attachments: list[MediaAttachment] = []
    for item in items:
        try:
            data = base64.b64decode(item.data, validate=True)
        except (binascii.Error, ValueError) as exc:
            raise HTTPException(
                status_code=400, detail=f"Attachment {item.filename} is not valid base64"
            ) from exc
        attachments.append(
            MediaAttachment(kind=item.type, filename=item.filename, data=data, mime_type=item.mime_type)
        )
    return attachments


@router.post("/api/rag", response_model=AnswerResponse)
async def rag(
    request: RagRequest,
    assembler: Annotated[AnswerAssembler, Depends(get_answer_assembler)],
    store: Annotated[Client, Depends(get_store)],
) -> AnswerResponse:
    """Answer a question over every transcript of a task, grounded in its latest SOP."""
    transcripts = load_transcripts(store, request.task_name)
    if not transcripts:
        raise HTTPException(status_code=404, detail="No transcripts found for this task")

    latest_sop = get_latest_sop(store, request.task_name)
    logger.info("Latest SOP loaded for %s: %s", request.task_name, "yes" if latest_sop else "no")

    result = await assembler.answer(request.question, transcripts, procedural_knowledge=latest_sop)
    return AnswerResponse(markdown=result.markdown, sources=result.sources, degraded=result.degraded)


@router.post("/api/ask-question", response_model=AnswerResponse)
async def ask_question(
    request: AskQuestionRequest,
    assembler: Annotated[AnswerAssembler, Depends(get_answer_assembler)],
) -> AnswerResponse:
    """Answer a question over a single supplied transcript, SOP and attachments."""
    sop = (
        ProceduralKnowledge(markdown=request.sop.markdown, notes=request.sop.notes)
        if request.sop
        else None
    )
    result = await assembler.answer(
        request.question,
        [request.transcript],
        procedural_knowledge=sop,
        media=_decode_media(request.media),
    )
    return AnswerResponse(markdown=result.markdown, sources=result.sources, degraded=result.degraded)
