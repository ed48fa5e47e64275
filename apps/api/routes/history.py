"""Transcript history routes."""

from __future__ import annotations

from datetime import datetime

from fastapi import APIRouter, HTTPException, Query, Request
from pydantic import BaseModel

from scribeflow.config import Settings
from scribeflow.exceptions import PersistenceError
from scribeflow.models.transcript import TranscriptRecord
from scribeflow.repositories import TranscriptRepository

router = APIRouter(prefix="/history", tags=["history"])


class HistoryItem(BaseModel):
    id: str
    filename: str
    transcript_preview: str
    transcript: str
    created_at: datetime


class TranscriptResponse(BaseModel):
    id: str
    filename: str
    transcript: str
    created_at: datetime


def _get_settings(request: Request) -> Settings:
    settings: Settings | None = getattr(request.app.state, "settings", None)
    if settings is None:
        raise HTTPException(status_code=500, detail="settings not initialized")
    return settings


def _repo(request: Request) -> TranscriptRepository:
    pool = getattr(request.app.state, "db_pool", None)
    if pool is None:
        raise HTTPException(status_code=500, detail="db pool not initialized")
    return TranscriptRepository(pool)


def _to_item(record: TranscriptRecord, preview_chars: int) -> HistoryItem:
    return HistoryItem(
        id=record.id,
        filename=record.filename,
        transcript_preview=record.preview(preview_chars),
        transcript=record.transcript,
        created_at=record.created_at,
    )


@router.get("", response_model=list[HistoryItem])
async def list_history(
    request: Request, limit: int | None = Query(default=None, ge=1, le=500)
) -> list[HistoryItem]:
    settings = _get_settings(request)
    try:
        records = await _repo(request).list_recent(limit or settings.history_limit)
    except PersistenceError as exc:
        raise HTTPException(status_code=500, detail="Failed to fetch history") from exc
    return [_to_item(r, settings.history_preview_chars) for r in records]


@router.get("/{record_id}", response_model=TranscriptResponse)
async def get_transcript(request: Request, record_id: str) -> TranscriptResponse:
    try:
        record = await _repo(request).get(record_id)
    except PersistenceError as exc:
        raise HTTPException(status_code=500, detail="Failed to fetch transcript") from exc
    if record is None:
        raise HTTPException(status_code=404, detail="transcript not found")
    return TranscriptResponse(**record.to_dict())
