"""Transcription API routes (multipart upload in, server-sent events out)."""

from __future__ import annotations

import json
import logging
import os
from collections.abc import AsyncIterator
from typing import Any
from uuid import uuid4

from fastapi import APIRouter, File, Form, HTTPException, Request, UploadFile
from fastapi.responses import StreamingResponse
from pydantic import BaseModel
from starlette.types import Receive, Scope, Send

from scribeflow.config import Settings
from scribeflow.exceptions import ConfigurationError
from scribeflow.services.transcription import TranscriptionService, sanitize_filename
from services.run_registry import RunRegistry

router = APIRouter(tags=["transcribe"])
logger = logging.getLogger("scribeflow.api.transcribe")


class CancelResponse(BaseModel):
    run_id: str
    cancelled: bool


class RunEventStream(StreamingResponse):
    """SSE response that releases its run id once sending ends, even if the body never started."""

    def __init__(self, content: AsyncIterator[str], *, registry: RunRegistry, run_id: str, **kwargs: Any) -> None:
        super().__init__(content, **kwargs)
        self.registry = registry
        self.run_id = run_id

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        try:
            await super().__call__(scope, receive, send)
        finally:
            self.registry.finish(self.run_id)


def _get_settings(request: Request) -> Settings:
    settings: Settings | None = getattr(request.app.state, "settings", None)
    if settings is None:
        raise HTTPException(status_code=500, detail="settings not initialized")
    return settings


def _get_service(request: Request) -> TranscriptionService:
    service: TranscriptionService | None = getattr(request.app.state, "transcription_service", None)
    if service is None:
        raise HTTPException(status_code=500, detail="transcription service not initialized")
    return service


def _get_registry(request: Request) -> RunRegistry:
    registry: RunRegistry | None = getattr(request.app.state, "run_registry", None)
    if registry is None:
        raise HTTPException(status_code=500, detail="run registry not initialized")
    return registry


def _file_size(upload: UploadFile) -> int:
    f = upload.file
    try:
        current = f.tell()
        f.seek(0, os.SEEK_END)
        size = int(f.tell())
        f.seek(current, os.SEEK_SET)
        return max(0, size)
    except (OSError, ValueError):
        return int(getattr(upload, "size", 0) or 0)


def _sse(data: Any) -> str:
    return f"data: {json.dumps(data, ensure_ascii=False)}\n\n"


@router.post("/transcribe")
async def transcribe(
    request: Request,
    file: UploadFile = File(...),
    provider: str | None = Form(default=None),
    model: str | None = Form(default=None),
    chunk_duration_s: float | None = Form(default=None),
    prompt: str | None = Form(default=None),
) -> StreamingResponse:
    settings = _get_settings(request)
    service = _get_service(request)
    registry = _get_registry(request)

    safe_name = sanitize_filename(file.filename)
    size = _file_size(file)
    if size <= 0:
        raise HTTPException(status_code=400, detail="No file uploaded")
    if size > int(settings.upload_max_bytes):
        raise HTTPException(status_code=413, detail="file too large")

    overrides: dict[str, Any] = {}
    if chunk_duration_s is not None:
        overrides["chunk_duration_s"] = chunk_duration_s
    if prompt:
        overrides["initial_prompt"] = prompt
    try:
        service.resolve(provider, overrides, model=model)
    except ConfigurationError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc

    # The form file may be closed once this handler returns, before the stream is consumed.
    data = await file.read()
    await file.close()

    run_id = uuid4().hex
    cancel_event = registry.start(run_id)

    async def _stream() -> AsyncIterator[str]:
        async for event in service.submit_audio(
            data,
            safe_name,
            provider,
            overrides,
            model=model,
            run_id=run_id,
            cancel_event=cancel_event,
        ):
            yield _sse(event.to_dict())
        yield _sse("[DONE]")

    logger.info("transcribe request accepted (run_id=%s, filename=%s, size_bytes=%d)", run_id, safe_name, size)
    return RunEventStream(
        _stream(),
        registry=registry,
        run_id=run_id,
        media_type="text/event-stream",
        headers={"Cache-Control": "no-cache", "X-Accel-Buffering": "no", "X-Run-Id": run_id},
    )


@router.post("/transcribe/{run_id}/cancel", response_model=CancelResponse)
async def cancel_transcription(request: Request, run_id: str) -> CancelResponse:
    registry = _get_registry(request)
    if not registry.cancel(run_id):
        raise HTTPException(status_code=404, detail="run not found")
    logger.info("cancel requested (run_id=%s)", run_id)
    return CancelResponse(run_id=run_id, cancelled=True)
