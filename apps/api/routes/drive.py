"""Google OAuth + Drive export routes."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Header, HTTPException, Request
from fastapi.responses import RedirectResponse
from pydantic import BaseModel

from scribeflow.config import Settings
from scribeflow.exceptions import ConfigurationError, DriveAuthError, DriveError, PersistenceError
from scribeflow.repositories import TranscriptRepository
from scribeflow.services.drive import GoogleDriveClient

router = APIRouter(tags=["drive"])
logger = logging.getLogger("scribeflow.api.drive")


class DriveUploadRequest(BaseModel):
    record_id: str | None = None
    text: str | None = None
    filename: str | None = None
    folder_id: str | None = None


class DriveFileResponse(BaseModel):
    id: str
    name: str
    web_link: str | None = None
    parents: list[str] = []


def _get_settings(request: Request) -> Settings:
    settings: Settings | None = getattr(request.app.state, "settings", None)
    if settings is None:
        raise HTTPException(status_code=500, detail="settings not initialized")
    return settings


def _drive_client(request: Request) -> GoogleDriveClient:
    client: GoogleDriveClient | None = getattr(request.app.state, "drive_client", None)
    if client is None:
        client = GoogleDriveClient(_get_settings(request).google)
        request.app.state.drive_client = client
    return client


def _bearer(authorization: str | None) -> str:
    raw = str(authorization or "").strip()
    if raw.lower().startswith("bearer "):
        raw = raw[7:].strip()
    if not raw:
        raise HTTPException(status_code=401, detail="Access token required")
    return raw


def _drive_http_error(exc: DriveError) -> HTTPException:
    if isinstance(exc, DriveAuthError):
        return HTTPException(status_code=401, detail=exc.message)
    return HTTPException(status_code=502, detail=f"Google Drive operation failed: {exc.message}")


@router.get("/auth/google")
async def google_auth(request: Request, state: str | None = None) -> RedirectResponse:
    try:
        url = _drive_client(request).authorization_url(state=state)
    except ConfigurationError as exc:
        raise HTTPException(status_code=500, detail=str(exc)) from exc
    return RedirectResponse(url, status_code=302)


@router.get("/auth/google/callback")
async def google_callback(request: Request, code: str | None = None, error: str | None = None) -> dict:
    if error:
        raise HTTPException(status_code=400, detail=f"authorization denied: {error}")
    if not code:
        raise HTTPException(status_code=400, detail="missing authorization code")
    try:
        tokens = await _drive_client(request).exchange_code(code)
    except ConfigurationError as exc:
        raise HTTPException(status_code=500, detail=str(exc)) from exc
    except DriveError as exc:
        logger.warning("google oauth callback failed: %s", exc)
        raise _drive_http_error(exc) from exc
    return tokens.to_dict()


@router.get("/drive/folders", response_model=list[DriveFileResponse])
async def list_folders(request: Request, authorization: str | None = Header(default=None)) -> list[DriveFileResponse]:
    token = _bearer(authorization)
    try:
        folders = await _drive_client(request).list_folders(access_token=token)
    except DriveError as exc:
        raise _drive_http_error(exc) from exc
    return [
        DriveFileResponse(id=f.id, name=f.name, web_link=f.web_link, parents=list(f.parents)) for f in folders
    ]


@router.post("/drive/upload", response_model=DriveFileResponse)
async def upload_transcript(
    request: Request,
    payload: DriveUploadRequest,
    authorization: str | None = Header(default=None),
) -> DriveFileResponse:
    token = _bearer(authorization)
    text = payload.text
    filename = payload.filename
    if payload.record_id:
        pool = getattr(request.app.state, "db_pool", None)
        if pool is None:
            raise HTTPException(status_code=500, detail="db pool not initialized")
        try:
            record = await TranscriptRepository(pool).get(payload.record_id)
        except PersistenceError as exc:
            raise HTTPException(status_code=500, detail="Failed to fetch transcript") from exc
        if record is None:
            raise HTTPException(status_code=404, detail="transcript not found")
        text = record.transcript
        filename = filename or f"{record.filename}.txt"
    if text is None:
        raise HTTPException(status_code=400, detail="record_id or text is required")

    name = str(filename or "transcript.txt").strip() or "transcript.txt"
    try:
        uploaded = await _drive_client(request).upload(
            text.encode("utf-8"), name, payload.folder_id, access_token=token
        )
    except DriveError as exc:
        raise _drive_http_error(exc) from exc
    return DriveFileResponse(
        id=uploaded.id, name=uploaded.name, web_link=uploaded.web_link, parents=list(uploaded.parents)
    )
