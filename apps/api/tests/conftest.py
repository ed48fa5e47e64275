from __future__ import annotations

import sys
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from pathlib import Path
from uuid import uuid4

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from scribeflow.config import Settings
from scribeflow.models.audio import AudioInfo, TransformSpec
from scribeflow.models.transcript import TranscriptRecord
from scribeflow.providers.asr.base import ASRProvider
from scribeflow.providers.media.base import MediaTool
from scribeflow.services.transcription import TranscriptionService

_API_ROOT = Path(__file__).resolve().parents[1]
if str(_API_ROOT) not in sys.path:
    sys.path.insert(0, str(_API_ROOT))


class FakeMediaTool(MediaTool):
    def __init__(self, duration_s: float = 60.0) -> None:
        self.duration_s = duration_s

    async def probe(self, path: str) -> AudioInfo:
        return AudioInfo(duration_seconds=self.duration_s, size_bytes=Path(path).stat().st_size)

    async def transform(self, path: str, spec: TransformSpec, output_path: str) -> str:  # noqa: ARG002
        Path(output_path).write_bytes(b"segment")
        return output_path


class FakeProvider(ASRProvider):
    name = "fake"

    def __init__(self, text: str = "hello world") -> None:
        self.text = text
        self.closed = False

    async def transcribe(self, file_path: str, context_prompt: str | None = None) -> str:  # noqa: ARG002
        return self.text

    async def close(self) -> None:
        self.closed = True


@dataclass
class InMemoryTranscripts:
    records: list[TranscriptRecord] = field(default_factory=list)

    async def ensure_schema(self) -> None:
        return None

    async def save_record(self, filename: str, transcript: str) -> TranscriptRecord:
        record = TranscriptRecord(
            id=str(uuid4()),
            filename=filename,
            transcript=transcript,
            created_at=datetime.now(tz=timezone.utc) + timedelta(microseconds=len(self.records)),
        )
        self.records.append(record)
        return record

    async def list_recent(self, limit: int = 50) -> list[TranscriptRecord]:
        ordered = sorted(self.records, key=lambda r: r.created_at, reverse=True)
        return ordered[: int(limit)]

    async def get(self, record_id: str) -> TranscriptRecord | None:
        return next((r for r in self.records if r.id == str(record_id)), None)


@pytest.fixture()
def settings(tmp_path) -> Settings:
    return Settings(
        data_dir=str(tmp_path / "data"),
        log_dir=str(tmp_path / "logs"),
        default_provider="glm_asr",
    )


@pytest.fixture()
def transcripts() -> InMemoryTranscripts:
    return InMemoryTranscripts()


@pytest.fixture(autouse=True)
def patch_repos(monkeypatch, transcripts: InMemoryTranscripts) -> None:
    monkeypatch.setattr("routes.history.TranscriptRepository", lambda pool: transcripts)  # noqa: ARG005
    monkeypatch.setattr("routes.drive.TranscriptRepository", lambda pool: transcripts)  # noqa: ARG005


@pytest.fixture()
def app(settings: Settings, transcripts: InMemoryTranscripts) -> FastAPI:
    from routes.drive import router as drive_router
    from routes.health import router as health_router
    from routes.history import router as history_router
    from routes.transcribe import router as transcribe_router
    from services.run_registry import RunRegistry

    test_app = FastAPI()
    test_app.state.settings = settings
    test_app.state.db_pool = object()
    test_app.state.transcription_service = TranscriptionService(
        settings,
        records=transcripts,
        media_tool=FakeMediaTool(),
        provider_factory=lambda cfg: FakeProvider(),  # noqa: ARG005
    )
    test_app.state.run_registry = RunRegistry()
    test_app.include_router(transcribe_router)
    test_app.include_router(history_router)
    test_app.include_router(drive_router)
    test_app.include_router(health_router)
    return test_app


@pytest.fixture()
def client(app: FastAPI) -> TestClient:
    return TestClient(app)
