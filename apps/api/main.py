"""ScribeFlow API"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from scribeflow.config import Settings
from scribeflow.exceptions import PersistenceError
from scribeflow.repositories import DatabasePool, TranscriptRepository
from scribeflow.services.transcription import TranscriptionService
from scribeflow.utils.logging_setup import setup_logging
from routes.drive import router as drive_router
from routes.health import router as health_router
from routes.history import router as history_router
from routes.transcribe import router as transcribe_router
from services.run_registry import RunRegistry

settings = Settings()
setup_logging(settings)
logger = logging.getLogger("scribeflow.api")


@asynccontextmanager
async def lifespan(app: FastAPI):
    app.state.settings = settings
    app.state.db_pool = await DatabasePool.get_pool(settings)
    records = TranscriptRepository(app.state.db_pool)
    try:
        await records.ensure_schema()
    except PersistenceError as exc:
        logger.warning("transcript schema not ensured: %s", exc)
    app.state.transcription_service = TranscriptionService(settings, records=records)
    app.state.run_registry = RunRegistry()
    logger.info(
        "API starting (default_provider=%s, db=%s:%s/%s)",
        settings.default_provider,
        settings.postgres_host,
        settings.postgres_port,
        settings.postgres_db,
    )
    try:
        yield
    finally:
        await DatabasePool.close()


app = FastAPI(
    title="ScribeFlow API",
    description="Chunked audio transcription API",
    version="0.1.0",
    lifespan=lifespan,
)


app.include_router(transcribe_router)
app.include_router(history_router)
app.include_router(drive_router)
app.include_router(health_router)


@app.get("/health")
async def health():
    """Health check endpoint."""
    return {"status": "ok"}
