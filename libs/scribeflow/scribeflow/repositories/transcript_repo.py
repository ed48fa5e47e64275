from __future__ import annotations

import logging
from datetime import datetime, timezone

import psycopg
from psycopg_pool import AsyncConnectionPool

from scribeflow.exceptions import PersistenceError
from scribeflow.models.transcript import TranscriptRecord
from scribeflow.repositories.base import BaseRepository

logger = logging.getLogger(__name__)

_SCHEMA = (
    """
    CREATE TABLE IF NOT EXISTS transcriptions (
      id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
      filename TEXT NOT NULL,
      transcript TEXT NOT NULL,
      created_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
    )
    """,
    "CREATE INDEX IF NOT EXISTS idx_transcriptions_created_at ON transcriptions (created_at DESC)",
)

_COLUMNS = "id, filename, transcript, created_at"


def _utcnow() -> datetime:
    return datetime.now(tz=timezone.utc)


class TranscriptRepository(BaseRepository):
    """Append-only transcript records, listed newest first."""

    def __init__(self, pool: AsyncConnectionPool) -> None:
        super().__init__(pool)

    @staticmethod
    def _from_row(row: dict[str, object]) -> TranscriptRecord:
        raw_created_at = row.get("created_at")
        created_at = raw_created_at if isinstance(raw_created_at, datetime) else _utcnow()
        return TranscriptRecord(
            id=str(row["id"]),
            filename=str(row.get("filename") or ""),
            transcript=str(row.get("transcript") or ""),
            created_at=created_at,
        )

    async def ensure_schema(self) -> None:
        async with self.cursor("create transcriptions schema", commit=True) as cur:
            for stmt in _SCHEMA:
                await cur.execute(stmt)

    async def save_record(self, filename: str, transcript: str) -> TranscriptRecord:
        async with self.cursor(f"save transcript for {filename!r}", commit=True) as cur:
            await cur.execute(
                f"""
                INSERT INTO transcriptions (filename, transcript, created_at)
                VALUES (%s, %s, %s)
                RETURNING {_COLUMNS}
                """,
                (str(filename), str(transcript), _utcnow()),
            )
            row = await cur.fetchone()
        if row is None:
            raise PersistenceError(f"failed to save transcript for {filename!r}: no row returned")
        record = self._from_row(row)
        logger.info("transcript saved (id=%s, filename=%s, chars=%d)", record.id, filename, len(transcript))
        return record

    async def list_recent(self, limit: int = 50) -> list[TranscriptRecord]:
        async with self.cursor("list transcripts") as cur:
            await cur.execute(
                f"SELECT {_COLUMNS} FROM transcriptions ORDER BY created_at DESC LIMIT %s",
                (max(1, int(limit)),),
            )
            rows = await cur.fetchall()
        return [self._from_row(r) for r in rows]

    async def get(self, record_id: str) -> TranscriptRecord | None:
        try:
            async with self.cursor(f"load transcript {record_id}") as cur:
                await cur.execute(f"SELECT {_COLUMNS} FROM transcriptions WHERE id = %s", (str(record_id),))
                row = await cur.fetchone()
        except PersistenceError as exc:
            if isinstance(exc.__cause__, psycopg.DataError):
                # Not a UUID.
                return None
            raise
        if row is None:
            return None
        return self._from_row(row)
