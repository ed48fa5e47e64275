from __future__ import annotations

from contextlib import asynccontextmanager
from datetime import datetime, timezone

import psycopg
import pytest

from scribeflow.exceptions import PersistenceError
from scribeflow.repositories import TranscriptRepository


class _FakeCursor:
    def __init__(self, rows: list[dict[str, object]], error: Exception | None = None):
        self._rows = rows
        self._error = error
        self.executed: list[tuple[str, tuple[object, ...] | None]] = []

    async def execute(self, sql: str, params: tuple[object, ...] | None = None) -> None:
        if self._error is not None:
            raise self._error
        self.executed.append((sql, params))

    async def fetchall(self) -> list[dict[str, object]]:
        return list(self._rows)

    async def fetchone(self) -> dict[str, object] | None:
        return self._rows[0] if self._rows else None


class _FakeConn:
    def __init__(self, cursor: _FakeCursor):
        self._cursor = cursor
        self.commits = 0

    @asynccontextmanager
    async def cursor(self, *args, **kwargs):  # noqa: ANN001
        yield self._cursor

    async def commit(self) -> None:
        self.commits += 1


class _FakePool:
    def __init__(self, rows: list[dict[str, object]] | None = None, error: Exception | None = None):
        self.cursor = _FakeCursor(rows or [], error)
        self.conn = _FakeConn(self.cursor)

    @asynccontextmanager
    async def connection(self):
        yield self.conn


_CREATED = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)


def _row(record_id: str = "7f0c9f0e-0000-4000-8000-000000000001", **kw: object) -> dict[str, object]:
    row: dict[str, object] = {
        "id": record_id,
        "filename": "talk.m4a",
        "transcript": "hello world",
        "created_at": _CREATED,
    }
    row.update(kw)
    return row


@pytest.mark.asyncio
async def test_save_record_inserts_and_commits() -> None:
    pool = _FakePool([_row()])
    repo = TranscriptRepository(pool)  # type: ignore[arg-type]

    record = await repo.save_record("talk.m4a", "hello world")

    assert record.id == "7f0c9f0e-0000-4000-8000-000000000001"
    assert record.created_at == _CREATED
    sql, params = pool.cursor.executed[0]
    assert "INSERT INTO transcriptions" in sql
    assert params is not None and params[:2] == ("talk.m4a", "hello world")
    assert pool.conn.commits == 1


@pytest.mark.asyncio
async def test_save_record_wraps_database_errors() -> None:
    pool = _FakePool(error=psycopg.OperationalError("connection refused"))
    repo = TranscriptRepository(pool)  # type: ignore[arg-type]

    with pytest.raises(PersistenceError, match="connection refused"):
        await repo.save_record("talk.m4a", "hello")


@pytest.mark.asyncio
async def test_list_recent_orders_newest_first_with_limit() -> None:
    pool = _FakePool([_row("b"), _row("a")])
    repo = TranscriptRepository(pool)  # type: ignore[arg-type]

    records = await repo.list_recent(limit=2)

    assert [r.id for r in records] == ["b", "a"]
    sql, params = pool.cursor.executed[0]
    assert "ORDER BY created_at DESC" in sql
    assert params == (2,)


@pytest.mark.asyncio
async def test_get_returns_none_for_missing_or_malformed_id() -> None:
    assert await TranscriptRepository(_FakePool([])).get("missing") is None  # type: ignore[arg-type]

    bad_uuid = _FakePool(error=psycopg.DataError("invalid input syntax for type uuid"))
    assert await TranscriptRepository(bad_uuid).get("not-a-uuid") is None  # type: ignore[arg-type]


@pytest.mark.asyncio
async def test_ensure_schema_runs_ddl() -> None:
    pool = _FakePool()
    await TranscriptRepository(pool).ensure_schema()  # type: ignore[arg-type]

    statements = [sql for sql, _ in pool.cursor.executed]
    assert any("CREATE TABLE IF NOT EXISTS transcriptions" in s for s in statements)
    assert pool.conn.commits == 1
