"""PostgreSQL repository layer."""

from scribeflow.repositories.base import BaseRepository, DatabasePool
from scribeflow.repositories.transcript_repo import TranscriptRepository

__all__ = [
    "BaseRepository",
    "DatabasePool",
    "TranscriptRepository",
]
