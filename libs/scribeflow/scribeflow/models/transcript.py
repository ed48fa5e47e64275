"""Transcription result models."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any


@dataclass(frozen=True)
class TranscriptionResult:
    segment_index: int
    text: str
    error: str | None = None
    start_seconds: float | None = None
    end_seconds: float | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def to_dict(self) -> dict[str, Any]:
        return {
            "segment_index": self.segment_index,
            "text": self.text,
            "error": self.error,
            "start_seconds": self.start_seconds,
            "end_seconds": self.end_seconds,
        }


@dataclass(frozen=True)
class FullTranscript:
    text: str
    results: tuple[TranscriptionResult, ...]

    @property
    def failed_count(self) -> int:
        return sum(1 for r in self.results if not r.ok)

    @classmethod
    def join(cls, results: list[TranscriptionResult], separator: str) -> "FullTranscript":
        """Join results in the order given (callers pass them in segment order)."""
        parts = [r.text.strip() for r in results]
        return cls(text=separator.join(p for p in parts if p), results=tuple(results))


@dataclass(frozen=True)
class TranscriptRecord:
    id: str
    filename: str
    transcript: str
    created_at: datetime

    def preview(self, max_chars: int) -> str:
        text = self.transcript or ""
        if len(text) <= max_chars:
            return text
        return text[:max_chars] + "..."

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "filename": self.filename,
            "transcript": self.transcript,
            "created_at": self.created_at.isoformat(),
        }
