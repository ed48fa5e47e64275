"""Run states and the event records streamed to callers."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Union

from scribeflow.models.transcript import TranscriptionResult


class RunState(str, Enum):
    UPLOADED = "uploaded"
    PROBED = "probed"
    DIRECT_TRANSCRIBING = "direct_transcribing"
    SEGMENTING = "segmenting"
    SEGMENT_TRANSCRIBING = "segment_transcribing"
    REASSEMBLING = "reassembling"
    COMPLETED = "completed"
    FAILED = "failed"

    @property
    def terminal(self) -> bool:
        return self in {RunState.COMPLETED, RunState.FAILED}


@dataclass(frozen=True)
class ProgressEvent:
    run_id: str
    percent: int
    message: str
    state: RunState

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": "progress",
            "run_id": self.run_id,
            "progress": self.percent,
            "message": self.message,
            "state": self.state.value,
        }


@dataclass(frozen=True)
class FinalResult:
    run_id: str
    transcript_text: str
    duration_seconds: float
    size_bytes: int
    segments: list[TranscriptionResult] | None = None
    failed_segments: int = 0
    processed_size_bytes: int | None = None
    record_id: str | None = None

    @property
    def segmented(self) -> bool:
        return self.segments is not None

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {
            "type": "result",
            "run_id": self.run_id,
            "progress": 100,
            "transcript": self.transcript_text,
            "duration_seconds": self.duration_seconds,
            "size_bytes": self.size_bytes,
            "failed_segments": self.failed_segments,
            "record_id": self.record_id,
            "message": "Transcription complete",
        }
        if self.segments is not None:
            out["segments"] = [r.to_dict() for r in self.segments]
            if self.failed_segments:
                out["message"] = (
                    f"Partially transcribed: {self.failed_segments} of {len(self.segments)} segments failed"
                )
        return out


@dataclass(frozen=True)
class ErrorEvent:
    run_id: str
    code: str
    message: str
    state: RunState
    segments_total: int = 0
    segments_failed: int = 0
    details: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": "error",
            "run_id": self.run_id,
            "error": self.message,
            "code": self.code,
            "state": self.state.value,
            "segments_total": self.segments_total,
            "segments_failed": self.segments_failed,
        }


PipelineEvent = Union[ProgressEvent, FinalResult, ErrorEvent]
