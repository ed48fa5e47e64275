"""Audio source / probe / segment models."""

from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass, field, replace
from typing import Any


@dataclass(frozen=True)
class AudioSource:
    """An uploaded file owned by a single pipeline run."""

    path: str
    original_name: str
    size_bytes: int
    mime_hint: str | None = None


@dataclass(frozen=True)
class AudioInfo:
    duration_seconds: float
    size_bytes: int

    def to_dict(self) -> dict[str, Any]:
        return {"duration_seconds": self.duration_seconds, "size_bytes": self.size_bytes}


@dataclass(frozen=True)
class AudioFormat:
    """Output encoding for transcoded audio (compression / segment files)."""

    codec: str
    container: str
    extension: str
    mime_type: str
    sample_rate: int | None = 16000
    channels: int | None = 1
    bitrate: str | None = None

    def with_overrides(
        self,
        *,
        sample_rate: int | None = None,
        channels: int | None = None,
        bitrate: str | None = None,
    ) -> "AudioFormat":
        return replace(
            self,
            sample_rate=sample_rate if sample_rate is not None else self.sample_rate,
            channels=channels if channels is not None else self.channels,
            bitrate=bitrate if bitrate is not None else self.bitrate,
        )


MP3_MONO_16K = AudioFormat(
    codec="libmp3lame",
    container="mp3",
    extension="mp3",
    mime_type="audio/mpeg",
    sample_rate=16000,
    channels=1,
    bitrate="64k",
)

WAV_PCM_MONO_16K = AudioFormat(
    codec="pcm_s16le",
    container="wav",
    extension="wav",
    mime_type="audio/wav",
    sample_rate=16000,
    channels=1,
)


@dataclass(frozen=True)
class TransformSpec:
    """A single transcoder invocation: optional time range plus output format."""

    format: AudioFormat
    start_s: float | None = None
    duration_s: float | None = None


@dataclass(frozen=True)
class Segment:
    index: int
    start_seconds: float
    end_seconds: float

    @property
    def duration_seconds(self) -> float:
        return self.end_seconds - self.start_seconds

    def to_dict(self) -> dict[str, Any]:
        return {
            "index": self.index,
            "start_seconds": self.start_seconds,
            "end_seconds": self.end_seconds,
        }


@dataclass(frozen=True)
class SegmentPlan:
    duration_seconds: float
    chunk_duration_seconds: float
    segments: tuple[Segment, ...] = field(default_factory=tuple)

    def __len__(self) -> int:
        return len(self.segments)

    def __iter__(self) -> Iterator[Segment]:
        return iter(self.segments)

    def __getitem__(self, index: int) -> Segment:
        return self.segments[index]


@dataclass(frozen=True)
class SegmentFile:
    segment: Segment
    path: str

    @property
    def index(self) -> int:
        return self.segment.index
