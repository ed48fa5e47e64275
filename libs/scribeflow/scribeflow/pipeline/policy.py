"""Per-run transcription policy (ceilings, chunking, compression, retries)."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError, model_validator

from scribeflow.config import Settings
from scribeflow.exceptions import InvalidPolicyError
from scribeflow.models.audio import AudioFormat, AudioInfo, Segment


def format_timestamp(seconds: float) -> str:
    total = max(0, int(round(float(seconds))))
    hours, rem = divmod(total, 3600)
    minutes, secs = divmod(rem, 60)
    if hours:
        return f"{hours}:{minutes:02d}:{secs:02d}"
    return f"{minutes:02d}:{secs:02d}"


class TranscriptionPolicy(BaseModel):
    """Resolved policy for one run.

    Built from `ChunkingConfig`, narrowed by the active provider's limits and
    finally by per-request overrides. Every construction path validates, so an
    instance is always internally consistent.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    size_ceiling_bytes: int = Field(ge=1)
    duration_ceiling_s: float = Field(gt=0)
    chunk_duration_s: float = Field(gt=0)

    compression_enabled: bool = True
    compression_threshold_bytes: int = Field(ge=0)
    compression_bitrate: str | None = None
    sample_rate: int | None = Field(default=None, ge=8000)
    channels: int | None = Field(default=None, ge=1)

    separator: str = " "
    context_tail_chars: int = Field(default=1000, ge=0)
    placeholder_template: str = "[segment {number} ({start}-{end}) could not be transcribed: {error}]"
    initial_prompt: str | None = None

    retry_attempts: int = Field(default=1, ge=1)
    retry_wait_min_s: float = Field(default=0.0, ge=0)
    retry_wait_max_s: float = Field(default=0.0, ge=0)
    provider_timeout_s: float = Field(default=300.0, gt=0)

    @model_validator(mode="after")
    def _validate_consistency(self) -> "TranscriptionPolicy":
        if self.retry_wait_max_s < self.retry_wait_min_s:
            raise ValueError("retry_wait_max_s must be >= retry_wait_min_s")
        if self.chunk_duration_s > self.duration_ceiling_s:
            raise ValueError("chunk_duration_s must be <= duration_ceiling_s")
        try:
            self.placeholder_template.format(number=1, index=0, start="00:00", end="00:01", error="x")
        except (KeyError, IndexError, ValueError) as exc:
            raise ValueError(f"invalid placeholder_template: {exc}") from exc
        return self

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        provider_config: Mapping[str, Any] | None = None,
        overrides: Mapping[str, Any] | None = None,
    ) -> "TranscriptionPolicy":
        base = settings.chunking.model_dump()
        if provider_config:
            max_bytes = provider_config.get("max_file_bytes")
            if max_bytes:
                base["size_ceiling_bytes"] = min(int(base["size_ceiling_bytes"]), int(max_bytes))
            max_duration = provider_config.get("max_duration_s")
            if max_duration:
                base["duration_ceiling_s"] = min(float(base["duration_ceiling_s"]), float(max_duration))
        base["chunk_duration_s"] = min(float(base["chunk_duration_s"]), float(base["duration_ceiling_s"]))
        return cls._build({**base, **dict(overrides or {})})

    def with_overrides(self, overrides: Mapping[str, Any] | None) -> "TranscriptionPolicy":
        if not overrides:
            return self
        return self._build({**self.model_dump(), **dict(overrides)})

    @classmethod
    def _build(cls, values: dict[str, Any]) -> "TranscriptionPolicy":
        try:
            return cls.model_validate(values)
        except ValidationError as exc:
            problems = "; ".join(
                f"{'.'.join(str(p) for p in err.get('loc') or ()) or 'policy'}: {err.get('msg')}"
                for err in exc.errors()
            )
            raise InvalidPolicyError(f"invalid transcription policy: {problems}") from exc

    def fits_direct(self, info: AudioInfo) -> bool:
        """Inclusive ceilings: a file exactly at both limits is sent as-is."""
        return (
            int(info.size_bytes) <= int(self.size_ceiling_bytes)
            and float(info.duration_seconds) <= float(self.duration_ceiling_s)
        )

    def needs_compression(self, info: AudioInfo) -> bool:
        return bool(self.compression_enabled) and int(info.size_bytes) > int(self.compression_threshold_bytes)

    def segment_format(self, base: AudioFormat) -> AudioFormat:
        # PCM formats carry no bitrate; only lossy codecs take the compression bitrate.
        bitrate = self.compression_bitrate if base.bitrate is not None else None
        return base.with_overrides(sample_rate=self.sample_rate, channels=self.channels, bitrate=bitrate)

    def compression_format(self, base: AudioFormat) -> AudioFormat:
        return self.segment_format(base)

    def placeholder(self, segment: Segment, error: str) -> str:
        return self.placeholder_template.format(
            number=segment.index + 1,
            index=segment.index,
            start=format_timestamp(segment.start_seconds),
            end=format_timestamp(segment.end_seconds),
            error=str(error or "unknown error").strip(),
        )
