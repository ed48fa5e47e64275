"""Media (transcoding tool) provider abstractions."""

from __future__ import annotations

from abc import ABC, abstractmethod

from scribeflow.models.audio import AudioInfo, TransformSpec


class MediaTool(ABC):
    @abstractmethod
    async def probe(self, path: str) -> AudioInfo:
        """Return duration/size of `path`; raise ProbeError when unreadable."""

    @abstractmethod
    async def transform(self, path: str, spec: TransformSpec, output_path: str) -> str:
        """Re-encode (and optionally trim) `path` into `output_path`; raise TranscodeError on failure."""

    async def close(self) -> None:  # pragma: no cover
        return None
