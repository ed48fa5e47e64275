"""Media prober: duration + size of an input file."""

from __future__ import annotations

import logging

from scribeflow.exceptions import ProbeError
from scribeflow.models.audio import AudioInfo
from scribeflow.providers.media.base import MediaTool

logger = logging.getLogger(__name__)


class MediaProber:
    def __init__(self, media_tool: MediaTool) -> None:
        self.media_tool = media_tool

    async def probe(self, path: str) -> AudioInfo:
        info = await self.media_tool.probe(str(path))
        if info.duration_seconds < 0 or info.size_bytes < 0:
            raise ProbeError(str(path), f"invalid probe result: {info}")
        logger.info(
            "probed %s (duration_s=%.2f, size_bytes=%d)", path, info.duration_seconds, info.size_bytes
        )
        return info
