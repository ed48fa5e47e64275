"""Media transcoding provider implementations."""

from scribeflow.providers.media.base import MediaTool
from scribeflow.providers.media.ffmpeg import FFmpegMediaTool

__all__ = ["FFmpegMediaTool", "MediaTool"]
