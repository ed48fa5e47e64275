"""FFmpeg / ffprobe binary resolution helpers.

Prefer system binaries, fallback to the `imageio-ffmpeg` bundled ffmpeg.
`imageio-ffmpeg` ships no ffprobe, so ffprobe is looked up next to the
resolved ffmpeg before giving up.
"""

from __future__ import annotations

import logging
import shutil
from pathlib import Path

logger = logging.getLogger(__name__)


def resolve_ffmpeg_bin(ffmpeg_bin: str = "ffmpeg") -> str:
    ffmpeg_bin = (ffmpeg_bin or "ffmpeg").strip()

    if Path(ffmpeg_bin).exists():
        return ffmpeg_bin

    found = shutil.which(ffmpeg_bin)
    if found:
        return found

    try:
        import imageio_ffmpeg

        return str(imageio_ffmpeg.get_ffmpeg_exe())
    except Exception as exc:
        logger.warning("failed to resolve bundled ffmpeg (%s); fallback to %r", exc, ffmpeg_bin)
        return ffmpeg_bin


def resolve_ffprobe_bin(ffprobe_bin: str = "ffprobe", *, ffmpeg_bin: str | None = None) -> str:
    ffprobe_bin = (ffprobe_bin or "ffprobe").strip()

    if Path(ffprobe_bin).exists():
        return ffprobe_bin

    found = shutil.which(ffprobe_bin)
    if found:
        return found

    if ffmpeg_bin:
        ffmpeg_path = Path(ffmpeg_bin)
        sibling = ffmpeg_path.with_name(ffmpeg_path.name.replace("ffmpeg", "ffprobe"))
        if sibling != ffmpeg_path and sibling.exists():
            return str(sibling)

    logger.warning("ffprobe not found; fallback to %r", ffprobe_bin)
    return ffprobe_bin
