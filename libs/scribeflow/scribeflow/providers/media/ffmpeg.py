"""FFmpeg/ffprobe-based media tool."""

from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from typing import Any

from scribeflow.exceptions import ProbeError, TranscodeError
from scribeflow.models.audio import AudioInfo, TransformSpec
from scribeflow.providers.media.base import MediaTool
from scribeflow.utils.ffmpeg import resolve_ffmpeg_bin, resolve_ffprobe_bin
from scribeflow.utils.subprocess import SubprocessTimeout, run_subprocess

logger = logging.getLogger(__name__)


def _as_float(value: object) -> float | None:
    try:
        out = float(str(value))
    except (TypeError, ValueError):
        return None
    if out != out or out < 0:  # NaN / negative
        return None
    return out


def parse_ffprobe_duration(payload: dict[str, Any]) -> tuple[float, int]:
    """Return (duration_seconds, audio_stream_count) from `ffprobe -of json` output."""
    streams = [s for s in list(payload.get("streams") or []) if isinstance(s, dict)]
    audio_streams = [s for s in streams if str(s.get("codec_type") or "") == "audio"]

    fmt = payload.get("format") if isinstance(payload.get("format"), dict) else {}
    duration = _as_float(fmt.get("duration"))
    if duration is None:
        candidates = [_as_float(s.get("duration")) for s in audio_streams]
        known = [d for d in candidates if d is not None]
        duration = max(known) if known else None
    return (duration if duration is not None else 0.0), len(audio_streams)


class FFmpegMediaTool(MediaTool):
    def __init__(
        self,
        ffmpeg_bin: str = "ffmpeg",
        ffprobe_bin: str = "ffprobe",
        *,
        probe_timeout_s: float = 60.0,
        transcode_timeout_s: float = 600.0,
    ) -> None:
        self.ffmpeg_bin = resolve_ffmpeg_bin(ffmpeg_bin)
        self.ffprobe_bin = resolve_ffprobe_bin(ffprobe_bin, ffmpeg_bin=self.ffmpeg_bin)
        self.probe_timeout_s = float(probe_timeout_s)
        self.transcode_timeout_s = float(transcode_timeout_s)

    async def probe(self, path: str) -> AudioInfo:
        path = str(path)
        if not Path(path).is_file():
            raise ProbeError(path, "file not found")

        args = [
            self.ffprobe_bin,
            "-v",
            "error",
            "-print_format",
            "json",
            "-show_format",
            "-show_streams",
            path,
        ]
        try:
            result = await run_subprocess(args, timeout_s=self.probe_timeout_s)
        except SubprocessTimeout as exc:
            raise ProbeError(path, str(exc)) from exc
        except FileNotFoundError as exc:
            raise ProbeError(
                path,
                f"ffprobe binary not found: {self.ffprobe_bin}. "
                "Install ffmpeg and ensure it is in PATH (or set MEDIA_FFPROBE_BIN).",
            ) from exc

        if not result.ok:
            raise ProbeError(path, f"ffprobe exited with code {result.returncode}: {result.stderr_tail()}")

        try:
            payload = json.loads(result.stdout.decode("utf-8", errors="replace") or "{}")
        except json.JSONDecodeError as exc:
            raise ProbeError(path, f"unparseable ffprobe output: {exc}") from exc
        if not isinstance(payload, dict):
            raise ProbeError(path, "unexpected ffprobe output")

        duration, audio_tracks = parse_ffprobe_duration(payload)
        if audio_tracks == 0:
            raise ProbeError(path, "no audio tracks")

        info = AudioInfo(duration_seconds=float(duration), size_bytes=int(os.stat(path).st_size))
        logger.debug("probed %s (duration_s=%.3f, size_bytes=%d)", path, info.duration_seconds, info.size_bytes)
        return info

    def build_transform_args(self, path: str, spec: TransformSpec, output_path: str) -> list[str]:
        fmt = spec.format
        args = [self.ffmpeg_bin, "-y", "-hide_banner", "-loglevel", "error"]
        if spec.start_s is not None and spec.start_s > 0:
            args += ["-ss", f"{float(spec.start_s):.3f}"]
        args += ["-i", str(path)]
        if spec.duration_s is not None:
            args += ["-t", f"{float(spec.duration_s):.3f}"]
        args += ["-vn", "-acodec", fmt.codec]
        if fmt.sample_rate:
            args += ["-ar", str(int(fmt.sample_rate))]
        if fmt.channels:
            args += ["-ac", str(int(fmt.channels))]
        if fmt.bitrate:
            args += ["-b:a", str(fmt.bitrate)]
        args += ["-f", fmt.container, str(output_path)]
        return args

    async def transform(self, path: str, spec: TransformSpec, output_path: str) -> str:
        output_path = str(output_path)
        Path(output_path).parent.mkdir(parents=True, exist_ok=True)

        if spec.duration_s is not None and spec.duration_s <= 0:
            raise TranscodeError("duration must be positive", output_path=output_path)

        args = self.build_transform_args(path, spec, output_path)
        try:
            result = await run_subprocess(args, timeout_s=self.transcode_timeout_s)
        except SubprocessTimeout as exc:
            raise TranscodeError(str(exc), output_path=output_path) from exc
        except FileNotFoundError as exc:
            raise TranscodeError(
                f"ffmpeg binary not found: {self.ffmpeg_bin}. "
                "Install ffmpeg and ensure it is in PATH (or install `imageio-ffmpeg` in the env, "
                "or set MEDIA_FFMPEG_BIN).",
                output_path=output_path,
            ) from exc

        if not result.ok:
            raise TranscodeError(
                "ffmpeg failed "
                f"(code={result.returncode}).\n"
                f"cmd: {' '.join(args)}\n"
                f"stderr: {result.stderr_tail()}",
                output_path=output_path,
            )
        if not Path(output_path).is_file():
            raise TranscodeError(f"ffmpeg produced no output: {output_path}", output_path=output_path)
        return output_path
