from __future__ import annotations

import json
from pathlib import Path

import pytest

from scribeflow.exceptions import ProbeError, TranscodeError
from scribeflow.models.audio import MP3_MONO_16K, WAV_PCM_MONO_16K, TransformSpec
from scribeflow.providers.media.ffmpeg import FFmpegMediaTool, parse_ffprobe_duration
from scribeflow.utils.subprocess import RunResult, SubprocessTimeout


@pytest.fixture()
def tool(tmp_path) -> FFmpegMediaTool:
    bin_dir = tmp_path / "bin"
    bin_dir.mkdir()
    (bin_dir / "ffmpeg").write_text("")
    (bin_dir / "ffprobe").write_text("")
    return FFmpegMediaTool(str(bin_dir / "ffmpeg"), str(bin_dir / "ffprobe"), probe_timeout_s=5, transcode_timeout_s=9)


@pytest.fixture()
def audio_file(tmp_path) -> Path:
    p = tmp_path / "a.mp3"
    p.write_bytes(b"x" * 1234)
    return p


def _ffprobe_json(duration: str | None, streams: list[dict]) -> bytes:
    fmt = {"duration": duration} if duration is not None else {}
    return json.dumps({"format": fmt, "streams": streams}).encode()


@pytest.mark.asyncio
async def test_probe_reads_duration_and_size(tool, audio_file, monkeypatch) -> None:
    seen: dict = {}

    async def _fake_run(args, *, capture_output=True, timeout_s=None):  # noqa: ANN001, ARG001
        seen["args"] = list(args)
        seen["timeout_s"] = timeout_s
        return RunResult(0, _ffprobe_json("12.5", [{"codec_type": "audio"}]), b"")

    monkeypatch.setattr("scribeflow.providers.media.ffmpeg.run_subprocess", _fake_run)

    info = await tool.probe(str(audio_file))

    assert info.duration_seconds == 12.5
    assert info.size_bytes == 1234
    assert seen["args"][0] == tool.ffprobe_bin
    assert seen["args"][-1] == str(audio_file)
    assert seen["timeout_s"] == 5


@pytest.mark.asyncio
async def test_probe_is_repeatable(tool, audio_file, monkeypatch) -> None:
    async def _fake_run(args, *, capture_output=True, timeout_s=None):  # noqa: ANN001, ARG001
        return RunResult(0, _ffprobe_json("3.0", [{"codec_type": "audio"}]), b"")

    monkeypatch.setattr("scribeflow.providers.media.ffmpeg.run_subprocess", _fake_run)

    assert await tool.probe(str(audio_file)) == await tool.probe(str(audio_file))


@pytest.mark.asyncio
async def test_probe_rejects_files_without_audio(tool, audio_file, monkeypatch) -> None:
    async def _fake_run(args, *, capture_output=True, timeout_s=None):  # noqa: ANN001, ARG001
        return RunResult(0, _ffprobe_json("3.0", [{"codec_type": "video"}]), b"")

    monkeypatch.setattr("scribeflow.providers.media.ffmpeg.run_subprocess", _fake_run)

    with pytest.raises(ProbeError, match="no audio tracks"):
        await tool.probe(str(audio_file))


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "result",
    [
        RunResult(1, b"", b"Invalid data found when processing input"),
        RunResult(0, b"not json", b""),
    ],
)
async def test_probe_failures_raise_probe_error(tool, audio_file, monkeypatch, result) -> None:
    async def _fake_run(args, *, capture_output=True, timeout_s=None):  # noqa: ANN001, ARG001
        return result

    monkeypatch.setattr("scribeflow.providers.media.ffmpeg.run_subprocess", _fake_run)

    with pytest.raises(ProbeError):
        await tool.probe(str(audio_file))


@pytest.mark.asyncio
async def test_probe_timeout_raises_probe_error(tool, audio_file, monkeypatch) -> None:
    async def _fake_run(args, *, capture_output=True, timeout_s=None):  # noqa: ANN001, ARG001
        raise SubprocessTimeout(args, 5)

    monkeypatch.setattr("scribeflow.providers.media.ffmpeg.run_subprocess", _fake_run)

    with pytest.raises(ProbeError, match="timed out"):
        await tool.probe(str(audio_file))


@pytest.mark.asyncio
async def test_probe_missing_file(tool, tmp_path) -> None:
    with pytest.raises(ProbeError, match="file not found"):
        await tool.probe(str(tmp_path / "missing.mp3"))


def test_parse_duration_falls_back_to_audio_stream() -> None:
    payload = {"format": {}, "streams": [{"codec_type": "audio", "duration": "7.25"}, {"codec_type": "video"}]}
    assert parse_ffprobe_duration(payload) == (7.25, 1)


def test_build_transform_args_for_segment(tool) -> None:
    spec = TransformSpec(format=MP3_MONO_16K, start_s=540.0, duration_s=540.0)

    args = tool.build_transform_args("in.m4a", spec, "out/segment_0001.mp3")

    assert args == [
        tool.ffmpeg_bin,
        "-y",
        "-hide_banner",
        "-loglevel",
        "error",
        "-ss",
        "540.000",
        "-i",
        "in.m4a",
        "-t",
        "540.000",
        "-vn",
        "-acodec",
        "libmp3lame",
        "-ar",
        "16000",
        "-ac",
        "1",
        "-b:a",
        "64k",
        "-f",
        "mp3",
        "out/segment_0001.mp3",
    ]


def test_build_transform_args_for_whole_file_pcm(tool) -> None:
    args = tool.build_transform_args("in.m4a", TransformSpec(format=WAV_PCM_MONO_16K), "out.wav")

    assert "-ss" not in args and "-t" not in args and "-b:a" not in args
    assert args[-3:] == ["-f", "wav", "out.wav"]


@pytest.mark.asyncio
async def test_transform_writes_output(tool, tmp_path, monkeypatch) -> None:
    out = tmp_path / "out" / "segment_0000.mp3"

    async def _fake_run(args, *, capture_output=True, timeout_s=None):  # noqa: ANN001, ARG001
        assert timeout_s == 9
        Path(args[-1]).write_bytes(b"mp3")
        return RunResult(0, b"", b"")

    monkeypatch.setattr("scribeflow.providers.media.ffmpeg.run_subprocess", _fake_run)

    spec = TransformSpec(format=MP3_MONO_16K, start_s=0.0, duration_s=10.0)
    assert await tool.transform("in.m4a", spec, str(out)) == str(out)
    assert out.read_bytes() == b"mp3"


@pytest.mark.asyncio
async def test_transform_failure_raises_with_stderr(tool, tmp_path, monkeypatch) -> None:
    async def _fake_run(args, *, capture_output=True, timeout_s=None):  # noqa: ANN001, ARG001
        return RunResult(1, b"", b"Conversion failed!")

    monkeypatch.setattr("scribeflow.providers.media.ffmpeg.run_subprocess", _fake_run)

    with pytest.raises(TranscodeError, match="Conversion failed!"):
        await tool.transform("in.m4a", TransformSpec(format=MP3_MONO_16K), str(tmp_path / "o.mp3"))


@pytest.mark.asyncio
async def test_transform_without_output_file_fails(tool, tmp_path, monkeypatch) -> None:
    async def _fake_run(args, *, capture_output=True, timeout_s=None):  # noqa: ANN001, ARG001
        return RunResult(0, b"", b"")

    monkeypatch.setattr("scribeflow.providers.media.ffmpeg.run_subprocess", _fake_run)

    with pytest.raises(TranscodeError, match="no output"):
        await tool.transform("in.m4a", TransformSpec(format=MP3_MONO_16K), str(tmp_path / "o.mp3"))
