from __future__ import annotations

import os

import pytest

from scribeflow.pipeline.workspace import RunWorkspace, scoped_run, sweep_stale_workspaces


@pytest.mark.asyncio
async def test_workspace_removes_everything_on_exit(tmp_path) -> None:
    async with RunWorkspace(tmp_path, run_id="r1") as ws:
        root = ws.root
        assert root.name.startswith("scribeflow-r1-")
        ws.file_path("upload_talk.m4a").write_bytes(b"audio")
        seg_dir = ws.subdir("segments")
        (seg_dir / "segment_0000.mp3").write_bytes(b"seg")

    assert not root.exists()
    assert list(tmp_path.iterdir()) == []
    assert ws.cleanup_errors == []


@pytest.mark.asyncio
async def test_scoped_run_cleans_up_when_fn_raises(tmp_path) -> None:
    seen = {}

    async def _boom(ws: RunWorkspace) -> None:
        seen["root"] = ws.root
        ws.file_path("compressed.mp3").write_bytes(b"x")
        raise ValueError("boom")

    with pytest.raises(ValueError, match="boom"):
        await scoped_run(_boom, base_dir=tmp_path)

    assert not seen["root"].exists()


@pytest.mark.asyncio
async def test_scoped_run_returns_result(tmp_path) -> None:
    async def _fn(ws: RunWorkspace) -> str:
        return ws.root.name

    name = await scoped_run(_fn, base_dir=tmp_path, run_id="abc")

    assert name.startswith("scribeflow-abc-")


def test_file_path_stays_inside_root(tmp_path) -> None:
    ws = RunWorkspace(tmp_path)
    ws.open()
    try:
        assert ws.file_path("../../etc/passwd") == ws.root / "passwd"
    finally:
        ws.cleanup()


def test_root_requires_open() -> None:
    with pytest.raises(RuntimeError):
        _ = RunWorkspace().root


def test_release_deletes_file_immediately(tmp_path) -> None:
    ws = RunWorkspace(tmp_path)
    ws.open()
    p = ws.file_path("segment_0001.mp3")
    p.write_bytes(b"seg")

    assert ws.release(p) is True
    assert not p.exists()
    assert ws.release(p) is True
    ws.cleanup()


def test_cleanup_failures_are_collected_not_raised(tmp_path, monkeypatch) -> None:
    ws = RunWorkspace(tmp_path)
    root = ws.open()

    def _fail(path, *args, **kwargs):  # noqa: ANN001, ARG001
        raise PermissionError("read-only filesystem")

    monkeypatch.setattr("scribeflow.pipeline.workspace.shutil.rmtree", _fail)
    ws.cleanup()

    assert len(ws.cleanup_errors) == 1
    assert ws.cleanup_errors[0].path == str(root)
    assert "read-only filesystem" in ws.cleanup_errors[0].message


def test_sweep_stale_workspaces(tmp_path) -> None:
    now = 1_000_000.0
    old = tmp_path / "scribeflow-old"
    fresh = tmp_path / "scribeflow-fresh"
    unrelated = tmp_path / "keep-me"
    for d in (old, fresh, unrelated):
        d.mkdir()
        (d / "f.bin").write_bytes(b"x")
    os.utime(old, (now - 7200, now - 7200))
    os.utime(fresh, (now - 60, now - 60))
    os.utime(unrelated, (now - 7200, now - 7200))

    assert sweep_stale_workspaces(tmp_path, older_than_s=3600, dry_run=True, now=now) == [old]
    assert old.exists()

    assert sweep_stale_workspaces(tmp_path, older_than_s=3600, now=now) == [old]
    assert not old.exists()
    assert fresh.exists()
    assert unrelated.exists()


def test_sweep_missing_base_dir(tmp_path) -> None:
    assert sweep_stale_workspaces(tmp_path / "nope", older_than_s=0) == []
