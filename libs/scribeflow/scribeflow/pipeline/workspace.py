"""Per-run temporary workspace with guaranteed cleanup."""

from __future__ import annotations

import logging
import shutil
import tempfile
import time
from collections.abc import Awaitable, Callable
from pathlib import Path
from typing import TypeVar

from scribeflow.exceptions import CleanupError

logger = logging.getLogger(__name__)

T = TypeVar("T")

_WORKSPACE_PREFIX = "scribeflow-"


class RunWorkspace:
    """Temp directory exclusively owned by one run.

    Everything registered (plus the root directory itself) is removed when the
    `async with` block exits, whatever the exit path. Removal is best-effort:
    failures are logged and collected in `cleanup_errors`, never raised.
    """

    def __init__(self, base_dir: str | Path | None = None, *, run_id: str | None = None) -> None:
        self.base_dir = Path(base_dir) if base_dir is not None else None
        self.run_id = run_id
        self._root: Path | None = None
        self._files: list[Path] = []
        self._dirs: list[Path] = []
        self.cleanup_errors: list[CleanupError] = []

    @property
    def root(self) -> Path:
        if self._root is None:
            raise RuntimeError("workspace is not open")
        return self._root

    def open(self) -> Path:
        if self._root is not None:
            return self._root
        if self.base_dir is not None:
            self.base_dir.mkdir(parents=True, exist_ok=True)
        prefix = f"{_WORKSPACE_PREFIX}{self.run_id}-" if self.run_id else _WORKSPACE_PREFIX
        self._root = Path(tempfile.mkdtemp(prefix=prefix, dir=str(self.base_dir) if self.base_dir else None))
        logger.debug("workspace opened (run_id=%s, root=%s)", self.run_id, self._root)
        return self._root

    def register(self, path: str | Path) -> Path:
        p = Path(path)
        if p not in self._files:
            self._files.append(p)
        return p

    def file_path(self, name: str) -> Path:
        """Reserve (and register) a file path inside the workspace root."""
        safe = Path(str(name)).name or "file.bin"
        return self.register(self.root / safe)

    def subdir(self, name: str) -> Path:
        d = self.root / Path(str(name)).name
        d.mkdir(parents=True, exist_ok=True)
        if d not in self._dirs:
            self._dirs.append(d)
        return d

    def release(self, path: str | Path) -> bool:
        """Delete one file now (e.g. a segment right after its transcription attempt)."""
        p = Path(path)
        if p in self._files:
            self._files.remove(p)
        return self._remove(p)

    def _remove(self, p: Path) -> bool:
        try:
            if p.is_dir() and not p.is_symlink():
                shutil.rmtree(p)
            else:
                p.unlink(missing_ok=True)
            return True
        except OSError as exc:
            err = CleanupError(str(p), str(exc))
            self.cleanup_errors.append(err)
            logger.warning("%s", err)
            return False

    def cleanup(self) -> None:
        for p in reversed(self._files):
            self._remove(p)
        self._files.clear()
        for d in reversed(self._dirs):
            self._remove(d)
        self._dirs.clear()
        if self._root is not None:
            self._remove(self._root)
            logger.debug("workspace cleaned (run_id=%s, root=%s)", self.run_id, self._root)
            self._root = None

    async def __aenter__(self) -> "RunWorkspace":
        self.open()
        return self

    async def __aexit__(self, *args) -> None:
        self.cleanup()


async def scoped_run(
    fn: Callable[[RunWorkspace], Awaitable[T]],
    *,
    base_dir: str | Path | None = None,
    run_id: str | None = None,
) -> T:
    """Run `fn` with a fresh workspace that is removed on every exit path."""
    async with RunWorkspace(base_dir, run_id=run_id) as workspace:
        return await fn(workspace)


def sweep_stale_workspaces(
    base_dir: str | Path,
    *,
    older_than_s: float,
    dry_run: bool = False,
    now: float | None = None,
) -> list[Path]:
    """Remove workspace dirs left behind by runs that never reached cleanup (e.g. a killed process)."""
    base = Path(base_dir)
    if not base.is_dir():
        return []
    cutoff = (time.time() if now is None else float(now)) - float(older_than_s)
    removed: list[Path] = []
    for entry in sorted(base.iterdir()):
        if not entry.is_dir() or not entry.name.startswith(_WORKSPACE_PREFIX):
            continue
        try:
            mtime = entry.stat().st_mtime
        except FileNotFoundError:
            continue
        if mtime > cutoff:
            continue
        if not dry_run:
            try:
                shutil.rmtree(entry)
            except OSError as exc:
                logger.warning("%s", CleanupError(str(entry), str(exc)))
                continue
        removed.append(entry)
    if removed:
        logger.info("stale workspaces %s (count=%d, base=%s)", "found" if dry_run else "removed", len(removed), base)
    return removed
