"""Async-friendly subprocess helpers.

We prefer `subprocess.run()` executed via `asyncio.to_thread()` instead of
`asyncio.create_subprocess_exec()` since some runtime environments have flaky
child watchers that can cause `.wait()`/`.communicate()` to hang.

`subprocess.run()` kills the child when `timeout_s` elapses, so a timed out
ffmpeg/ffprobe never outlives the call.
"""

from __future__ import annotations

import asyncio
import subprocess
from dataclasses import dataclass
from typing import Sequence


class SubprocessTimeout(TimeoutError):
    def __init__(self, args: Sequence[str], timeout_s: float) -> None:
        super().__init__(f"command timed out after {timeout_s:g}s: {args[0] if args else '?'}")
        self.args_list = list(args)
        self.timeout_s = timeout_s


@dataclass(frozen=True)
class RunResult:
    returncode: int
    stdout: bytes
    stderr: bytes

    @property
    def ok(self) -> bool:
        return self.returncode == 0

    def stderr_tail(self, limit: int = 2000) -> str:
        text = self.stderr.decode("utf-8", errors="ignore").strip()
        return text[-limit:] if len(text) > limit else text


async def run_subprocess(
    args: Sequence[str],
    *,
    capture_output: bool = True,
    timeout_s: float | None = None,
) -> RunResult:
    def _run() -> subprocess.CompletedProcess[bytes]:
        return subprocess.run(
            list(args),
            stdout=subprocess.PIPE if capture_output else subprocess.DEVNULL,
            stderr=subprocess.PIPE if capture_output else subprocess.DEVNULL,
            check=False,
            timeout=timeout_s,
        )

    try:
        cp = await asyncio.to_thread(_run)
    except subprocess.TimeoutExpired as exc:
        raise SubprocessTimeout(args, float(timeout_s or 0.0)) from exc
    return RunResult(
        returncode=int(cp.returncode),
        stdout=cp.stdout or b"",
        stderr=cp.stderr or b"",
    )
