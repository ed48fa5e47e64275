"""In-process registry of active runs and their cancellation signals."""

from __future__ import annotations

import asyncio


class RunRegistry:
    def __init__(self) -> None:
        self._runs: dict[str, asyncio.Event] = {}

    def start(self, run_id: str) -> asyncio.Event:
        if run_id in self._runs:
            raise ValueError(f"run already registered: {run_id}")
        event = asyncio.Event()
        self._runs[run_id] = event
        return event

    def cancel(self, run_id: str) -> bool:
        event = self._runs.get(run_id)
        if event is None:
            return False
        event.set()
        return True

    def finish(self, run_id: str) -> None:
        self._runs.pop(run_id, None)

    def active(self) -> list[str]:
        return sorted(self._runs)
