"""Progress checkpoints and a monotonic progress tracker."""

from __future__ import annotations

from scribeflow.models.events import ProgressEvent, RunState

UPLOAD_RECEIVED = 10
PROBED = 20
COMPRESSED = 40
SEGMENTING = 50
SEGMENTED = 60
DIRECT_TRANSCRIBING = 70
SEGMENTS_START = 60
SEGMENTS_END = 90
FINALIZING = 95
COMPLETE = 100


def segment_progress(done: int, total: int) -> int:
    """Percentage after `done` of `total` segments have been processed."""
    if total <= 0:
        return SEGMENTS_END
    span = SEGMENTS_END - SEGMENTS_START
    return SEGMENTS_START + int(span * min(done, total) / total)


class ProgressTracker:
    """Clamps percentages to [0, 100] and never lets them go backwards."""

    def __init__(self, run_id: str) -> None:
        self.run_id = run_id
        self.last_percent = 0

    def event(self, percent: int, message: str, state: RunState) -> ProgressEvent:
        pct = max(0, min(100, int(percent)))
        if pct < self.last_percent:
            pct = self.last_percent
        self.last_percent = pct
        msg = str(message or "").strip() or "running"
        return ProgressEvent(run_id=self.run_id, percent=pct, message=msg, state=state)
