"""Transcription pipeline.

Keep imports lazy so `scribeflow.pipeline.policy` can be used without pulling in
the provider stack.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from scribeflow.pipeline.orchestrator import TranscriptionOrchestrator
    from scribeflow.pipeline.policy import TranscriptionPolicy
    from scribeflow.pipeline.workspace import RunWorkspace, scoped_run

__all__ = ["RunWorkspace", "TranscriptionOrchestrator", "TranscriptionPolicy", "scoped_run"]


def __getattr__(name: str) -> Any:
    if name == "TranscriptionOrchestrator":
        from scribeflow.pipeline.orchestrator import TranscriptionOrchestrator

        return TranscriptionOrchestrator
    if name == "TranscriptionPolicy":
        from scribeflow.pipeline.policy import TranscriptionPolicy

        return TranscriptionPolicy
    if name in {"RunWorkspace", "scoped_run"}:
        from scribeflow.pipeline import workspace

        return getattr(workspace, name)
    raise AttributeError(name)
