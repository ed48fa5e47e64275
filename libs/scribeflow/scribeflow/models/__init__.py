"""Core data models for ScribeFlow."""

from scribeflow.models.audio import (
    MP3_MONO_16K,
    WAV_PCM_MONO_16K,
    AudioFormat,
    AudioInfo,
    AudioSource,
    Segment,
    SegmentFile,
    SegmentPlan,
    TransformSpec,
)
from scribeflow.models.events import ErrorEvent, FinalResult, PipelineEvent, ProgressEvent, RunState
from scribeflow.models.transcript import FullTranscript, TranscriptionResult, TranscriptRecord

__all__ = [
    "AudioFormat",
    "AudioInfo",
    "AudioSource",
    "ErrorEvent",
    "FinalResult",
    "FullTranscript",
    "MP3_MONO_16K",
    "PipelineEvent",
    "ProgressEvent",
    "RunState",
    "Segment",
    "SegmentFile",
    "SegmentPlan",
    "TranscriptRecord",
    "TranscriptionResult",
    "TransformSpec",
    "WAV_PCM_MONO_16K",
]
