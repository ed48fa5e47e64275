"""Time-range segmentation and segment file materialization."""

from __future__ import annotations

import asyncio
import logging
import math
from collections.abc import Callable
from pathlib import Path

from scribeflow.exceptions import InvalidPolicyError, RunCancelledError, SegmentCreationError, TranscodeError
from scribeflow.models.audio import AudioFormat, AudioInfo, Segment, SegmentFile, SegmentPlan, TransformSpec
from scribeflow.pipeline.policy import TranscriptionPolicy
from scribeflow.providers.media.base import MediaTool

logger = logging.getLogger(__name__)


def plan_segments(duration_seconds: float, chunk_duration_seconds: float) -> SegmentPlan:
    """Split `[0, duration]` into contiguous `chunk_duration`-long ranges.

    The last range is clamped to `duration`. A zero duration yields an empty plan.
    """
    chunk = float(chunk_duration_seconds)
    duration = float(duration_seconds)
    if not math.isfinite(chunk) or chunk <= 0:
        raise InvalidPolicyError(f"chunk_duration_seconds must be > 0 (got {chunk_duration_seconds!r})")
    if not math.isfinite(duration) or duration < 0:
        raise InvalidPolicyError(f"duration_seconds must be >= 0 (got {duration_seconds!r})")

    count = math.ceil(duration / chunk)
    # Float division can overshoot by one (e.g. 1.1 / 0.1); never emit an empty trailing range.
    while count > 0 and (count - 1) * chunk >= duration:
        count -= 1

    segments: list[Segment] = []
    for index in range(count):
        start = index * chunk
        end = duration if index == count - 1 else min((index + 1) * chunk, duration)
        segments.append(Segment(index=index, start_seconds=float(start), end_seconds=float(end)))
    return SegmentPlan(
        duration_seconds=duration,
        chunk_duration_seconds=chunk,
        segments=tuple(segments),
    )


def segment_filename(index: int, fmt: AudioFormat) -> str:
    return f"segment_{int(index):04d}.{fmt.extension}"


class Segmenter:
    def __init__(self, media_tool: MediaTool) -> None:
        self.media_tool = media_tool

    @staticmethod
    def needs_segmentation(info: AudioInfo, policy: TranscriptionPolicy) -> bool:
        return not policy.fits_direct(info)

    @staticmethod
    def plan(duration_seconds: float, chunk_duration_seconds: float) -> SegmentPlan:
        return plan_segments(duration_seconds, chunk_duration_seconds)

    async def materialize(
        self,
        source_path: str,
        plan: SegmentPlan,
        output_dir: str,
        output_format: AudioFormat,
        *,
        is_cancelled: Callable[[], bool] | None = None,
    ) -> list[SegmentFile]:
        """Cut one file per segment, in index order.

        Any failure raises SegmentCreationError after deleting the files this
        call already produced.
        """
        out_dir = Path(output_dir)
        out_dir.mkdir(parents=True, exist_ok=True)

        created: list[SegmentFile] = []
        try:
            for segment in plan:
                if is_cancelled is not None and is_cancelled():
                    raise RunCancelledError("cancelled during segmentation")
                out_path = out_dir / segment_filename(segment.index, output_format)
                spec = TransformSpec(
                    format=output_format,
                    start_s=segment.start_seconds,
                    duration_s=segment.duration_seconds,
                )
                try:
                    await self.media_tool.transform(str(source_path), spec, str(out_path))
                except SegmentCreationError:
                    raise
                except TranscodeError as exc:
                    out_path.unlink(missing_ok=True)
                    raise SegmentCreationError(segment.index, exc.message, output_path=str(out_path)) from exc
                created.append(SegmentFile(segment=segment, path=str(out_path)))
                logger.debug(
                    "segment %d materialized (%.2f-%.2f, path=%s)",
                    segment.index,
                    segment.start_seconds,
                    segment.end_seconds,
                    out_path,
                )
        except (SegmentCreationError, RunCancelledError, asyncio.CancelledError):
            for sf in created:
                Path(sf.path).unlink(missing_ok=True)
            raise

        logger.info("segments materialized (count=%d, dir=%s)", len(created), out_dir)
        return created
