"""Single-run transcription orchestrator (probe -> compress -> direct | segmented -> reassemble)."""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import AsyncIterator
from contextlib import aclosing
from pathlib import Path
from uuid import uuid4

from tenacity import AsyncRetrying, RetryCallState, retry_if_exception, stop_after_attempt, wait_exponential

from scribeflow.error_codes import ErrorCode
from scribeflow.exceptions import (
    ProbeError,
    ProviderError,
    ProviderTimeoutError,
    RunCancelledError,
    ScribeFlowError,
    TranscodeError,
)
from scribeflow.models.audio import AudioInfo, AudioSource, SegmentFile, SegmentPlan, TransformSpec
from scribeflow.models.events import ErrorEvent, FinalResult, PipelineEvent, RunState
from scribeflow.models.transcript import FullTranscript, TranscriptionResult
from scribeflow.pipeline import progress
from scribeflow.pipeline.context import context_tail
from scribeflow.pipeline.policy import TranscriptionPolicy
from scribeflow.pipeline.prober import MediaProber
from scribeflow.pipeline.progress import ProgressTracker, segment_progress
from scribeflow.pipeline.segmenter import Segmenter
from scribeflow.pipeline.workspace import RunWorkspace
from scribeflow.providers.asr.base import ASRProvider
from scribeflow.providers.media.base import MediaTool

logger = logging.getLogger(__name__)

_TRANSITIONS: dict[RunState, set[RunState]] = {
    RunState.UPLOADED: {RunState.PROBED, RunState.FAILED},
    RunState.PROBED: {RunState.DIRECT_TRANSCRIBING, RunState.SEGMENTING, RunState.FAILED},
    RunState.DIRECT_TRANSCRIBING: {RunState.COMPLETED, RunState.FAILED},
    RunState.SEGMENTING: {RunState.SEGMENT_TRANSCRIBING, RunState.FAILED},
    RunState.SEGMENT_TRANSCRIBING: {RunState.REASSEMBLING, RunState.FAILED},
    RunState.REASSEMBLING: {RunState.COMPLETED, RunState.FAILED},
    RunState.COMPLETED: set(),
    RunState.FAILED: set(),
}


class AllSegmentsFailedError(ScribeFlowError):
    """Every segment of a segmented run failed; there is no transcript to return."""

    error_code = ErrorCode.ALL_SEGMENTS_FAILED

    def __init__(self, total: int, first_error: str | None) -> None:
        detail = f" (first error: {first_error})" if first_error else ""
        super().__init__(f"No audio processed: all {total} segments failed{detail}")
        self.total = total
        self.first_error = first_error


class TranscriptionOrchestrator:
    """Drives one run through the transcription state machine.

    `run()` is an async generator of pipeline events: progress events with a
    non-decreasing percentage, then exactly one terminal event (FinalResult or
    ErrorEvent). An orchestrator instance handles a single run and cannot be
    restarted.

    Segments are transcribed strictly in index order. A failed segment keeps its
    slot with a placeholder text; the next segment is prompted with the tail of
    the last successful transcript.
    """

    def __init__(
        self,
        provider: ASRProvider,
        media_tool: MediaTool,
        policy: TranscriptionPolicy,
        *,
        run_id: str | None = None,
    ) -> None:
        self.provider = provider
        self.media_tool = media_tool
        self.policy = policy
        self.run_id = run_id or uuid4().hex
        self.prober = MediaProber(media_tool)
        self.segmenter = Segmenter(media_tool)

        self.state = RunState.UPLOADED
        self.history: list[RunState] = [RunState.UPLOADED]
        self.source_info: AudioInfo | None = None
        self.working_info: AudioInfo | None = None
        self.plan: SegmentPlan | None = None
        self.results: list[TranscriptionResult] = []
        self.compressed = False
        self._started = False
        self._cancel_event: asyncio.Event | None = None

    def _transition(self, new_state: RunState) -> None:
        allowed = _TRANSITIONS[self.state]
        if new_state not in allowed:
            raise RuntimeError(f"illegal transition {self.state.value} -> {new_state.value}")
        logger.info(
            "run transition (run_id=%s, %s -> %s)", self.run_id, self.state.value, new_state.value
        )
        self.state = new_state
        self.history.append(new_state)

    def _cancel_requested(self) -> bool:
        return self._cancel_event is not None and self._cancel_event.is_set()

    def _check_cancelled(self) -> None:
        if self._cancel_requested():
            raise RunCancelledError("Transcription cancelled")

    @staticmethod
    def _infer_error_code(exc: BaseException) -> str:
        code = getattr(exc, "error_code", None)
        if code is not None:
            return str(code.value if isinstance(code, ErrorCode) else code)
        return ErrorCode.UNKNOWN.value

    @staticmethod
    def _infer_error_message(exc: BaseException) -> str:
        if isinstance(exc, ProbeError):
            return f"No audio processed: {exc.message}"
        if isinstance(exc, (TranscodeError, ProviderError)):
            return str(exc)
        return str(exc) or exc.__class__.__name__

    def _log_retry(self, retry_state: RetryCallState) -> None:
        exc = retry_state.outcome.exception() if retry_state.outcome else None
        wait_s = retry_state.next_action.sleep if retry_state.next_action else 0.0
        logger.warning(
            "provider call failed, retrying (run_id=%s, provider=%s, attempt=%s/%s, wait_s=%.1f): %s",
            self.run_id,
            self.provider.name,
            retry_state.attempt_number,
            self.policy.retry_attempts,
            wait_s,
            exc,
        )

    async def _transcribe_once(self, file_path: str, context_prompt: str | None) -> str:
        try:
            return await asyncio.wait_for(
                self.provider.transcribe(file_path, context_prompt),
                timeout=self.policy.provider_timeout_s,
            )
        except asyncio.TimeoutError as exc:
            raise ProviderTimeoutError(self.provider.name, self.policy.provider_timeout_s) from exc

    async def _transcribe(self, file_path: str, context_prompt: str | None) -> str:
        retrying = AsyncRetrying(
            stop=stop_after_attempt(self.policy.retry_attempts),
            wait=wait_exponential(min=self.policy.retry_wait_min_s, max=self.policy.retry_wait_max_s),
            retry=retry_if_exception(lambda e: isinstance(e, ProviderError) and e.retryable),
            before_sleep=self._log_retry,
            reraise=True,
        )
        text = await retrying(self._transcribe_once, file_path, context_prompt)
        return str(text or "")

    async def _compress(self, source: AudioSource, workspace: RunWorkspace) -> tuple[str, AudioInfo]:
        fmt = self.policy.compression_format(self.provider.ingest_format)
        out_path = workspace.file_path(f"compressed.{fmt.extension}")
        started = time.monotonic()
        await self.media_tool.transform(source.path, TransformSpec(format=fmt), str(out_path))
        try:
            info = await self.prober.probe(str(out_path))
        except ProbeError as exc:
            raise TranscodeError(f"compressed output is unreadable: {exc.message}", output_path=str(out_path)) from exc
        self.compressed = True
        logger.info(
            "audio compressed (run_id=%s, size_bytes=%d -> %d, elapsed_s=%.2f)",
            self.run_id,
            int(source.size_bytes),
            int(info.size_bytes),
            time.monotonic() - started,
        )
        return str(out_path), info

    async def run(
        self,
        source: AudioSource,
        workspace: RunWorkspace,
        *,
        cancel_event: asyncio.Event | None = None,
    ) -> AsyncIterator[PipelineEvent]:
        if self._started:
            raise RuntimeError("orchestrator runs are not restartable")
        self._started = True
        self._cancel_event = cancel_event

        tracker = ProgressTracker(self.run_id)
        try:
            yield tracker.event(progress.UPLOAD_RECEIVED, "File uploaded successfully", self.state)
            self._check_cancelled()
            info = await self.prober.probe(source.path)
            self.source_info = info
            self._transition(RunState.PROBED)
            yield tracker.event(progress.PROBED, "Processing audio file...", self.state)

            working_path, working_info = source.path, info
            if self.policy.needs_compression(info):
                self._check_cancelled()
                yield tracker.event(progress.PROBED, "Compressing audio...", self.state)
                working_path, working_info = await self._compress(source, workspace)
                yield tracker.event(progress.COMPRESSED, "Audio compressed", self.state)
            self.working_info = working_info

            self._check_cancelled()
            if not self.segmenter.needs_segmentation(working_info, self.policy):
                branch = self._run_direct(tracker, working_path, working_info)
            else:
                branch = self._run_segmented(tracker, workspace, working_path, working_info)
            async with aclosing(branch) as events:
                async for event in events:
                    yield event
        except ScribeFlowError as exc:
            yield self._fail(exc)
        except Exception as exc:
            logger.exception("run failed unexpectedly (run_id=%s)", self.run_id)
            yield self._fail(exc)
        finally:
            if not self.state.terminal:
                # Task cancellation or an abandoned generator.
                self._transition(RunState.FAILED)

    def _fail(self, exc: BaseException) -> ErrorEvent:
        failed_state = self.state
        if not self.state.terminal:
            self._transition(RunState.FAILED)
        code = self._infer_error_code(exc)
        message = self._infer_error_message(exc)
        if code == ErrorCode.CANCELLED.value:
            logger.info("run cancelled (run_id=%s, state=%s)", self.run_id, failed_state.value)
        else:
            logger.error(
                "run failed (run_id=%s, state=%s, code=%s): %s", self.run_id, failed_state.value, code, message
            )
        details: dict[str, object] = {"failed_state": failed_state.value}
        if self.source_info is not None:
            details.update(self.source_info.to_dict())
        return ErrorEvent(
            run_id=self.run_id,
            code=code,
            message=message,
            state=RunState.FAILED,
            segments_total=len(self.plan) if self.plan is not None else 0,
            segments_failed=sum(1 for r in self.results if not r.ok),
            details=details,
        )

    async def _run_direct(
        self, tracker: ProgressTracker, working_path: str, working_info: AudioInfo
    ) -> AsyncIterator[PipelineEvent]:
        self._transition(RunState.DIRECT_TRANSCRIBING)
        yield tracker.event(progress.DIRECT_TRANSCRIBING, "Transcribing audio...", self.state)

        text = await self._transcribe(working_path, self.policy.initial_prompt)
        yield tracker.event(progress.FINALIZING, "Finalizing transcript...", self.state)

        self._transition(RunState.COMPLETED)
        yield self._final_result(text.strip(), working_info, segments=None)

    async def _run_segmented(
        self,
        tracker: ProgressTracker,
        workspace: RunWorkspace,
        working_path: str,
        working_info: AudioInfo,
    ) -> AsyncIterator[PipelineEvent]:
        self._transition(RunState.SEGMENTING)
        plan = self.segmenter.plan(working_info.duration_seconds, self.policy.chunk_duration_s)
        self.plan = plan
        yield tracker.event(progress.SEGMENTING, f"Splitting audio into {len(plan)} chunks...", self.state)

        seg_format = self.policy.segment_format(self.provider.ingest_format)
        seg_dir = workspace.subdir("segments")
        files = await self.segmenter.materialize(
            working_path, plan, str(seg_dir), seg_format, is_cancelled=self._cancel_requested
        )
        for sf in files:
            workspace.register(sf.path)
        if self.compressed:
            workspace.release(working_path)

        self._transition(RunState.SEGMENT_TRANSCRIBING)
        total = len(files)
        yield tracker.event(progress.SEGMENTED, f"Processing {total} chunks...", self.state)

        last_success: str | None = None
        for done, sf in enumerate(files):
            self._check_cancelled()
            yield tracker.event(
                segment_progress(done, total), f"Processing chunk {done + 1}/{total}...", self.state
            )
            self.results.append(await self._transcribe_segment(sf, workspace, last_success))
            if self.results[-1].ok and self.results[-1].text.strip():
                last_success = self.results[-1].text

        yield tracker.event(segment_progress(total, total), "All chunks processed", self.state)

        self._transition(RunState.REASSEMBLING)
        yield tracker.event(progress.FINALIZING, "Finalizing transcript...", self.state)

        failed = [r for r in self.results if not r.ok]
        if self.results and len(failed) == len(self.results):
            raise AllSegmentsFailedError(len(self.results), failed[0].error)

        full = FullTranscript.join(self.results, self.policy.separator)
        self._transition(RunState.COMPLETED)
        yield self._final_result(full.text, working_info, segments=list(full.results))

    async def _transcribe_segment(
        self, sf: SegmentFile, workspace: RunWorkspace, last_success: str | None
    ) -> TranscriptionResult:
        segment = sf.segment
        if last_success is not None:
            prompt = context_tail(last_success, self.policy.context_tail_chars)
        else:
            prompt = self.policy.initial_prompt
        try:
            text = await self._transcribe(sf.path, prompt)
        except ProviderError as exc:
            logger.warning(
                "segment transcription failed (run_id=%s, index=%d, range=%.2f-%.2f): %s",
                self.run_id,
                segment.index,
                segment.start_seconds,
                segment.end_seconds,
                exc,
            )
            return TranscriptionResult(
                segment_index=segment.index,
                text=self.policy.placeholder(segment, exc.message),
                error=str(exc),
                start_seconds=segment.start_seconds,
                end_seconds=segment.end_seconds,
            )
        finally:
            workspace.release(Path(sf.path))

        logger.debug(
            "segment transcribed (run_id=%s, index=%d, chars=%d)", self.run_id, segment.index, len(text)
        )
        return TranscriptionResult(
            segment_index=segment.index,
            text=text.strip(),
            start_seconds=segment.start_seconds,
            end_seconds=segment.end_seconds,
        )

    def _final_result(
        self,
        text: str,
        working_info: AudioInfo,
        *,
        segments: list[TranscriptionResult] | None,
    ) -> FinalResult:
        info = self.source_info or working_info
        failed = sum(1 for r in segments or [] if not r.ok)
        logger.info(
            "run completed (run_id=%s, segments=%s, failed=%d, chars=%d)",
            self.run_id,
            len(segments) if segments is not None else "direct",
            failed,
            len(text),
        )
        return FinalResult(
            run_id=self.run_id,
            transcript_text=text,
            duration_seconds=float(info.duration_seconds),
            size_bytes=int(info.size_bytes),
            segments=segments,
            failed_segments=failed,
            processed_size_bytes=int(working_info.size_bytes),
        )
