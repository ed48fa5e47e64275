"""Entry point for callers: submit audio, stream pipeline events, persist the result."""

from __future__ import annotations

import asyncio
import dataclasses
import logging
import mimetypes
import shutil
from collections.abc import AsyncIterator, Awaitable, Callable, Mapping
from contextlib import aclosing
from pathlib import Path
from typing import Any, Protocol
from uuid import uuid4

from scribeflow.config import Settings
from scribeflow.error_codes import ErrorCode
from scribeflow.exceptions import ConfigurationError, PersistenceError
from scribeflow.models.audio import AudioSource
from scribeflow.models.events import ErrorEvent, FinalResult, PipelineEvent, RunState
from scribeflow.models.transcript import TranscriptRecord
from scribeflow.pipeline.orchestrator import TranscriptionOrchestrator
from scribeflow.pipeline.policy import TranscriptionPolicy
from scribeflow.pipeline.workspace import RunWorkspace
from scribeflow.providers.asr.base import ASRProvider
from scribeflow.providers.media.base import MediaTool
from scribeflow.providers.registry import get_asr_provider, get_media_tool

logger = logging.getLogger(__name__)

SourceWriter = Callable[[Path], Awaitable[int]]


class TranscriptStore(Protocol):
    async def save_record(self, filename: str, transcript: str) -> TranscriptRecord: ...


def sanitize_filename(filename: str | None) -> str:
    raw = str(filename or "").strip()
    base = Path(raw).name
    base = base.replace("\x00", "")
    if not base:
        return "upload.bin"
    return base[:255]


class TranscriptionService:
    """Runs one transcription per `submit_*` call.

    Each call gets its own workspace, provider client and orchestrator; the
    returned async iterator yields progress events followed by exactly one
    FinalResult or ErrorEvent. Successful transcripts are saved to `records`
    when one is configured; a storage failure is logged and does not turn a
    completed run into a failed one.
    """

    def __init__(
        self,
        settings: Settings,
        *,
        records: TranscriptStore | None = None,
        media_tool: MediaTool | None = None,
        provider_factory: Callable[[Mapping[str, Any]], ASRProvider] = get_asr_provider,
    ) -> None:
        self.settings = settings
        self.records = records
        self._media_tool = media_tool
        self._provider_factory = provider_factory
        self.workdir = Path(settings.data_dir) / "workdir"

    @property
    def media_tool(self) -> MediaTool:
        if self._media_tool is None:
            self._media_tool = get_media_tool({"provider": "ffmpeg", **self.settings.media.model_dump()})
        return self._media_tool

    def resolve(
        self,
        provider_id: str | None = None,
        policy_overrides: Mapping[str, Any] | None = None,
        *,
        model: str | None = None,
    ) -> tuple[dict[str, Any], TranscriptionPolicy]:
        """Validate provider choice and policy before any work starts.

        Raises ConfigurationError (or its subclass InvalidPolicyError).
        """
        provider_config = self.settings.provider_config_for(provider_id)
        if model:
            provider_config["model"] = str(model)
        policy = TranscriptionPolicy.from_settings(self.settings, provider_config, policy_overrides)
        return provider_config, policy

    async def submit_audio(
        self,
        source_bytes: bytes,
        filename: str,
        provider_id: str | None = None,
        policy_overrides: Mapping[str, Any] | None = None,
        **kwargs: Any,
    ) -> AsyncIterator[PipelineEvent]:
        data = bytes(source_bytes)

        async def _write(target: Path) -> int:
            await asyncio.to_thread(target.write_bytes, data)
            return len(data)

        async for event in self.submit_upload(_write, filename, provider_id, policy_overrides, **kwargs):
            yield event

    async def submit_file(
        self,
        path: str | Path,
        provider_id: str | None = None,
        policy_overrides: Mapping[str, Any] | None = None,
        *,
        filename: str | None = None,
        **kwargs: Any,
    ) -> AsyncIterator[PipelineEvent]:
        src = Path(path)

        async def _copy(target: Path) -> int:
            await asyncio.to_thread(shutil.copyfile, src, target)
            return int(target.stat().st_size)

        async for event in self.submit_upload(_copy, filename or src.name, provider_id, policy_overrides, **kwargs):
            yield event

    async def submit_upload(
        self,
        write_source: SourceWriter,
        filename: str,
        provider_id: str | None = None,
        policy_overrides: Mapping[str, Any] | None = None,
        *,
        model: str | None = None,
        run_id: str | None = None,
        cancel_event: asyncio.Event | None = None,
    ) -> AsyncIterator[PipelineEvent]:
        run_id = run_id or uuid4().hex
        safe_name = sanitize_filename(filename)
        try:
            provider_config, policy = self.resolve(provider_id, policy_overrides, model=model)
            provider = self._provider_factory(provider_config)
        except ConfigurationError as exc:
            logger.warning("run rejected (run_id=%s): %s", run_id, exc)
            yield ErrorEvent(
                run_id=run_id,
                code=str(exc.error_code.value if isinstance(exc.error_code, ErrorCode) else exc.error_code),
                message=str(exc),
                state=RunState.FAILED,
            )
            return

        logger.info(
            "run submitted (run_id=%s, filename=%s, provider=%s, model=%s)",
            run_id,
            safe_name,
            provider_config.get("name"),
            provider_config.get("model"),
        )
        try:
            async with RunWorkspace(self.workdir, run_id=run_id) as workspace:
                upload_path = workspace.file_path(f"upload_{safe_name}")
                try:
                    size = await write_source(upload_path)
                except OSError as exc:
                    logger.error("failed to store upload (run_id=%s): %s", run_id, exc)
                    yield ErrorEvent(
                        run_id=run_id,
                        code=ErrorCode.UNKNOWN.value,
                        message=f"failed to store upload: {exc}",
                        state=RunState.FAILED,
                    )
                    return

                mime_hint, _ = mimetypes.guess_type(safe_name)
                source = AudioSource(
                    path=str(upload_path),
                    original_name=safe_name,
                    size_bytes=int(size),
                    mime_hint=mime_hint,
                )
                orchestrator = TranscriptionOrchestrator(provider, self.media_tool, policy, run_id=run_id)
                async with aclosing(orchestrator.run(source, workspace, cancel_event=cancel_event)) as events:
                    async for event in events:
                        if isinstance(event, FinalResult):
                            event = await self._persist(event, safe_name)
                        yield event
        finally:
            await provider.close()

    async def _persist(self, result: FinalResult, filename: str) -> FinalResult:
        if self.records is None:
            return result
        try:
            record = await self.records.save_record(filename, result.transcript_text)
        except PersistenceError as exc:
            logger.warning("transcript not persisted (run_id=%s): %s", result.run_id, exc)
            return result
        return dataclasses.replace(result, record_id=record.id)
