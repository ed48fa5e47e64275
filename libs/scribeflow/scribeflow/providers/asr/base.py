"""Speech-to-text provider base class."""

from __future__ import annotations

from abc import ABC, abstractmethod

from scribeflow.models.audio import MP3_MONO_16K, AudioFormat


class ASRProvider(ABC):
    """Abstract base class for speech-to-text providers.

    Providers never split or retry: the file handed to `transcribe` already
    satisfies the provider's size/duration limits, and retries belong to the
    pipeline orchestrator.
    """

    name: str = "asr"
    ingest_format: AudioFormat = MP3_MONO_16K

    @abstractmethod
    async def transcribe(self, file_path: str, context_prompt: str | None = None) -> str:
        """Transcribe an audio file.

        Args:
            file_path: Path to an audio file in a format the provider accepts.
            context_prompt: Optional text preceding this audio (e.g. the tail of
                the previous segment's transcript).

        Returns:
            Transcribed text.

        Raises:
            ProviderError: non-2xx response or malformed body.
            ProviderTimeoutError: no response within the configured timeout.
        """
        ...

    async def close(self) -> None:  # pragma: no cover
        return None

    async def __aenter__(self) -> "ASRProvider":
        return self

    async def __aexit__(self, *args) -> None:
        await self.close()
