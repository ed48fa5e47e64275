"""GLM-ASR provider (vLLM OpenAI-compatible interface)."""

from __future__ import annotations

from scribeflow.models.audio import WAV_PCM_MONO_16K, AudioFormat
from scribeflow.providers.asr.openai_compat import OpenAICompatASRProvider


class GLMASRProvider(OpenAICompatASRProvider):
    """GLM-ASR served by vLLM.

    The model only ingests 16kHz mono PCM WAV, so compression and segment
    files are produced in that format when this provider is active. A local
    vLLM deployment usually runs without an API key.
    """

    ingest_format: AudioFormat = WAV_PCM_MONO_16K

    def __init__(
        self,
        base_url: str,
        model: str = "glm-asr",
        api_key: str = "",
        *,
        name: str = "glm_asr",
        timeout: float = 300.0,
        auth_header: str = "Authorization",
        auth_scheme: str = "Bearer",
        language: str | None = None,
    ) -> None:
        super().__init__(
            api_key=api_key,
            model=model,
            base_url=base_url,
            name=name,
            response_format="json",
            auth_header=auth_header,
            auth_scheme=auth_scheme,
            timeout=timeout,
            language=language,
        )
