from __future__ import annotations

import httpx
import pytest

from scribeflow.exceptions import ConfigurationError, ProviderError, ProviderTimeoutError
from scribeflow.models.audio import WAV_PCM_MONO_16K
from scribeflow.providers import get_asr_provider
from scribeflow.providers.asr.glm_asr import GLMASRProvider
from scribeflow.providers.asr.openai_compat import OpenAICompatASRProvider


@pytest.fixture()
def audio_file(tmp_path):
    p = tmp_path / "segment_0000.mp3"
    p.write_bytes(b"ID3fake")
    return p


def _with_transport(provider: OpenAICompatASRProvider, handler) -> OpenAICompatASRProvider:  # noqa: ANN001
    provider._client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return provider


@pytest.mark.asyncio
async def test_json_response_and_request_shape(audio_file) -> None:
    seen: dict = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["url"] = str(request.url)
        seen["auth"] = request.headers.get("Authorization")
        seen["body"] = request.read()
        return httpx.Response(200, json={"text": " hello world "})

    provider = _with_transport(
        OpenAICompatASRProvider(api_key="sk-test", model="whisper-1", base_url="https://api.example.com/v1/"),
        handler,
    )
    text = await provider.transcribe(str(audio_file), context_prompt="previous words")
    await provider.close()

    assert text == "hello world"
    assert seen["url"] == "https://api.example.com/v1/audio/transcriptions"
    assert seen["auth"] == "Bearer sk-test"
    assert b'name="prompt"' in seen["body"]
    assert b"previous words" in seen["body"]
    assert b'name="model"' in seen["body"]
    assert b"segment_0000.mp3" in seen["body"]


@pytest.mark.asyncio
async def test_plain_text_response(audio_file) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        assert b"prompt" not in request.read()
        return httpx.Response(200, text="plain transcript\n")

    provider = _with_transport(
        OpenAICompatASRProvider(api_key="k", base_url="https://api.lemonfox.ai/v1", response_format="text"),
        handler,
    )
    assert await provider.transcribe(str(audio_file)) == "plain transcript"


@pytest.mark.asyncio
async def test_non_2xx_raises_provider_error_with_status(audio_file) -> None:
    def handler(request: httpx.Request) -> httpx.Response:  # noqa: ARG001
        return httpx.Response(429, text="rate limited")

    provider = _with_transport(OpenAICompatASRProvider(api_key="k"), handler)
    with pytest.raises(ProviderError) as excinfo:
        await provider.transcribe(str(audio_file))

    assert excinfo.value.status == 429
    assert excinfo.value.retryable
    assert "rate limited" in excinfo.value.message


@pytest.mark.asyncio
async def test_malformed_json_body_raises(audio_file) -> None:
    def handler(request: httpx.Request) -> httpx.Response:  # noqa: ARG001
        return httpx.Response(200, json={"segments": []})

    provider = _with_transport(OpenAICompatASRProvider(api_key="k"), handler)
    with pytest.raises(ProviderError, match="malformed"):
        await provider.transcribe(str(audio_file))


@pytest.mark.asyncio
async def test_timeout_raises_provider_timeout(audio_file) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ReadTimeout("slow", request=request)

    provider = _with_transport(OpenAICompatASRProvider(api_key="k", timeout=1.0), handler)
    with pytest.raises(ProviderTimeoutError):
        await provider.transcribe(str(audio_file))


@pytest.mark.asyncio
async def test_glm_asr_sends_wav_without_auth(tmp_path) -> None:
    wav = tmp_path / "segment_0000.wav"
    wav.write_bytes(b"RIFFfake")
    seen: dict = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["headers"] = dict(request.headers)
        seen["body"] = request.read()
        return httpx.Response(200, json={"text": "你好"})

    provider = _with_transport(GLMASRProvider(base_url="http://localhost:8000/v1"), handler)
    assert await provider.transcribe(str(wav)) == "你好"
    assert "authorization" not in seen["headers"]
    assert b"audio/wav" in seen["body"]
    assert provider.ingest_format == WAV_PCM_MONO_16K


def test_provider_error_retryable_classification() -> None:
    assert ProviderError("p", "x", status=500).retryable
    assert ProviderError("p", "x", status=None).retryable
    assert not ProviderError("p", "x", status=400).retryable
    assert not ProviderError("p", "x", status=401).retryable
    assert ProviderTimeoutError("p", 3).retryable


def test_registry_builds_providers() -> None:
    lemonfox = get_asr_provider(
        {"provider": "openai_compat", "name": "lemonfox", "api_key": "k", "response_format": "text"}
    )
    glm = get_asr_provider({"provider": "glm_asr", "base_url": "http://vllm:8000/v1"})

    assert isinstance(lemonfox, OpenAICompatASRProvider)
    assert lemonfox.name == "lemonfox"
    assert isinstance(glm, GLMASRProvider)
    with pytest.raises(ConfigurationError):
        get_asr_provider({"provider": "glm_asr", "base_url": ""})
    with pytest.raises(ConfigurationError):
        get_asr_provider({"provider": "deepgram"})
