"""OpenAI-compatible `/audio/transcriptions` provider (OpenAI, Lemonfox, ...)."""

from __future__ import annotations

import json
import logging
from pathlib import Path

import httpx

from scribeflow.exceptions import ProviderError, ProviderTimeoutError
from scribeflow.models.audio import MP3_MONO_16K, AudioFormat
from scribeflow.providers.asr.base import ASRProvider

logger = logging.getLogger(__name__)

DEFAULT_OPENAI_BASE_URL = "https://api.openai.com/v1"

_RESPONSE_FORMATS = {"text", "json", "verbose_json"}


def _format_http_error(response: httpx.Response) -> str:
    reason = response.reason_phrase
    detail = ""
    try:
        detail = response.text.strip()
    except Exception:
        detail = ""
    if detail:
        if len(detail) > 2000:
            detail = detail[:2000] + "…"
        return f"{reason}: {detail}"
    return reason or "request failed"


class OpenAICompatASRProvider(ASRProvider):
    """Multipart upload to an OpenAI-compatible transcription endpoint.

    The endpoint answers either with plain text (`response_format=text`) or
    with a JSON object carrying a `text` field (`json`/`verbose_json`).
    """

    ingest_format: AudioFormat = MP3_MONO_16K

    def __init__(
        self,
        api_key: str,
        model: str = "gpt-4o-transcribe",
        base_url: str | None = None,
        *,
        name: str = "openai",
        response_format: str = "json",
        auth_header: str = "Authorization",
        auth_scheme: str = "Bearer",
        timeout: float = 300.0,
        language: str | None = None,
    ) -> None:
        resolved = str(base_url or "").strip()
        self.base_url = (resolved or DEFAULT_OPENAI_BASE_URL).rstrip("/")
        self.name = name
        self.api_key = api_key
        self.model = model
        self.response_format = str(response_format or "json").strip().lower()
        if self.response_format not in _RESPONSE_FORMATS:
            raise ValueError(f"unsupported response_format: {response_format!r}")
        self.auth_header = auth_header
        self.auth_scheme = auth_scheme
        self.timeout = float(timeout)
        self.language = language
        self._client: httpx.AsyncClient | None = None

    def _headers(self) -> dict[str, str]:
        if not self.api_key:
            return {}
        value = f"{self.auth_scheme} {self.api_key}".strip()
        return {self.auth_header: value}

    async def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=httpx.Timeout(self.timeout))
        return self._client

    def _form_data(self, context_prompt: str | None) -> dict[str, str]:
        data = {"model": self.model, "response_format": self.response_format}
        if context_prompt:
            data["prompt"] = context_prompt
        if self.language:
            data["language"] = self.language
        return data

    def _parse_response(self, response: httpx.Response) -> str:
        if self.response_format == "text":
            return response.text.strip()
        try:
            body = response.json()
        except (json.JSONDecodeError, ValueError) as exc:
            raise ProviderError(
                self.name, "malformed response body (expected JSON)", status=response.status_code
            ) from exc
        if not isinstance(body, dict) or not isinstance(body.get("text"), str):
            raise ProviderError(
                self.name, "malformed response body (missing `text`)", status=response.status_code
            )
        return str(body["text"]).strip()

    async def transcribe(self, file_path: str, context_prompt: str | None = None) -> str:
        client = await self._get_client()
        path = Path(file_path)
        mime_type = self.ingest_format.mime_type

        with path.open("rb") as f:
            files = {"file": (path.name, f, mime_type)}
            try:
                response = await client.post(
                    f"{self.base_url}/audio/transcriptions",
                    headers=self._headers(),
                    files=files,
                    data=self._form_data(context_prompt),
                )
            except httpx.TimeoutException as exc:
                raise ProviderTimeoutError(self.name, self.timeout) from exc
            except httpx.HTTPError as exc:
                raise ProviderError(self.name, str(exc) or type(exc).__name__) from exc

        if response.status_code < 200 or response.status_code >= 300:
            raise ProviderError(self.name, _format_http_error(response), status=response.status_code)

        text = self._parse_response(response)
        logger.debug("%s transcribed %s (chars=%d)", self.name, path.name, len(text))
        return text

    async def close(self) -> None:
        """Close the HTTP client and release resources."""
        if self._client is not None:
            await self._client.aclose()
            self._client = None
