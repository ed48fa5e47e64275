"""Provider factory and registry."""

from __future__ import annotations

from typing import Any
from collections.abc import Mapping

from scribeflow.exceptions import ConfigurationError
from scribeflow.providers.asr.base import ASRProvider
from scribeflow.providers.media.base import MediaTool


def get_asr_provider(config: Mapping[str, Any]) -> ASRProvider:
    """Get a speech-to-text provider from a resolved profile (see Settings.provider_config_for)."""
    provider_type = str(config.get("provider", "openai_compat")).strip().lower()
    name = str(config.get("name") or provider_type)

    match provider_type:
        case "openai" | "openai_compat":
            from scribeflow.providers.asr.openai_compat import OpenAICompatASRProvider

            return OpenAICompatASRProvider(
                api_key=str(config.get("api_key") or ""),
                model=str(config.get("model") or "gpt-4o-transcribe"),
                base_url=config.get("base_url"),
                name=name,
                response_format=str(config.get("response_format") or "json"),
                auth_header=str(config.get("auth_header") or "Authorization"),
                auth_scheme=str(config.get("auth_scheme", "Bearer") or ""),
                timeout=float(config.get("timeout", 300.0)),
                language=config.get("language"),
            )
        case "glm_asr":
            from scribeflow.providers.asr.glm_asr import GLMASRProvider

            base_url = str(config.get("base_url") or "").strip()
            if not base_url:
                raise ConfigurationError("GLM-ASR provider requires base_url")
            return GLMASRProvider(
                base_url=base_url,
                api_key=str(config.get("api_key") or ""),
                model=str(config.get("model") or "glm-asr"),
                name=name,
                timeout=float(config.get("timeout", 300.0)),
                auth_header=str(config.get("auth_header") or "Authorization"),
                auth_scheme=str(config.get("auth_scheme", "Bearer") or ""),
                language=config.get("language"),
            )
        case _:
            raise ConfigurationError(f"Unknown ASR provider: {provider_type}")


def get_media_tool(config: Mapping[str, Any]) -> MediaTool:
    provider_type = str(config.get("provider", "ffmpeg")).strip().lower()

    match provider_type:
        case "ffmpeg":
            from scribeflow.providers.media.ffmpeg import FFmpegMediaTool

            return FFmpegMediaTool(
                ffmpeg_bin=str(config.get("ffmpeg_bin") or "ffmpeg"),
                ffprobe_bin=str(config.get("ffprobe_bin") or "ffprobe"),
                probe_timeout_s=float(config.get("probe_timeout_s", 60.0)),
                transcode_timeout_s=float(config.get("transcode_timeout_s", 600.0)),
            )
        case _:
            raise ConfigurationError(f"Unknown media tool: {provider_type}")
