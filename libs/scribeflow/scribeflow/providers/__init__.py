"""Provider abstractions for external services."""

from scribeflow.providers.registry import get_asr_provider, get_media_tool

__all__ = ["get_asr_provider", "get_media_tool"]
