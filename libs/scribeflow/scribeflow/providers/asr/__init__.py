"""Speech-to-text provider implementations."""

from scribeflow.providers.asr.base import ASRProvider
from scribeflow.providers.asr.glm_asr import GLMASRProvider
from scribeflow.providers.asr.openai_compat import OpenAICompatASRProvider

__all__ = ["ASRProvider", "GLMASRProvider", "OpenAICompatASRProvider"]
