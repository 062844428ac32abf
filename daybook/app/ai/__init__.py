"""Language model and speech synthesis providers."""

from __future__ import annotations

from .openai_client import Completion, OpenAIClient
from .tts import GoogleTTSClient, SpeechSynthesisError

__all__ = [
    "Completion",
    "GoogleTTSClient",
    "OpenAIClient",
    "SpeechSynthesisError",
]
