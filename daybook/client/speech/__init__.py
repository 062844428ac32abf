from .errors import SpeechError, SpeechErrorKind, map_platform_error, requires_settings, user_message
from .events import EventChannel, Subscription
from .recognition import RecognitionPlatform, Recognizer, SpeechToTextSession, TranscriptEvent
from .synthesis import SynthesisError, SynthesisPlatform, TextToSpeechSession

__all__ = [
    "EventChannel",
    "RecognitionPlatform",
    "Recognizer",
    "SpeechError",
    "SpeechErrorKind",
    "SpeechToTextSession",
    "Subscription",
    "SynthesisError",
    "SynthesisPlatform",
    "TextToSpeechSession",
    "TranscriptEvent",
    "map_platform_error",
    "requires_settings",
    "user_message",
]
