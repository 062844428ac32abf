from __future__ import annotations

import base64
import binascii
import logging

import httpx

logger = logging.getLogger(__name__)

GOOGLE_TTS_URL = "https://texttospeech.googleapis.com/v1/text:synthesize"


class SpeechSynthesisError(RuntimeError):
    """Raised when the speech provider rejects or garbles a request."""


class GoogleTTSClient:
    """Google Cloud Text-to-Speech over REST, returning MP3 bytes."""

    def __init__(
        self,
        api_key: str | None,
        *,
        voice_name: str = "en-US-Neural2-F",
        language_code: str = "en-US",
        speaking_rate: float = 0.92,
        pitch: float = 0.5,
        timeout: float = 30.0,
    ) -> None:
        self._api_key = api_key
        self._voice_name = voice_name
        self._language_code = language_code
        self._speaking_rate = speaking_rate
        self._pitch = pitch
        self._timeout = timeout

    @property
    def available(self) -> bool:
        return bool(self._api_key)

    def _payload(self, text: str) -> dict[str, object]:
        return {
            "input": {"text": text},
            "voice": {
                "languageCode": self._language_code,
                "name": self._voice_name,
            },
            "audioConfig": {
                "audioEncoding": "MP3",
                "speakingRate": self._speaking_rate,
                "pitch": self._pitch,
                "volumeGainDb": 0.0,
            },
        }

    async def synthesize(self, text: str) -> bytes | None:
        """Return MP3 audio for ``text`` or ``None`` when no key is configured."""

        if not self._api_key:
            logger.warning("Speech synthesis skipped: GOOGLE_TTS_API_KEY missing")
            return None

        async with httpx.AsyncClient(timeout=self._timeout) as client:
            response = await client.post(
                GOOGLE_TTS_URL,
                params={"key": self._api_key},
                json=self._payload(text),
            )
        if response.status_code >= 400:
            raise SpeechSynthesisError(
                f"Google TTS failed: {response.status_code} {response.text[:200]}"
            )

        audio_content = response.json().get("audioContent")
        if not audio_content:
            raise SpeechSynthesisError("Google TTS returned no audio content")
        try:
            audio = base64.b64decode(audio_content, validate=True)
        except (binascii.Error, ValueError) as exc:
            raise SpeechSynthesisError("Google TTS returned invalid audio content") from exc

        logger.info("synthesized audio", extra={"extra_fields": {"bytes": len(audio)}})
        return audio
