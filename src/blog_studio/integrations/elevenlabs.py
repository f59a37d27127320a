"""ElevenLabs text-to-speech client."""

from __future__ import annotations

import logging

from blog_studio.config import TTSConfig
from blog_studio.errors import ConfigurationError, ProviderError
from blog_studio.integrations.providers import post_for_bytes

logger = logging.getLogger(__name__)

AUDIO_CONTENT_TYPE = "audio/mpeg"


class ElevenLabsClient:
    """Synthesizes speech with a fixed voice and returns MPEG bytes."""

    def __init__(self, config: TTSConfig) -> None:
        self.config = config

    @property
    def is_configured(self) -> bool:
        return bool(self.config.elevenlabs_api_key)

    def synthesize(self, text: str) -> bytes:
        """Convert already-cleaned text to speech.

        Raises:
            ConfigurationError: If no API key is configured.
            ProviderError: If the API call fails or returns no audio.
        """
        if not self.is_configured:
            raise ConfigurationError("ElevenLabs API key not found")

        url = f"{self.config.elevenlabs_url.rstrip('/')}/{self.config.voice_id}"
        payload = {
            "text": text,
            "model_id": self.config.model_id,
            "voice_settings": {
                "stability": self.config.stability,
                "similarity_boost": self.config.similarity_boost,
            },
        }
        logger.debug("Requesting speech for %d characters", len(text))
        audio = post_for_bytes(
            url,
            payload,
            {"xi-api-key": self.config.elevenlabs_api_key},
            accept=AUDIO_CONTENT_TYPE,
            label="ElevenLabs",
        )
        if not audio:
            raise ProviderError("ElevenLabs returned an empty audio response")
        return audio
