"""Narration audio for posts.

Two strategies implement ``AudioGenerator``: one goes through the
text-to-speech endpoint (keeping the ElevenLabs key server-side), the other
calls ElevenLabs directly.  Either way the result is a ``data:`` URI, which
survives restarts and can be stored verbatim in the CMS audio field.
"""

from __future__ import annotations

import base64
import logging
import re
from typing import Protocol

from blog_studio.config import TTSConfig
from blog_studio.errors import ProviderError, StudioError
from blog_studio.integrations.elevenlabs import AUDIO_CONTENT_TYPE, ElevenLabsClient
from blog_studio.integrations.providers import post_json

logger = logging.getLogger(__name__)

MAX_TTS_CHARS = 2500

_MARKDOWN_RULES: list[tuple[re.Pattern[str], str]] = [
    (re.compile(r"#{1,6}\s+"), ""),
    (re.compile(r"\*\*(.*?)\*\*"), r"\1"),
    (re.compile(r"\*(.*?)\*"), r"\1"),
    (re.compile(r"`(.*?)`"), r"\1"),
    (re.compile(r"\[(.*?)\]\(.*?\)"), r"\1"),
    (re.compile(r"\n+"), " "),
    (re.compile(r"\s+"), " "),
]


def prepare_text_for_tts(content: str) -> str:
    """Strip markdown and cap the text at the provider's character limit."""
    text = content
    for pattern, replacement in _MARKDOWN_RULES:
        text = pattern.sub(replacement, text)
    text = text.strip()
    if len(text) > MAX_TTS_CHARS:
        text = text[:MAX_TTS_CHARS] + "..."
    return text


def to_data_uri(audio: bytes, content_type: str = AUDIO_CONTENT_TYPE) -> str:
    encoded = base64.b64encode(audio).decode("ascii")
    return f"data:{content_type};base64,{encoded}"


class AudioGenerator(Protocol):
    def generate(self, text: str) -> str:
        """Return narration for ``text`` as a data URI."""
        ...


class DirectAudioGenerator:
    """Calls ElevenLabs from this process."""

    def __init__(self, client: ElevenLabsClient) -> None:
        self._client = client

    def generate(self, text: str) -> str:
        audio = self._client.synthesize(prepare_text_for_tts(text))
        logger.info("Generated %d bytes of audio directly", len(audio))
        return to_data_uri(audio)


class ServerAudioGenerator:
    """Asks the text-to-speech endpoint for base64 audio."""

    def __init__(self, server_url: str) -> None:
        self._server_url = server_url

    def generate(self, text: str) -> str:
        result = post_json(
            self._server_url,
            {"text": prepare_text_for_tts(text)},
            {},
            label="Text-to-speech server",
        )
        audio = result.get("audio")
        if not audio:
            raise ProviderError(result.get("message") or "Text-to-speech server returned no audio")
        content_type = result.get("contentType") or AUDIO_CONTENT_TYPE
        logger.info("Generated audio via %s", self._server_url)
        return f"data:{content_type};base64,{audio}"


class FallbackAudioGenerator:
    """Try ``primary``; on any studio error fall back to ``fallback``."""

    def __init__(self, primary: AudioGenerator, fallback: AudioGenerator) -> None:
        self._primary = primary
        self._fallback = fallback

    def generate(self, text: str) -> str:
        try:
            return self._primary.generate(text)
        except StudioError:
            logger.warning("Primary audio path failed, falling back", exc_info=True)
            return self._fallback.generate(text)


def create_audio_generator(config: TTSConfig) -> AudioGenerator:
    """Pick the audio strategy from the ``use_server`` flag."""
    direct = DirectAudioGenerator(ElevenLabsClient(config))
    if config.use_server:
        return FallbackAudioGenerator(ServerAudioGenerator(config.server_url), direct)
    return direct
