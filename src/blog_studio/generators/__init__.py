"""Generators for post text, hero images and narration audio."""

from blog_studio.generators.audio import (
    AudioGenerator,
    create_audio_generator,
    prepare_text_for_tts,
)
from blog_studio.generators.images import ImageGenerator, placeholder_image_url
from blog_studio.generators.text import (
    ContentGenerator,
    ParsedPost,
    ParseSource,
    create_backend,
    parse_generated_post,
)

__all__ = [
    "AudioGenerator",
    "ContentGenerator",
    "ImageGenerator",
    "ParseSource",
    "ParsedPost",
    "create_audio_generator",
    "create_backend",
    "parse_generated_post",
    "placeholder_image_url",
    "prepare_text_for_tts",
]
