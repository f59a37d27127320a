"""Hero image generation via fal.ai (Imagen 4).

Never fails the caller: when the provider is not configured or the call
fails, a placeholder image keyed by the theme is returned instead.
"""

from __future__ import annotations

import logging
import re

from blog_studio.config import ImageConfig
from blog_studio.errors import ProviderError
from blog_studio.generators.prompts import build_image_prompt
from blog_studio.integrations.providers import post_json

logger = logging.getLogger(__name__)

PLACEHOLDER_URL = "https://picsum.photos/seed/{seed}/1200/630"


def placeholder_image_url(theme: str) -> str:
    """Deterministic placeholder for a theme."""
    seed = re.sub(r"[^a-z0-9]+", "-", theme.lower()).strip("-") or "blog"
    return PLACEHOLDER_URL.format(seed=seed)


class ImageGenerator:
    """Generate hero images for blog posts via fal."""

    def __init__(self, config: ImageConfig) -> None:
        self.config = config

    def is_configured(self) -> bool:
        return self.config.is_configured

    def generate(self, theme: str) -> str:
        """Generate an image for ``theme`` and return its URL.

        Returns:
            The generated image URL, or the theme placeholder when the
            service is not configured or the call fails.
        """
        if not self.is_configured():
            logger.warning("Image generation not configured, using placeholder")
            return placeholder_image_url(theme)

        prompt = build_image_prompt(theme)
        logger.debug("Image prompt: %s", prompt)
        try:
            result = post_json(
                self.config.fal_url,
                {
                    "prompt": prompt,
                    "aspect_ratio": self.config.aspect_ratio,
                    "num_images": 1,
                },
                {"Authorization": f"Key {self.config.fal_api_key}"},
                label="fal",
            )
            url = result["images"][0]["url"]
        except (ProviderError, KeyError, IndexError, TypeError):
            logger.warning("Image generation failed for theme: %s", theme, exc_info=True)
            return placeholder_image_url(theme)

        logger.info("Generated image for %r: %s", theme, url)
        return url
