"""AI blog studio: generate, narrate and publish blog posts to Storyblok."""

__version__ = "0.1.0"
