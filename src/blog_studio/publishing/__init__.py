"""Storyblok publish/sync protocol."""

from blog_studio.publishing.sync import (
    attach_audio,
    build_story_content,
    ensure_blog_folder,
    find_existing_story,
    full_slug_for,
    publish_post,
    slugify,
    update_post,
)

__all__ = [
    "attach_audio",
    "build_story_content",
    "ensure_blog_folder",
    "find_existing_story",
    "full_slug_for",
    "publish_post",
    "slugify",
    "update_post",
]
