"""Publish/sync protocol between local posts and Storyblok stories.

Storyblok has no upsert-by-slug and treats creation and publishing as
separate transitions, so this module layers upsert semantics on top of
list/get/create/update/publish:

* a post that already carries a ``storyblok_id`` is updated in place;
* otherwise the ``blog/`` folder is scanned for a story with the same full
  slug, and a match is updated instead of creating a second story;
* only when neither exists is a draft created and then published.

Two titles that slugify identically resolve to the same story; no
disambiguation suffix is added.
"""

from __future__ import annotations

import json
import logging
import re
from typing import Any

from blog_studio.content.models import BlogPost, UrlAsset, asset_from_url
from blog_studio.errors import (
    AuthenticationError,
    CMSError,
    ConfigurationError,
    NotFoundError,
    PermissionDeniedError,
    ValidationError,
)
from blog_studio.integrations.storyblok import StoryblokAPIClient

logger = logging.getLogger(__name__)

ROOT_FOLDER_ID = 0
LIST_PAGE_SIZE = 100

_NON_ALNUM_RE = re.compile(r"[^a-z0-9]+")


def slugify(title: str) -> str:
    """Lowercase, collapse non-alphanumeric runs to ``-``, trim ``-``."""
    return _NON_ALNUM_RE.sub("-", title.lower()).strip("-")


def full_slug_for(title: str, folder_slug: str = "blog") -> str:
    return f"{folder_slug}/{slugify(title)}"


def build_story_content(post: BlogPost, component: str = "blog_post") -> dict[str, Any]:
    """Build the story ``content`` block for a post.

    Scalar fields are always present.  ``image`` and ``audio`` are only
    included when they hold a well-formed URL; otherwise the key is left
    out so the post publishes without that media.
    """
    content: dict[str, Any] = {
        "component": component,
        "title": post.title,
        "content": post.content,
        "excerpt": post.excerpt,
        "theme": post.theme,
        "tone": str(post.tone),
    }
    for field, raw in (("image", post.image_url), ("audio", post.audio_url)):
        asset = asset_from_url(raw)
        if isinstance(asset, UrlAsset):
            content[field] = asset.value
        elif raw:
            logger.warning("Invalid %s URL, publishing without it: %.80s", field, raw)
    return content


def find_existing_story(client: StoryblokAPIClient, full_slug: str) -> dict | None:
    """Return the story stored at ``full_slug``, or None.

    Lookup failures are logged and reported as "not found".
    """
    folder = full_slug.split("/", 1)[0]
    try:
        stories = client.list_stories(per_page=LIST_PAGE_SIZE, starts_with=f"{folder}/")
    except CMSError:
        logger.warning("Could not check for existing story at %s", full_slug, exc_info=True)
        return None

    for story in stories:
        if story.get("slug") == full_slug or story.get("full_slug") == full_slug:
            logger.info("Found existing story %s at %s", story.get("id"), full_slug)
            return story
    return None


def ensure_blog_folder(client: StoryblokAPIClient) -> int:
    """Get or create the blog folder and return its id.

    Falls back to the root folder (0) if the lookup or creation fails.
    """
    folder_slug = client.config.folder_slug
    try:
        stories = client.list_stories(per_page=LIST_PAGE_SIZE)
        for story in stories:
            if story.get("is_folder") and story.get("slug") == folder_slug:
                return int(story["id"])

        logger.info("Folder '%s' not found, creating it", folder_slug)
        created = client.create_story(
            {
                "name": folder_slug.capitalize(),
                "slug": folder_slug,
                "is_folder": True,
                "parent_id": ROOT_FOLDER_ID,
            }
        )
        return int(created["id"])
    except (CMSError, KeyError, TypeError, ValueError):
        logger.warning("Could not ensure '%s' folder, using root", folder_slug, exc_info=True)
        return ROOT_FOLDER_ID


def _check_configured(client: StoryblokAPIClient) -> None:
    if not client.config.space_id:
        raise ConfigurationError("STORYBLOK_SPACE_ID is not set")
    if not client.config.management_token:
        raise ConfigurationError("STORYBLOK_MANAGEMENT_TOKEN is not set")


def _publish_error(exc: CMSError) -> CMSError:
    """Re-raise a CMS failure with a message the studio can show as-is."""
    if isinstance(exc, AuthenticationError):
        return AuthenticationError(
            "Authentication failed. Check your STORYBLOK_MANAGEMENT_TOKEN",
            status=exc.status,
        )
    if isinstance(exc, PermissionDeniedError):
        return PermissionDeniedError(
            "Permission denied. Make sure your management token has write permissions",
            status=exc.status,
        )
    if isinstance(exc, NotFoundError):
        return NotFoundError("Resource not found. Check your space ID", status=exc.status)
    if isinstance(exc, ValidationError):
        return ValidationError(
            f"Validation error: {json.dumps(exc.details, default=str)}", status=exc.status, details=exc.details
        )
    return CMSError(f"Failed to publish to Storyblok: {exc}", status=exc.status)


def publish_post(client: StoryblokAPIClient, post: BlogPost) -> str:
    """Make sure exactly one live story exists for ``post``.

    Returns:
        The story id as a string.

    Raises:
        ConfigurationError: If the space id or management token is missing.
        CMSError: For API failures, as AuthenticationError,
            PermissionDeniedError, NotFoundError or ValidationError where
            the status identifies them.
    """
    _check_configured(client)
    full_slug = full_slug_for(post.title, client.config.folder_slug)

    if post.storyblok_id:
        logger.info("Updating existing story %s", post.storyblok_id)
        return _update_or_raise(client, post.storyblok_id, post)

    existing = find_existing_story(client, full_slug)
    if existing:
        return _update_or_raise(client, str(existing["id"]), post)

    try:
        folder_id = ensure_blog_folder(client)
        created = client.create_story(
            {
                "name": post.title,
                "slug": full_slug,
                "content": build_story_content(post, client.config.content_type),
                "is_folder": False,
                "parent_id": folder_id,
            }
        )
    except CMSError as exc:
        logger.error("Failed to create story for '%s'", post.title, exc_info=True)
        raise _publish_error(exc) from exc

    story_id = created.get("id")
    if not story_id:
        raise CMSError("Failed to create story - no ID returned")
    logger.info("Created draft story %s at %s", story_id, full_slug)

    try:
        client.publish_story(story_id)
        logger.info("Published story %s", story_id)
    except CMSError:
        # The draft stays; a later update_post can publish it.
        logger.warning("Story %s created but not published", story_id, exc_info=True)

    return str(story_id)


def _update_or_raise(client: StoryblokAPIClient, story_id: str, post: BlogPost) -> str:
    if not update_post(client, story_id, post):
        raise CMSError(f"Failed to update existing story {story_id}")
    return story_id


def update_post(client: StoryblokAPIClient, story_id: str, post: BlogPost) -> bool:
    """Replace a story's content and publish it. Never renames.

    Returns False instead of raising on any failure.
    """
    try:
        content = build_story_content(post, client.config.content_type)
        client.update_story(story_id, {"content": content})
        client.publish_story(story_id)
    except Exception:
        logger.error("Error updating story %s", story_id, exc_info=True)
        return False
    logger.info("Story %s updated and published", story_id)
    return True


def attach_audio(client: StoryblokAPIClient, story_id: str, audio: Any) -> bool:
    """Set the audio field of a story, keeping every other content field.

    The story is re-fetched first. Returns False instead of raising.
    """
    try:
        story = client.get_story(story_id)
        content = {**(story.get("content") or {}), "audio": audio}
        client.update_story(story_id, {"content": content})
        client.publish_story(story_id)
    except Exception:
        logger.error("Error adding audio to story %s", story_id, exc_info=True)
        return False
    logger.info("Audio attached to story %s", story_id)
    return True
