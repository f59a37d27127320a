"""Studio workflow: generate, edit, publish and narrate posts.

``Studio`` is the one place that wires the draft store, the rate limiter,
the generators and the Storyblok client together.  The CLI and tests build
it through ``Studio.from_config`` or inject fakes directly.
"""

from __future__ import annotations

import asyncio
import logging
from datetime import UTC, datetime
from typing import Any

from pydantic import ValidationError as PydanticValidationError

from blog_studio.config import StudioConfig
from blog_studio.content.limits import RateLimiter
from blog_studio.content.models import (
    AudioStatus,
    BlogPost,
    GenerationRequest,
    PostStatus,
    RateLimitStatus,
    Story,
)
from blog_studio.content.storage import LocalStorage
from blog_studio.content.store import DraftStore
from blog_studio.errors import (
    CMSError,
    PostNotFoundError,
    ProviderError,
    RateLimitError,
    StudioError,
)
from blog_studio.generators.audio import AudioGenerator, create_audio_generator
from blog_studio.generators.images import ImageGenerator
from blog_studio.generators.text import ContentGenerator, ParsedPost, create_backend
from blog_studio.integrations.storyblok import StoryblokAPIClient
from blog_studio.publishing.sync import attach_audio, publish_post

logger = logging.getLogger(__name__)

# Fields a local edit may change; identity and lifecycle fields are owned
# by the workflow.
EDITABLE_FIELDS = frozenset({"title", "content", "excerpt", "image_url", "theme", "tone", "length"})


class Studio:
    """Operations behind the studio pages."""

    def __init__(
        self,
        *,
        store: DraftStore,
        limiter: RateLimiter,
        content_generator: ContentGenerator,
        image_generator: ImageGenerator,
        audio_generator: AudioGenerator,
        cms: StoryblokAPIClient,
    ) -> None:
        self.store = store
        self.limiter = limiter
        self.content_generator = content_generator
        self.image_generator = image_generator
        self.audio_generator = audio_generator
        self.cms = cms

    @classmethod
    def from_config(cls, config: StudioConfig) -> Studio:
        storage = LocalStorage(config.data_path)
        return cls(
            store=DraftStore(
                storage,
                session_ms=config.studio.session_hours * 60 * 60 * 1000,
            ),
            limiter=RateLimiter(storage, max_requests=config.studio.max_requests_per_hour),
            content_generator=ContentGenerator(create_backend(config.llm)),
            image_generator=ImageGenerator(config.images),
            audio_generator=create_audio_generator(config.tts),
            cms=StoryblokAPIClient(config.storyblok),
        )

    # ── Private helpers ──────────────────────────────────────────

    def _require(self, post_id: str) -> BlogPost:
        post = self.store.get(post_id)
        if post is None:
            raise PostNotFoundError(f"No post with id {post_id}")
        return post

    def _update(self, post_id: str, **changes: Any) -> BlogPost:
        updated = self.store.update(post_id, **changes)
        if updated is None:
            raise PostNotFoundError(f"No post with id {post_id}")
        return updated

    async def _fan_out(self, request: GenerationRequest) -> tuple[ParsedPost, str]:
        parsed, image_url = await asyncio.gather(
            asyncio.to_thread(self.content_generator.generate, request),
            asyncio.to_thread(self.image_generator.generate, request.theme),
        )
        return parsed, image_url

    def _generate_parts(self, request: GenerationRequest) -> tuple[ParsedPost, str]:
        """Run text and image generation concurrently.

        The first failure propagates; nothing is saved for the request.
        """
        status = self.limiter.check_limit()
        if status.is_limited:
            raise RateLimitError(
                "Rate limit exceeded. Please wait before generating more content.",
                reset_time=status.reset_time,
            )
        self.limiter.record_request()
        return asyncio.run(self._fan_out(request))

    # ── Posts ────────────────────────────────────────────────────

    def posts(self) -> list[BlogPost]:
        return self.store.list()

    def get(self, post_id: str) -> BlogPost:
        return self._require(post_id)

    def rate_limit(self) -> RateLimitStatus:
        return self.limiter.check_limit()

    def generate(self, request: GenerationRequest) -> BlogPost:
        """Generate a new post and save it at the head of the draft list.

        Raises:
            RateLimitError: If the hourly quota is used up.
            ProviderError: If content generation fails.
        """
        parsed, image_url = self._generate_parts(request)
        post = BlogPost(
            title=parsed.title,
            content=parsed.content,
            excerpt=parsed.excerpt,
            image_url=image_url,
            theme=request.theme,
            tone=request.tone,
            length=request.length,
            status=PostStatus.GENERATED,
        )
        self.store.add(post)
        logger.info("Generated post %s: %r", post.id, post.title)
        return post

    def regenerate(self, post_id: str) -> BlogPost:
        """Re-run generation with the post's own options, in place."""
        post = self._require(post_id)
        request = GenerationRequest(theme=post.theme, tone=post.tone, length=post.length)
        parsed, image_url = self._generate_parts(request)
        logger.info("Regenerated post %s", post_id)
        return self._update(
            post_id,
            title=parsed.title,
            content=parsed.content,
            excerpt=parsed.excerpt,
            image_url=image_url,
            status=PostStatus.GENERATED,
        )

    def edit(self, post_id: str, **changes: Any) -> BlogPost:
        unknown = set(changes) - EDITABLE_FIELDS
        if unknown:
            raise StudioError(f"Cannot edit field(s): {', '.join(sorted(unknown))}")
        self._require(post_id)
        try:
            return self._update(post_id, **changes)
        except PydanticValidationError as exc:
            error = exc.errors()[0]
            field = ".".join(str(part) for part in error["loc"])
            raise StudioError(f"Invalid value for {field}: {error['msg']}") from exc

    def delete(self, post_id: str) -> None:
        """Remove the local post. A published story stays in the CMS."""
        self._require(post_id)
        self.store.remove(post_id)
        logger.info("Deleted local post %s", post_id)

    # ── CMS ──────────────────────────────────────────────────────

    def publish(self, post_id: str) -> BlogPost:
        """Publish (or re-publish) a post to Storyblok.

        Raises:
            ConfigurationError: If Storyblok credentials are missing.
            CMSError: If the story cannot be created or updated.
        """
        post = self._require(post_id)
        story_id = publish_post(self.cms, post)
        return self._update(
            post_id,
            status=PostStatus.PUBLISHED,
            published_at=datetime.now(tz=UTC),
            storyblok_id=story_id,
        )

    def generate_audio(self, post_id: str) -> BlogPost:
        """Narrate a post and, when it is published, attach the audio to its story.

        Raises:
            ProviderError: If narration fails; the post is left with
                ``audio_status=error``.
        """
        post = self._require(post_id)
        self._update(post_id, audio_status=AudioStatus.GENERATING)
        try:
            audio_url = self.audio_generator.generate(post.content)
        except Exception as exc:
            logger.error("Audio generation failed for post %s", post_id, exc_info=True)
            self._update(post_id, audio_status=AudioStatus.ERROR)
            raise ProviderError(f"Failed to generate audio: {exc}") from exc

        updated = self._update(post_id, audio_url=audio_url, audio_status=AudioStatus.READY)
        if updated.status == PostStatus.PUBLISHED and updated.storyblok_id:
            if not attach_audio(self.cms, updated.storyblok_id, audio_url):
                logger.warning("Audio saved locally but not attached to story %s", updated.storyblok_id)
        return updated

    def stories(self) -> list[Story]:
        """Published blog stories, newest as the CDN orders them."""
        if not self.cms.config.preview_token:
            logger.warning("STORYBLOK_TOKEN is not set, no stories to show")
            return []
        try:
            raw = self.cms.list_published_stories()
        except CMSError:
            logger.error("Error fetching stories", exc_info=True)
            return []

        stories: list[Story] = []
        for story in raw:
            try:
                stories.append(Story.model_validate(story))
            except PydanticValidationError:
                logger.warning("Skipping malformed story %s", story.get("id"), exc_info=True)
        return stories
