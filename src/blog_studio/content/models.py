"""Content domain models: pure Pydantic v2 data types.

BlogPost is the locally owned record of a generated article.  Story is the
mirrored Storyblok entity; its asset fields are decoded once, at the
boundary, into the Asset tagged union so nothing downstream has to guess
whether a value is a string, an asset object or missing.
"""

from __future__ import annotations

import re
import time
from datetime import UTC, datetime
from enum import StrEnum
from typing import Annotated, Any, Literal
from urllib.parse import urlsplit

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


class Tone(StrEnum):
    PROFESSIONAL = "professional"
    CASUAL = "casual"
    HUMOROUS = "humorous"


class Length(StrEnum):
    SHORT = "short"
    MEDIUM = "medium"
    LONG = "long"


class PostStatus(StrEnum):
    """Lifecycle status of a local post."""

    DRAFT = "draft"
    GENERATED = "generated"
    PUBLISHED = "published"


class AudioStatus(StrEnum):
    NONE = "none"
    GENERATING = "generating"
    READY = "ready"
    ERROR = "error"


def new_post_id() -> str:
    """Time-based opaque id (epoch milliseconds)."""
    return str(int(time.time() * 1000))


class BlogPost(BaseModel):
    """A generated post, stored locally before and after publishing.

    ``storyblok_id`` is only set once the post reached the CMS; deleting the
    local record never deletes the remote story.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    id: str = Field(default_factory=new_post_id)
    title: str
    content: str
    excerpt: str = ""
    image_url: str = ""
    theme: str
    tone: Tone = Tone.PROFESSIONAL
    length: Length = Length.MEDIUM
    status: PostStatus = PostStatus.DRAFT
    audio_status: AudioStatus | None = None
    created_at: datetime = Field(default_factory=lambda: datetime.now(tz=UTC))
    published_at: datetime | None = None
    storyblok_id: str | None = None
    audio_url: str | None = None

    def to_storage(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class GenerationRequest(BaseModel):
    """Options for one content + image generation."""

    theme: str
    tone: Tone = Tone.PROFESSIONAL
    length: Length = Length.MEDIUM


class RateLimitStatus(BaseModel):
    remaining: int
    reset_time: int
    is_limited: bool


# ── Assets ──────────────────────────────────────────────────────────────


class UrlAsset(BaseModel):
    kind: Literal["url"] = "url"
    value: str


class NoAsset(BaseModel):
    kind: Literal["none"] = "none"


Asset = Annotated[UrlAsset | NoAsset, Field(discriminator="kind")]

_SCHEME_RE = re.compile(r"^[A-Za-z][A-Za-z0-9+.-]*$")
_HOST_SCHEMES = {"http", "https", "ftp", "ws", "wss"}


def is_valid_url(value: str) -> bool:
    """Check that ``value`` parses as an absolute URL.

    Any scheme is accepted (``data:`` URIs included); web schemes must
    also carry a host.
    """
    if not value or any(ch.isspace() for ch in value):
        return False
    try:
        parts = urlsplit(value)
    except ValueError:
        return False
    if not parts.scheme or not _SCHEME_RE.match(parts.scheme):
        return False
    if parts.scheme.lower() in _HOST_SCHEMES:
        return bool(parts.netloc)
    return bool(parts.netloc or parts.path)


def asset_from_url(raw: str | None) -> UrlAsset | NoAsset:
    """Decode a locally held URL; empty or malformed values become NoAsset."""
    if not isinstance(raw, str):
        return NoAsset()
    cleaned = raw.strip()
    if cleaned and is_valid_url(cleaned):
        return UrlAsset(value=cleaned)
    return NoAsset()


def decode_asset(raw: Any) -> UrlAsset | NoAsset:
    """Decode a CMS asset field: a plain URL string or an asset object."""
    if isinstance(raw, UrlAsset | NoAsset):
        return raw
    if isinstance(raw, str):
        return UrlAsset(value=raw) if raw.strip() else NoAsset()
    if isinstance(raw, dict):
        if raw.get("kind") in ("url", "none"):
            return UrlAsset(value=raw["value"]) if raw["kind"] == "url" else NoAsset()
        filename = raw.get("filename")
        if isinstance(filename, str) and filename.strip():
            return UrlAsset(value=filename)
    return NoAsset()


# ── Stories ─────────────────────────────────────────────────────────────


class StoryContent(BaseModel):
    """The ``content`` block of a blog_post story."""

    model_config = ConfigDict(extra="allow")

    title: str = ""
    content: str = ""
    excerpt: str = ""
    theme: str = ""
    tone: str = ""
    image: Asset = Field(default_factory=NoAsset)
    audio: Asset = Field(default_factory=NoAsset)

    @field_validator("image", "audio", mode="before")
    @classmethod
    def _decode_asset(cls, value: Any) -> UrlAsset | NoAsset:
        return decode_asset(value)

    @property
    def image_url(self) -> str:
        return self.image.value if isinstance(self.image, UrlAsset) else ""

    @property
    def audio_url(self) -> str:
        return self.audio.value if isinstance(self.audio, UrlAsset) else ""


class Story(BaseModel):
    """A Storyblok story as returned by the CDN or management API."""

    model_config = ConfigDict(extra="ignore")

    id: int
    name: str = ""
    slug: str = ""
    full_slug: str = ""
    content: StoryContent = Field(default_factory=StoryContent)
    published_at: str | None = None
