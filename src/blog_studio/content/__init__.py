"""Content domain: post models, local draft store and generation quota."""

from blog_studio.content.limits import RateLimiter
from blog_studio.content.models import (
    AudioStatus,
    BlogPost,
    GenerationRequest,
    Length,
    NoAsset,
    PostStatus,
    RateLimitStatus,
    Story,
    StoryContent,
    Tone,
    UrlAsset,
)
from blog_studio.content.storage import LocalStorage
from blog_studio.content.store import DraftStore

__all__ = [
    "AudioStatus",
    "BlogPost",
    "DraftStore",
    "GenerationRequest",
    "Length",
    "LocalStorage",
    "NoAsset",
    "PostStatus",
    "RateLimitStatus",
    "RateLimiter",
    "Story",
    "StoryContent",
    "Tone",
    "UrlAsset",
]
