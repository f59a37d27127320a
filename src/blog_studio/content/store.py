"""Local draft store and admin session flag.

Keeps every generated post in one JSON array under ``POSTS_KEY``, newest
first.  This is a cache for the studio, not a database: storage failures
are logged and degrade to "no data" instead of propagating.
"""

from __future__ import annotations

import hmac
import json
import logging
import time
from collections.abc import Callable
from typing import Any

from pydantic import TypeAdapter
from pydantic import ValidationError as PydanticValidationError

from blog_studio.content.models import BlogPost
from blog_studio.content.storage import LocalStorage, StorageError

logger = logging.getLogger(__name__)

POSTS_KEY = "ai-blog-studio-posts"
AUTH_KEY = "ai-blog-studio-auth"

SESSION_MS = 24 * 60 * 60 * 1000

_POSTS_ADAPTER = TypeAdapter(list[BlogPost])


def _now_ms() -> int:
    return int(time.time() * 1000)


def check_password(password: str, expected: str) -> bool:
    """Compare an entered admin password with the configured one."""
    if not expected:
        return False
    return hmac.compare_digest(password.encode("utf-8"), expected.encode("utf-8"))


class DraftStore:
    """CRUD over locally stored posts plus a 24-hour session flag."""

    def __init__(
        self,
        storage: LocalStorage,
        *,
        clock: Callable[[], int] = _now_ms,
        session_ms: int = SESSION_MS,
    ) -> None:
        self._storage = storage
        self._clock = clock
        self._session_ms = session_ms

    # ── Private helpers ──────────────────────────────────────────

    def _load(self) -> list[BlogPost]:
        try:
            raw = self._storage.get_item(POSTS_KEY)
            if not raw:
                return []
            return _POSTS_ADAPTER.validate_json(raw)
        except (StorageError, PydanticValidationError, ValueError):
            logger.warning("Could not read stored posts, treating as empty", exc_info=True)
            return []

    def _save(self, posts: list[BlogPost]) -> None:
        payload = json.dumps([p.to_storage() for p in posts])
        try:
            self._storage.set_item(POSTS_KEY, payload)
        except StorageError:
            logger.warning("Could not save %d posts", len(posts), exc_info=True)

    # ── Posts ────────────────────────────────────────────────────

    def list(self) -> list[BlogPost]:
        """Return all posts, most recently added first."""
        return self._load()

    def get(self, post_id: str) -> BlogPost | None:
        for post in self._load():
            if post.id == post_id:
                return post
        return None

    def add(self, post: BlogPost) -> None:
        """Prepend a post. Ids are not checked for uniqueness."""
        posts = self._load()
        posts.insert(0, post)
        self._save(posts)

    def update(self, post_id: str, **changes: Any) -> BlogPost | None:
        """Shallow-merge ``changes`` into the matching post.

        Returns the updated post, or None (and writes nothing) when the id
        is unknown.
        """
        posts = self._load()
        for index, post in enumerate(posts):
            if post.id == post_id:
                merged = {**post.model_dump(), **changes}
                posts[index] = BlogPost.model_validate(merged)
                self._save(posts)
                return posts[index]
        return None

    def remove(self, post_id: str) -> None:
        posts = self._load()
        self._save([p for p in posts if p.id != post_id])

    # ── Session ──────────────────────────────────────────────────

    def is_authenticated(self) -> bool:
        """True while the stored login timestamp is younger than the session."""
        try:
            raw = self._storage.get_item(AUTH_KEY)
            if not raw:
                return False
            timestamp = json.loads(raw)["timestamp"]
            return self._clock() - int(timestamp) < self._session_ms
        except (StorageError, ValueError, KeyError, TypeError):
            logger.debug("Unreadable auth record", exc_info=True)
            return False

    def set_authenticated(self) -> None:
        try:
            self._storage.set_item(AUTH_KEY, json.dumps({"timestamp": self._clock()}))
        except StorageError:
            logger.warning("Could not persist login", exc_info=True)

    def clear_auth(self) -> None:
        try:
            self._storage.remove_item(AUTH_KEY)
        except StorageError:
            logger.warning("Could not clear login", exc_info=True)
