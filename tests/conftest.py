"""Shared fixtures: an in-memory Storyblok space."""

from __future__ import annotations

import copy
from typing import Any

import pytest

from blog_studio.errors import CMSError, NotFoundError
from blog_studio.integrations.storyblok import StoryblokConfig


class FakeStoryblok:
    """Stands in for StoryblokAPIClient with stories kept in a dict.

    ``fail`` maps a method name to the error it should raise.  Set
    ``fail_folder_create`` to reject folder creation only.
    """

    def __init__(self, config: StoryblokConfig | None = None) -> None:
        self.config = config or StoryblokConfig(
            space_id="12345",
            management_token="mgmt-token",
            preview_token="preview-token",
        )
        self.stories: dict[int, dict[str, Any]] = {}
        self.published: set[int] = set()
        self.calls: list[str] = []
        self.fail: dict[str, CMSError] = {}
        self.fail_folder_create = False
        self._next_id = 1000

    def _enter(self, name: str) -> None:
        self.calls.append(name)
        if name in self.fail:
            raise self.fail[name]

    def _lookup(self, story_id: str | int) -> dict[str, Any]:
        story = self.stories.get(int(story_id))
        if story is None:
            raise NotFoundError(f"Story {story_id} not found", status=404)
        return story

    def list_stories(self, **params: Any) -> list[dict]:
        self._enter("list_stories")
        prefix = params.get("starts_with", "")
        return [
            copy.deepcopy(story)
            for story in self.stories.values()
            if story["full_slug"].startswith(prefix)
        ]

    def get_story(self, story_id: str | int) -> dict:
        self._enter("get_story")
        return copy.deepcopy(self._lookup(story_id))

    def create_story(self, story: dict) -> dict:
        self._enter("create_story")
        if story.get("is_folder") and self.fail_folder_create:
            raise CMSError("folder creation rejected", status=500)
        self._next_id += 1
        stored = {
            "content": {},
            **copy.deepcopy(story),
            "id": self._next_id,
            "full_slug": story["slug"],
        }
        self.stories[self._next_id] = stored
        return copy.deepcopy(stored)

    def update_story(self, story_id: str | int, story: dict) -> dict:
        self._enter("update_story")
        stored = self._lookup(story_id)
        stored.update(copy.deepcopy(story))
        return copy.deepcopy(stored)

    def publish_story(self, story_id: str | int) -> dict:
        self._enter("publish_story")
        self._lookup(story_id)
        self.published.add(int(story_id))
        return {}

    def list_published_stories(self) -> list[dict]:
        self._enter("list_published_stories")
        return [copy.deepcopy(self.stories[i]) for i in sorted(self.published)]

    def blog_stories(self) -> list[dict]:
        return [s for s in self.stories.values() if not s.get("is_folder")]


@pytest.fixture
def fake_cms() -> FakeStoryblok:
    return FakeStoryblok()
