"""Tests for the Storyblok REST client."""

from __future__ import annotations

import http.client
import io
import json
import urllib.error
from unittest.mock import MagicMock, patch
from urllib.parse import parse_qs, urlsplit

import pytest

from blog_studio.errors import (
    AuthenticationError,
    CMSError,
    NotFoundError,
    PermissionDeniedError,
    ValidationError,
)
from blog_studio.integrations.storyblok import StoryblokAPIClient, StoryblokConfig

_TEST_CONFIG = StoryblokConfig(
    space_id="12345",
    management_token="mgmt-token",
    preview_token="preview-token",
)


def _mock_response(payload: object) -> MagicMock:
    mock_response = MagicMock()
    body = payload if isinstance(payload, bytes) else json.dumps(payload).encode()
    mock_response.read.return_value = body
    mock_response.__enter__ = lambda s: s
    mock_response.__exit__ = MagicMock(return_value=False)
    return mock_response


def _http_error(code: int, body: bytes = b"") -> urllib.error.HTTPError:
    return urllib.error.HTTPError(
        "https://mapi.storyblok.com/v1/spaces/12345/stories",
        code,
        "error",
        hdrs=None,  # type: ignore[arg-type]
        fp=io.BytesIO(body),
    )


# ── StoryblokConfig ─────────────────────────────────────────────────────


class TestStoryblokConfig:
    def test_is_configured(self):
        assert _TEST_CONFIG.is_configured is True

    def test_not_configured_without_token(self):
        assert StoryblokConfig(space_id="1").is_configured is False

    def test_defaults(self):
        cfg = StoryblokConfig()
        assert cfg.management_url == "https://mapi.storyblok.com/v1"
        assert cfg.folder_slug == "blog"
        assert cfg.content_type == "blog_post"


# ── Stories ─────────────────────────────────────────────────────────────


class TestStoryRequests:
    def test_list_stories_request_format(self):
        client = StoryblokAPIClient(_TEST_CONFIG)
        response = _mock_response({"stories": [{"id": 1, "slug": "blog/a"}]})

        with patch("urllib.request.urlopen", return_value=response) as mock_urlopen:
            stories = client.list_stories(per_page=100, starts_with="blog/")

        assert stories == [{"id": 1, "slug": "blog/a"}]
        req = mock_urlopen.call_args[0][0]
        parts = urlsplit(req.full_url)
        assert parts.path == "/v1/spaces/12345/stories"
        assert parse_qs(parts.query) == {"per_page": ["100"], "starts_with": ["blog/"]}
        assert req.method == "GET"
        assert req.get_header("Authorization") == "mgmt-token"

    def test_create_story_wraps_payload(self):
        client = StoryblokAPIClient(_TEST_CONFIG)
        response = _mock_response({"story": {"id": 77, "name": "Hello"}})

        with patch("urllib.request.urlopen", return_value=response) as mock_urlopen:
            created = client.create_story({"name": "Hello", "slug": "blog/hello"})

        assert created["id"] == 77
        req = mock_urlopen.call_args[0][0]
        assert req.method == "POST"
        assert req.get_header("Content-type") == "application/json"
        assert json.loads(req.data) == {"story": {"name": "Hello", "slug": "blog/hello"}}

    def test_update_story_uses_put(self):
        client = StoryblokAPIClient(_TEST_CONFIG)
        response = _mock_response({"story": {"id": 77}})

        with patch("urllib.request.urlopen", return_value=response) as mock_urlopen:
            client.update_story(77, {"content": {"title": "x"}})

        req = mock_urlopen.call_args[0][0]
        assert req.method == "PUT"
        assert req.full_url.endswith("/spaces/12345/stories/77")
        assert json.loads(req.data) == {"story": {"content": {"title": "x"}}}

    def test_publish_story_is_get(self):
        client = StoryblokAPIClient(_TEST_CONFIG)

        with patch("urllib.request.urlopen", return_value=_mock_response(b"")) as mock_urlopen:
            assert client.publish_story("77") == {}

        req = mock_urlopen.call_args[0][0]
        assert req.method == "GET"
        assert req.full_url.endswith("/spaces/12345/stories/77/publish")

    def test_get_story_unwraps(self):
        client = StoryblokAPIClient(_TEST_CONFIG)
        response = _mock_response({"story": {"id": 5, "content": {"title": "T"}}})
        with patch("urllib.request.urlopen", return_value=response):
            assert client.get_story(5)["content"]["title"] == "T"


# ── Errors ──────────────────────────────────────────────────────────────


class TestErrors:
    @pytest.mark.parametrize(
        ("code", "error_cls"),
        [
            (401, AuthenticationError),
            (403, PermissionDeniedError),
            (404, NotFoundError),
            (422, ValidationError),
        ],
    )
    def test_status_maps_to_error(self, code, error_cls):
        client = StoryblokAPIClient(_TEST_CONFIG)
        with patch("urllib.request.urlopen", side_effect=_http_error(code)):
            with pytest.raises(error_cls) as exc_info:
                client.list_stories()
        assert exc_info.value.status == code

    def test_slug_conflict_details(self):
        client = StoryblokAPIClient(_TEST_CONFIG)
        body = json.dumps({"slug": ["is already taken"]}).encode()
        with patch("urllib.request.urlopen", side_effect=_http_error(422, body)):
            with pytest.raises(ValidationError) as exc_info:
                client.create_story({"name": "x", "slug": "blog/x"})
        assert exc_info.value.details == {"slug": ["is already taken"]}
        assert exc_info.value.is_slug_conflict is True

    def test_unmapped_status_is_generic(self):
        client = StoryblokAPIClient(_TEST_CONFIG)
        with patch("urllib.request.urlopen", side_effect=_http_error(500, b"oops")):
            with pytest.raises(CMSError) as exc_info:
                client.list_stories()
        assert type(exc_info.value) is CMSError
        assert exc_info.value.details == "oops"

    def test_connection_error(self):
        client = StoryblokAPIClient(_TEST_CONFIG)
        with patch("urllib.request.urlopen", side_effect=urllib.error.URLError("refused")):
            with pytest.raises(CMSError, match="refused"):
                client.list_stories()

    def test_dropped_connection(self):
        client = StoryblokAPIClient(_TEST_CONFIG)
        with patch("urllib.request.urlopen", side_effect=http.client.RemoteDisconnected("closed")):
            with pytest.raises(CMSError, match="closed"):
                client.list_stories()


# ── Assets ──────────────────────────────────────────────────────────────


class TestAssets:
    def test_create_asset(self):
        client = StoryblokAPIClient(_TEST_CONFIG)
        signed = {"id": 9, "post_url": "https://s3.example/upload", "fields": {}}
        with patch("urllib.request.urlopen", return_value=_mock_response(signed)) as mock_urlopen:
            assert client.create_asset("1-text-to-speech.mp3") == signed
        req = mock_urlopen.call_args[0][0]
        assert req.full_url.endswith("/spaces/12345/assets/")
        assert json.loads(req.data) == {"filename": "1-text-to-speech.mp3"}

    def test_signed_upload_is_multipart(self):
        client = StoryblokAPIClient(_TEST_CONFIG)
        signed = {
            "post_url": "https://s3.example/upload",
            "fields": {"key": "f/1/a.mp3", "policy": "abc", "empty": ""},
        }
        with patch("urllib.request.urlopen", return_value=_mock_response(b"<xml/>")) as mock_urlopen:
            client.upload_signed_asset(signed, b"ID3audio", "a.mp3")

        req = mock_urlopen.call_args[0][0]
        assert req.full_url == "https://s3.example/upload"
        assert req.get_header("Content-type").startswith("multipart/form-data; boundary=")
        assert req.get_header("Authorization") is None
        assert b'name="key"' in req.data
        assert b'name="empty"' not in req.data
        assert b'filename="a.mp3"' in req.data
        assert b"ID3audio" in req.data

    def test_delete_asset(self):
        client = StoryblokAPIClient(_TEST_CONFIG)
        with patch("urllib.request.urlopen", return_value=_mock_response(b"")) as mock_urlopen:
            client.delete_asset(9)
        req = mock_urlopen.call_args[0][0]
        assert req.method == "DELETE"
        assert req.full_url.endswith("/assets/9")


# ── CDN ─────────────────────────────────────────────────────────────────


class TestPublishedStories:
    def test_cdn_query(self):
        client = StoryblokAPIClient(_TEST_CONFIG)
        response = _mock_response({"stories": [{"id": 1}]})

        with patch("urllib.request.urlopen", return_value=response) as mock_urlopen:
            assert client.list_published_stories() == [{"id": 1}]

        req = mock_urlopen.call_args[0][0]
        parts = urlsplit(req.full_url)
        assert parts.netloc == "api.storyblok.com"
        assert parts.path == "/v2/cdn/stories"
        query = parse_qs(parts.query)
        assert query["token"] == ["preview-token"]
        assert query["version"] == ["published"]
        assert query["content_type"] == ["blog_post"]
        assert query["starts_with"] == ["blog/"]
        assert query["per_page"] == ["100"]
        assert "cv" in query
