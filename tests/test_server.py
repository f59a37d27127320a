"""Tests for the text-to-speech endpoint."""

from __future__ import annotations

import base64
import http.client
import urllib.error
from unittest.mock import MagicMock, patch

import pytest
from fastapi.testclient import TestClient

from blog_studio.config import StudioConfig
from blog_studio.errors import CMSError
from blog_studio.integrations.elevenlabs import ElevenLabsClient
from blog_studio.server import (
    CORS_HEADERS,
    TTS_PATH,
    TextToSpeechService,
    create_app,
    extract_article,
)

ARTICLE_HTML = """
<html><body>
  <nav>Home</nav>
  <h1>Coffee, Casually</h1>
  <div data-blog-content><p>Grind fresh.</p><p>Brew hot.</p></div>
</body></html>
"""


def _config(**tts: object) -> StudioConfig:
    return StudioConfig.model_validate(
        {
            "storyblok": {"management_token": "mgmt-token"},
            "tts": {"elevenlabs_api_key": "xi-key", **tts},
        }
    )


def _story(audio: object = None) -> dict:
    content: dict = {"component": "blog_post", "title": "Coffee", "content": "# Coffee\n\n**Brew** it."}
    if audio is not None:
        content["audio"] = audio
    return {"id": 77, "name": "Coffee", "full_slug": "blog/coffee", "content": content}


@pytest.fixture
def client() -> TestClient:
    return TestClient(create_app(_config()))


def _assert_cors(response) -> None:
    for key, value in CORS_HEADERS.items():
        assert response.headers[key] == value


# ── Method handling ─────────────────────────────────────────────────────


class TestMethods:
    def test_options_preflight(self, client: TestClient):
        response = client.options(TTS_PATH)
        assert response.status_code == 200
        assert response.content == b""
        _assert_cors(response)

    @pytest.mark.parametrize("method", ["GET", "PUT", "DELETE"])
    def test_other_methods_rejected(self, client: TestClient, method: str):
        response = client.request(method, TTS_PATH)
        assert response.status_code == 405
        assert response.json() == {"message": "Method not allowed"}
        _assert_cors(response)


# ── Text mode ───────────────────────────────────────────────────────────


class TestTextMode:
    def test_returns_base64_audio(self, client: TestClient):
        with patch.object(ElevenLabsClient, "synthesize", return_value=b"ID3audio") as mock_synth:
            response = client.post(TTS_PATH, json={"text": "# Hello\n\n**world**"})

        assert response.status_code == 200
        body = response.json()
        assert base64.b64decode(body["audio"]) == b"ID3audio"
        assert body["contentType"] == "audio/mpeg"
        assert body["message"] == "Text-to-Speech successfully generated."
        mock_synth.assert_called_once_with("Hello world")
        _assert_cors(response)

    def test_missing_key_is_500(self):
        client = TestClient(create_app(StudioConfig()))
        response = client.post(TTS_PATH, json={"text": "hello"})
        assert response.status_code == 500
        assert response.json() == {"message": "ElevenLabs API key not found"}
        _assert_cors(response)

    def test_empty_body(self, client: TestClient):
        response = client.post(TTS_PATH, content=b"")
        assert response.status_code == 500
        assert response.json()["message"] == "Request body is required"

    def test_invalid_json(self, client: TestClient):
        response = client.post(TTS_PATH, content=b"{nope", headers={"Content-Type": "application/json"})
        assert response.status_code == 500
        assert response.json()["message"] == "Request body must be JSON"

    def test_missing_fields(self, client: TestClient):
        response = client.post(TTS_PATH, json={"space_id": 1})
        assert response.status_code == 500
        assert "space_id and story_id" in response.json()["message"]


# ── Story mode ──────────────────────────────────────────────────────────


class TestStoryMode:
    def _cms(self, story: dict) -> MagicMock:
        cms = MagicMock()
        cms.get_story.return_value = story
        cms.create_asset.return_value = {
            "id": 901,
            "pretty_url": "https://a.storyblok.com/f/12345/77-text-to-speech.mp3",
            "post_url": "https://s3.example/upload",
            "fields": {"key": "f/12345/77-text-to-speech.mp3"},
        }
        return cms

    def test_uploads_and_links_asset(self, client: TestClient):
        cms = self._cms(_story(audio={"id": 55, "filename": "https://old.mp3"}))
        with (
            patch("blog_studio.server.StoryblokAPIClient", return_value=cms) as mock_cls,
            patch.object(ElevenLabsClient, "synthesize", return_value=b"ID3") as mock_synth,
        ):
            response = client.post(TTS_PATH, json={"space_id": 12345, "story_id": 77})

        assert response.status_code == 200
        assert response.json() == {"message": "Text-to-Speech successfully created and uploaded."}
        assert mock_cls.call_args.kwargs["config"].space_id == "12345"

        text = mock_synth.call_args[0][0]
        assert text.startswith("Article title: Coffee.")
        assert '<break time="1.0s" />' in text
        assert "Brew it." in text

        cms.upload_signed_asset.assert_called_once()
        assert cms.upload_signed_asset.call_args[0][1] == b"ID3"
        cms.finish_asset_upload.assert_called_once_with(901)

        story_id, payload = cms.update_story.call_args[0]
        assert story_id == "77"
        assert payload["content"]["audio"] == {
            "filename": "https://a.storyblok.com/f/12345/77-text-to-speech.mp3",
            "fieldtype": "asset",
            "is_external_url": False,
            "id": 901,
        }
        assert payload["content"]["title"] == "Coffee"
        cms.delete_asset.assert_called_once_with(55)

    def test_no_previous_audio_nothing_deleted(self, client: TestClient):
        cms = self._cms(_story())
        with (
            patch("blog_studio.server.StoryblokAPIClient", return_value=cms),
            patch.object(ElevenLabsClient, "synthesize", return_value=b"ID3"),
        ):
            response = client.post(TTS_PATH, json={"space_id": "1", "story_id": "77"})
        assert response.status_code == 200
        cms.delete_asset.assert_not_called()

    def test_old_asset_delete_failure_is_ignored(self, client: TestClient):
        cms = self._cms(_story(audio={"id": 55}))
        cms.delete_asset.side_effect = CMSError("gone")
        with (
            patch("blog_studio.server.StoryblokAPIClient", return_value=cms),
            patch.object(ElevenLabsClient, "synthesize", return_value=b"ID3"),
        ):
            response = client.post(TTS_PATH, json={"space_id": "1", "story_id": "77"})
        assert response.status_code == 200

    def test_upload_failure(self, client: TestClient):
        cms = self._cms(_story())
        cms.create_asset.side_effect = CMSError("denied", status=403)
        with (
            patch("blog_studio.server.StoryblokAPIClient", return_value=cms),
            patch.object(ElevenLabsClient, "synthesize", return_value=b"ID3"),
        ):
            response = client.post(TTS_PATH, json={"space_id": "1", "story_id": "77"})
        assert response.status_code == 500
        assert response.json() == {"message": "Something went wrong during upload."}
        cms.update_story.assert_not_called()


# ── Crawling ────────────────────────────────────────────────────────────


class TestCrawl:
    def test_extract_article(self):
        title, body = extract_article(ARTICLE_HTML)
        assert title == "Coffee, Casually"
        assert body == "Grind fresh. Brew hot."

    def test_extract_article_without_markup(self):
        assert extract_article("<html><body><p>x</p></body></html>") == ("", "")

    def test_story_text_prefers_crawled_page(self):
        service = TextToSpeechService(_config(production_domain="https://blog.example.com/"))
        response = MagicMock()
        response.read.return_value = ARTICLE_HTML.encode()
        response.__enter__ = lambda s: s
        response.__exit__ = MagicMock(return_value=False)

        with patch("urllib.request.urlopen", return_value=response) as mock_urlopen:
            text = service.story_text(_story())

        assert mock_urlopen.call_args[0][0].startswith("https://blog.example.com/blog/coffee?ts=")
        assert text == 'Article title: Coffee, Casually. <break time="1.0s" /> Article content: Grind fresh. Brew hot.'

    def test_story_text_falls_back_when_crawl_fails(self):
        service = TextToSpeechService(_config(production_domain="https://blog.example.com"))
        with patch("urllib.request.urlopen", side_effect=urllib.error.URLError("down")):
            text = service.story_text(_story())
        assert text.startswith("Article title: Coffee.")
        assert text.endswith("Coffee Brew it.")

    def test_story_text_falls_back_when_page_read_drops(self):
        service = TextToSpeechService(_config(production_domain="https://blog.example.com"))
        with patch(
            "urllib.request.urlopen", side_effect=http.client.IncompleteRead(b"<html><h1>Cof")
        ):
            text = service.story_text(_story())
        assert text.startswith("Article title: Coffee.")

    def test_fallback_uses_name_then_excerpt(self):
        service = TextToSpeechService(_config())
        story = {"id": 1, "name": "Named", "content": {"excerpt": "Only an excerpt."}}
        assert service.story_text(story) == (
            'Article title: Named. <break time="1.0s" /> Article content: Only an excerpt.'
        )
