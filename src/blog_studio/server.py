"""Text-to-speech HTTP endpoint.

Keeps the ElevenLabs key on the server.  One route accepts two request
shapes:

* ``{"text": ...}`` returns the narration as base64 MPEG;
* ``{"space_id": ..., "story_id": ...}`` narrates a published story and
  links the audio to it as a Storyblok asset, replacing any previous one.

Run with ``blog-studio serve`` or ``uvicorn --factory blog_studio.server:create_app``.
"""

from __future__ import annotations

import base64
import http.client
import json
import logging
import time
import urllib.request
from typing import Any

from bs4 import BeautifulSoup
from fastapi import FastAPI, Request
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import JSONResponse, Response

from blog_studio.config import StudioConfig, load_config
from blog_studio.errors import CMSError, StudioError
from blog_studio.generators.audio import prepare_text_for_tts
from blog_studio.integrations.elevenlabs import AUDIO_CONTENT_TYPE, ElevenLabsClient
from blog_studio.integrations.storyblok import StoryblokAPIClient

logger = logging.getLogger(__name__)

TTS_PATH = "/.netlify/functions/text-to-speech"

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Headers": "Content-Type",
    "Access-Control-Allow-Methods": "POST, OPTIONS",
}

TITLE_SELECTOR = "h1"
BODY_SELECTOR = "[data-blog-content], .prose, article, main"
SPEECH_BREAK = '<break time="1.0s" />'


class UploadError(StudioError):
    """Narration was generated but could not be stored on the story."""


def _json(status: int, body: dict[str, Any]) -> JSONResponse:
    return JSONResponse(status_code=status, content=body, headers=CORS_HEADERS)


def narration_text(title: str, content: str) -> str:
    return f"Article title: {title}. {SPEECH_BREAK} Article content: {content}"


def extract_article(html: str) -> tuple[str, str]:
    """Pull the title and body text out of a rendered blog page."""
    soup = BeautifulSoup(html, "html.parser")
    title_tag = soup.select_one(TITLE_SELECTOR)
    body_tag = soup.select_one(BODY_SELECTOR)
    title = title_tag.get_text(" ", strip=True) if title_tag else ""
    body = body_tag.get_text(" ", strip=True) if body_tag else ""
    return title, body


class TextToSpeechService:
    """Blocking narration and upload steps behind the endpoint."""

    def __init__(self, config: StudioConfig) -> None:
        self.config = config
        self.elevenlabs = ElevenLabsClient(config.tts)

    def _cms(self, space_id: str) -> StoryblokAPIClient:
        return StoryblokAPIClient(config=self.config.storyblok.model_copy(update={"space_id": space_id}))

    def synthesize(self, text: str) -> bytes:
        return self.elevenlabs.synthesize(prepare_text_for_tts(text))

    def narrate_text(self, text: str) -> str:
        """Return base64-encoded narration of ``text``."""
        audio = self.synthesize(text)
        logger.info("Generated %d bytes of audio", len(audio))
        return base64.b64encode(audio).decode("ascii")

    def crawl_story(self, full_slug: str) -> tuple[str, str]:
        """Fetch the public page of a story; empty strings when unavailable."""
        domain = self.config.tts.production_domain.rstrip("/")
        if not domain:
            logger.info("PRODUCTION_DOMAIN not set, skipping crawl")
            return "", ""
        url = f"{domain}/{full_slug}?ts={int(time.time() * 1000)}"
        logger.info("Crawling %s", url)
        try:
            with urllib.request.urlopen(url) as resp:
                html = resp.read().decode("utf-8", errors="replace")
        except (OSError, http.client.HTTPException):
            logger.warning("Could not crawl %s", url, exc_info=True)
            return "", ""
        return extract_article(html)

    def story_text(self, story: dict) -> str:
        """Text to narrate for a story: the crawled page, else its fields."""
        title, body = self.crawl_story(story.get("full_slug") or "")
        if title or body:
            return narration_text(title, body)

        logger.info("Falling back to story fields for story %s", story.get("id"))
        content = story.get("content") or {}
        fallback_title = content.get("title") or story.get("name") or "Article"
        fallback_body = content.get("content") or content.get("excerpt") or ""
        return narration_text(fallback_title, prepare_text_for_tts(fallback_body))

    def attach_to_story(self, cms: StoryblokAPIClient, story_id: str, audio: bytes) -> None:
        """Upload ``audio`` as an asset and link it in ``content.audio``.

        The previously linked audio asset, if any, is deleted afterwards.
        """
        filename = f"{story_id}-text-to-speech.mp3"
        try:
            signed = cms.create_asset(filename)
            cms.upload_signed_asset(signed, audio, filename)
            cms.finish_asset_upload(signed["id"])

            story = cms.get_story(story_id)
            content = dict(story.get("content") or {})
            old_audio = content.get("audio")
            content["audio"] = {
                "filename": signed["pretty_url"],
                "fieldtype": "asset",
                "is_external_url": False,
                "id": signed["id"],
            }
            cms.update_story(story_id, {**story, "content": content})
        except (CMSError, KeyError, TypeError) as exc:
            logger.error("Error uploading audio to story %s", story_id, exc_info=True)
            raise UploadError("Something went wrong during upload.") from exc

        if isinstance(old_audio, dict) and old_audio.get("id"):
            try:
                cms.delete_asset(old_audio["id"])
                logger.info("Deleted old audio asset %s", old_audio["id"])
            except CMSError:
                logger.warning("Could not delete old audio asset %s", old_audio["id"], exc_info=True)

    def narrate_story(self, space_id: str, story_id: str) -> None:
        cms = self._cms(space_id)
        story = cms.get_story(story_id)
        text = self.story_text(story)
        audio = self.synthesize(text)
        self.attach_to_story(cms, story_id, audio)
        logger.info("Narration linked to story %s", story_id)


def _parse_body(raw: bytes) -> dict[str, Any]:
    if not raw:
        raise StudioError("Request body is required")
    try:
        body = json.loads(raw)
    except ValueError as exc:
        raise StudioError("Request body must be JSON") from exc
    if not isinstance(body, dict):
        raise StudioError("Request body must be a JSON object")
    return body


def create_app(config: StudioConfig | None = None) -> FastAPI:
    """Build the endpoint app. Loads configuration when none is given."""
    service = TextToSpeechService(config if config is not None else load_config())
    app = FastAPI(title="AI Blog Studio text-to-speech")

    @app.api_route(TTS_PATH, methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"])
    async def text_to_speech(request: Request) -> Response:
        if request.method == "OPTIONS":
            return Response(status_code=200, content="", headers=CORS_HEADERS)
        if request.method != "POST":
            return _json(405, {"message": "Method not allowed"})

        try:
            body = _parse_body(await request.body())
            if body.get("text"):
                audio = await run_in_threadpool(service.narrate_text, str(body["text"]))
                return _json(
                    200,
                    {
                        "message": "Text-to-Speech successfully generated.",
                        "audio": audio,
                        "contentType": AUDIO_CONTENT_TYPE,
                    },
                )

            space_id, story_id = body.get("space_id"), body.get("story_id")
            if not space_id or not story_id:
                raise StudioError("text, or space_id and story_id, are required")
            await run_in_threadpool(service.narrate_story, str(space_id), str(story_id))
            return _json(200, {"message": "Text-to-Speech successfully created and uploaded."})
        except Exception as exc:
            logger.exception("Text-to-speech request failed")
            return _json(500, {"message": str(exc) or "Internal server error"})

    return app
