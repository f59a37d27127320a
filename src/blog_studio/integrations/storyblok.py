"""Storyblok integration: config and REST client.

The management API (write token) is used for story and asset writes; the
CDN API (preview token) serves published stories to the public blog.
"""

from __future__ import annotations

import http.client
import json
import logging
import time
import urllib.error
import urllib.parse
import urllib.request
from typing import Any

from pydantic import BaseModel

from blog_studio.errors import CMSError, error_for_status

logger = logging.getLogger(__name__)


class StoryblokConfig(BaseModel):
    """Configuration for Storyblok publishing."""

    space_id: str = ""
    management_token: str = ""
    preview_token: str = ""
    management_url: str = "https://mapi.storyblok.com/v1"
    cdn_url: str = "https://api.storyblok.com/v2"
    content_type: str = "blog_post"
    folder_slug: str = "blog"

    @property
    def is_configured(self) -> bool:
        return bool(self.space_id and self.management_token)


def _error_details(exc: urllib.error.HTTPError) -> Any:
    try:
        body = exc.read().decode("utf-8")
    except (OSError, UnicodeDecodeError):
        return None
    if not body:
        return None
    try:
        return json.loads(body)
    except json.JSONDecodeError:
        return body


class StoryblokAPIClient:
    """Client for the Storyblok management and CDN APIs.

    Non-2xx responses are raised as the CMSError subclass matching the
    status (401, 403, 404, 422) so callers can tell them apart.
    """

    def __init__(self, config: StoryblokConfig) -> None:
        self.config = config
        self.management_url = config.management_url.rstrip("/")
        self.cdn_url = config.cdn_url.rstrip("/")

    @property
    def _space_path(self) -> str:
        return f"/spaces/{self.config.space_id}"

    def _send(self, req: urllib.request.Request, *, parse: bool = True) -> dict:
        try:
            with urllib.request.urlopen(req) as resp:
                raw = resp.read().decode("utf-8")
        except urllib.error.HTTPError as exc:
            details = _error_details(exc)
            raise error_for_status(
                exc.code,
                f"Storyblok {req.get_method()} {req.full_url} failed with {exc.code}",
                details,
            ) from exc
        except urllib.error.URLError as exc:
            raise CMSError(f"Storyblok request failed: {exc.reason}") from exc
        except (OSError, http.client.HTTPException) as exc:
            raise CMSError(f"Storyblok request failed: {exc}") from exc
        if not parse or not raw.strip():
            return {}
        return json.loads(raw)

    def _request(
        self,
        method: str,
        path: str,
        data: dict | None = None,
        params: dict[str, Any] | None = None,
    ) -> dict:
        """Make an authenticated request to the management API."""
        url = f"{self.management_url}{path}"
        if params:
            url = f"{url}?{urllib.parse.urlencode(params)}"

        body = json.dumps(data).encode("utf-8") if data is not None else None
        req = urllib.request.Request(
            url,
            data=body,
            method=method,
            headers={
                "Authorization": self.config.management_token,
                "Content-Type": "application/json",
            },
        )
        return self._send(req)

    # ── Stories ──────────────────────────────────────────────────

    def list_stories(self, **params: Any) -> list[dict]:
        """List stories in the space (one page)."""
        result = self._request("GET", f"{self._space_path}/stories", params=params)
        return list(result.get("stories", []))

    def get_story(self, story_id: str | int) -> dict:
        result = self._request("GET", f"{self._space_path}/stories/{story_id}")
        return result["story"]

    def create_story(self, story: dict) -> dict:
        """Create a story (or folder). Returns the created story dict."""
        result = self._request("POST", f"{self._space_path}/stories", {"story": story})
        return result.get("story") or {}

    def update_story(self, story_id: str | int, story: dict) -> dict:
        result = self._request(
            "PUT", f"{self._space_path}/stories/{story_id}", {"story": story}
        )
        return result.get("story") or {}

    def publish_story(self, story_id: str | int) -> dict:
        """Move a story from draft to published."""
        return self._request("GET", f"{self._space_path}/stories/{story_id}/publish")

    # ── Assets ───────────────────────────────────────────────────

    def create_asset(self, filename: str) -> dict:
        """Register an asset and return the signed upload response."""
        return self._request("POST", f"{self._space_path}/assets/", {"filename": filename})

    def upload_signed_asset(self, signed: dict, data: bytes, filename: str) -> None:
        """Upload file bytes to the signed S3 form returned by create_asset."""
        boundary = "----BlogStudioUploadBoundary"
        body_parts: list[bytes] = []
        for key, value in (signed.get("fields") or {}).items():
            if not value:
                continue
            body_parts.extend(
                [
                    f"--{boundary}\r\n".encode(),
                    f'Content-Disposition: form-data; name="{key}"\r\n\r\n'.encode(),
                    str(value).encode("utf-8"),
                    b"\r\n",
                ]
            )
        disposition = (
            f'Content-Disposition: form-data; name="file";'
            f' filename="{filename}"\r\n'
        )
        body_parts.extend(
            [
                f"--{boundary}\r\n".encode(),
                disposition.encode(),
                b"Content-Type: audio/mpeg\r\n\r\n",
                data,
                f"\r\n--{boundary}--\r\n".encode(),
            ]
        )
        req = urllib.request.Request(
            signed["post_url"],
            data=b"".join(body_parts),
            method="POST",
            headers={"Content-Type": f"multipart/form-data; boundary={boundary}"},
        )
        self._send(req, parse=False)

    def finish_asset_upload(self, asset_id: str | int) -> dict:
        return self._request("GET", f"{self._space_path}/assets/{asset_id}/finish_upload")

    def delete_asset(self, asset_id: str | int) -> dict:
        return self._request("DELETE", f"{self._space_path}/assets/{asset_id}")

    # ── CDN (read-only, published content) ───────────────────────

    def list_published_stories(self) -> list[dict]:
        """Fetch published blog stories from the CDN, bypassing its cache."""
        params = {
            "token": self.config.preview_token,
            "version": "published",
            "content_type": self.config.content_type,
            "starts_with": f"{self.config.folder_slug}/",
            "per_page": 100,
            "cv": int(time.time() * 1000),
        }
        url = f"{self.cdn_url}/cdn/stories?{urllib.parse.urlencode(params)}"
        req = urllib.request.Request(url, method="GET")
        result = self._send(req)
        return list(result.get("stories", []))
