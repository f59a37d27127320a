"""JSON-over-HTTP helpers shared by the AI provider clients."""

from __future__ import annotations

import http.client
import json
import logging
import urllib.error
import urllib.request

from blog_studio.errors import ProviderError

logger = logging.getLogger(__name__)


def _post(url: str, payload: dict, headers: dict[str, str], label: str) -> bytes:
    body = json.dumps(payload).encode("utf-8")
    req = urllib.request.Request(
        url,
        data=body,
        method="POST",
        headers={"Content-Type": "application/json", **headers},
    )
    logger.debug("POST %s (%s)", url, label)
    try:
        with urllib.request.urlopen(req) as resp:
            return resp.read()
    except urllib.error.HTTPError as exc:
        raise ProviderError(f"{label} API error: {exc.code}", status=exc.code) from exc
    except urllib.error.URLError as exc:
        raise ProviderError(f"{label} request failed: {exc.reason}") from exc
    except (OSError, http.client.HTTPException) as exc:
        raise ProviderError(f"{label} request failed: {exc}") from exc


def post_json(url: str, payload: dict, headers: dict[str, str], *, label: str) -> dict:
    """POST a JSON body and decode a JSON response.

    Raises:
        ProviderError: On a non-2xx status, a transport failure or a
            response that is not JSON.
    """
    raw = _post(url, payload, {"Accept": "application/json", **headers}, label)
    try:
        return json.loads(raw.decode("utf-8"))
    except (UnicodeDecodeError, json.JSONDecodeError) as exc:
        raise ProviderError(f"{label} returned a non-JSON response") from exc


def post_for_bytes(
    url: str,
    payload: dict,
    headers: dict[str, str],
    *,
    accept: str,
    label: str,
) -> bytes:
    """POST a JSON body and return the raw response bytes (e.g. audio)."""
    return _post(url, payload, {"Accept": accept, **headers}, label)
