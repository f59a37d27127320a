"""Post text generation and LLM output parsing.

Two LLM backends share one contract, ``complete(prompt) -> str``:
Mistral chat completions over REST (the default) and Claude via the
Anthropic API.  Their raw output goes through a two-stage parser: strict
JSON first, then a heuristic scrape of the free text.
"""

from __future__ import annotations

import json
import logging
import re
from enum import StrEnum
from typing import Protocol

import anthropic
from pydantic import BaseModel

from blog_studio.config import LLMConfig
from blog_studio.content.models import GenerationRequest
from blog_studio.errors import ConfigurationError, ParseError, ProviderError
from blog_studio.generators.prompts import build_content_prompt
from blog_studio.integrations.providers import post_json

logger = logging.getLogger(__name__)

MAX_TITLE_CHARS = 60
MAX_EXCERPT_CHARS = 160
FALLBACK_TITLE = "Generated Blog Post"

GENERATION_FAILED = (
    "Failed to generate content. Please check your {provider} API key and try again."
)


class ParseSource(StrEnum):
    """Which parser stage produced a ParsedPost."""

    JSON = "json"
    HEURISTIC = "heuristic"


class ParsedPost(BaseModel):
    title: str
    excerpt: str
    content: str
    source: ParseSource


# ── Parsing ─────────────────────────────────────────────────────────────

_JSON_FENCE_RE = re.compile(r"```(?:json)?\s*\n?(.*?)\n?```", re.DOTALL)
_JSON_TITLE_RE = re.compile(r'"title":\s*"([^"]+)"')


def strip_json_fences(text: str) -> str:
    """Strip markdown code fences and surrounding chatter from LLM JSON output."""
    text = text.strip()
    match = _JSON_FENCE_RE.search(text)
    if match:
        text = match.group(1).strip()
    start = text.find("{")
    end = text.rfind("}")
    if start != -1 and end > start:
        return text[start : end + 1]
    return text


def parse_json_envelope(raw: str) -> ParsedPost:
    """Strict stage: the response must be a {title, excerpt, content} object.

    Raises:
        ParseError: If the JSON is malformed or a field is missing/empty.
    """
    try:
        data = json.loads(strip_json_fences(raw))
    except json.JSONDecodeError as exc:
        raise ParseError(f"Response is not valid JSON: {exc}") from exc
    if not isinstance(data, dict):
        raise ParseError("Response JSON is not an object")

    fields = {key: data.get(key) for key in ("title", "excerpt", "content")}
    missing = [key for key, value in fields.items() if not value or not isinstance(value, str)]
    if missing:
        raise ParseError(f"Missing required fields in AI response: {', '.join(missing)}")

    return ParsedPost(
        title=fields["title"][:MAX_TITLE_CHARS],
        excerpt=fields["excerpt"][:MAX_EXCERPT_CHARS],
        content=fields["content"],
        source=ParseSource.JSON,
    )


def parse_heuristic(raw: str) -> ParsedPost:
    """Fallback stage: scrape a title and excerpt from free text.

    The title is the first top-level ``#`` heading (or a ``"title": "..."``
    line); the excerpt is the first paragraph that is not a heading.  The
    whole response becomes the body.
    """
    title = FALLBACK_TITLE
    for line in (line for line in raw.split("\n") if line.strip()):
        if line.startswith("#") and not line.startswith("##"):
            title = line.replace("#", "", 1).strip()
            break
        if '"title"' in line and ":" in line:
            match = _JSON_TITLE_RE.search(line)
            if match:
                title = match.group(1)
                break

    paragraphs = [p for p in raw.split("\n\n") if p.strip() and not p.startswith("#")]
    lead = paragraphs[0] if paragraphs else raw
    excerpt = (lead[:MAX_EXCERPT_CHARS] + "...")[:MAX_EXCERPT_CHARS]

    return ParsedPost(
        title=title[:MAX_TITLE_CHARS],
        excerpt=excerpt,
        content=raw,
        source=ParseSource.HEURISTIC,
    )


def parse_generated_post(raw: str) -> ParsedPost:
    """Parse LLM output, falling back to the heuristic stage on ParseError."""
    try:
        return parse_json_envelope(raw)
    except ParseError as exc:
        logger.warning("JSON parsing failed (%s), using heuristic parse", exc)
        return parse_heuristic(raw)


# ── Backends ────────────────────────────────────────────────────────────


class LLMBackend(Protocol):
    name: str

    def complete(self, prompt: str) -> str: ...


class MistralBackend:
    """Mistral chat completions over REST."""

    name = "Mistral"

    def __init__(self, config: LLMConfig) -> None:
        self.config = config

    def complete(self, prompt: str) -> str:
        if not self.config.mistral_api_key:
            raise ConfigurationError("MISTRAL_API_KEY not set")
        payload = {
            "model": self.config.mistral_model,
            "messages": [{"role": "user", "content": prompt}],
            "temperature": self.config.temperature,
            "max_tokens": self.config.max_tokens,
        }
        result = post_json(
            self.config.mistral_url,
            payload,
            {"Authorization": f"Bearer {self.config.mistral_api_key}"},
            label="Mistral",
        )
        try:
            return result["choices"][0]["message"]["content"].strip()
        except (KeyError, IndexError, TypeError, AttributeError) as exc:
            raise ProviderError("Mistral response has no completion choice") from exc


class AnthropicBackend:
    """Claude via the Anthropic API."""

    name = "Anthropic"

    def __init__(self, config: LLMConfig) -> None:
        self.config = config

    def complete(self, prompt: str) -> str:
        api_key = self.config.anthropic_api_key.strip()
        if not api_key:
            raise ConfigurationError("ANTHROPIC_API_KEY not set")

        client = anthropic.Anthropic(api_key=api_key)
        logger.debug("Calling Anthropic API model=%s", self.config.anthropic_model)
        try:
            response = client.messages.create(
                model=self.config.anthropic_model,
                max_tokens=self.config.max_tokens,
                temperature=self.config.temperature,
                messages=[{"role": "user", "content": prompt}],
            )
        except anthropic.APIError as exc:
            raise ProviderError(f"Anthropic API error: {exc}") from exc

        text_parts: list[str] = []
        for block in response.content:
            if block.type == "text":
                text_parts.append(block.text)

        result = "".join(text_parts).strip()
        if not result:
            raise ProviderError("Anthropic API returned empty response")
        return result


_BACKENDS: dict[str, type[MistralBackend] | type[AnthropicBackend]] = {
    "mistral": MistralBackend,
    "anthropic": AnthropicBackend,
}


def create_backend(config: LLMConfig) -> LLMBackend:
    """Create the backend named by ``config.provider``.

    Raises:
        ConfigurationError: If the provider is unknown.
    """
    backend_cls = _BACKENDS.get(config.provider.lower())
    if backend_cls is None:
        raise ConfigurationError(f"Unknown LLM provider: {config.provider!r}")
    return backend_cls(config)


# ── Generator ───────────────────────────────────────────────────────────


class ContentGenerator:
    """Generate post title, excerpt and markdown body for a request."""

    def __init__(self, backend: LLMBackend) -> None:
        self.backend = backend

    def generate(self, request: GenerationRequest) -> ParsedPost:
        """Generate and parse one post.

        Raises:
            ProviderError: If the provider call fails for any reason.
        """
        prompt = build_content_prompt(request)
        try:
            raw = self.backend.complete(prompt)
        except Exception as exc:
            logger.error("Error generating content for %r", request.theme, exc_info=True)
            raise ProviderError(GENERATION_FAILED.format(provider=self.backend.name)) from exc

        logger.debug("Raw AI response: %s", raw[:500])
        parsed = parse_generated_post(raw)
        logger.info("Generated %r via %s parse", parsed.title, parsed.source)
        return parsed
