"""Unified configuration loaded from .blog-studio.toml and env vars.

Loading order: defaults → TOML file → env vars → CLI flags.
"""

from __future__ import annotations

import logging
import os
import tomllib
from pathlib import Path

from pydantic import BaseModel, Field

from blog_studio.integrations.storyblok import StoryblokConfig

logger = logging.getLogger(__name__)

CONFIG_FILENAME = ".blog-studio.toml"
CONFIG_SEARCH_PATHS = [
    Path("."),
    Path.home() / ".config" / "blog-studio",
]


class StudioSectionConfig(BaseModel):
    """[studio] section."""

    data_dir: str = "."
    max_requests_per_hour: int = 10
    admin_password: str = ""
    session_hours: int = 24


class LLMConfig(BaseModel):
    """[llm] section."""

    provider: str = "mistral"
    mistral_api_key: str = ""
    mistral_url: str = "https://api.mistral.ai/v1/chat/completions"
    mistral_model: str = "mistral-large-latest"
    anthropic_api_key: str = ""
    anthropic_model: str = "claude-sonnet-4-6"
    temperature: float = 0.7
    max_tokens: int = 4000


class ImageConfig(BaseModel):
    """[images] section."""

    fal_api_key: str = ""
    fal_url: str = "https://fal.run/fal-ai/imagen4/preview/fast"
    aspect_ratio: str = "16:9"

    @property
    def is_configured(self) -> bool:
        return bool(self.fal_api_key)


class TTSConfig(BaseModel):
    """[tts] section."""

    elevenlabs_api_key: str = ""
    elevenlabs_url: str = "https://api.elevenlabs.io/v1/text-to-speech"
    voice_id: str = "21m00Tcm4TlvDq8ikWAM"
    model_id: str = "eleven_turbo_v2"
    stability: float = 0.5
    similarity_boost: float = 0.5
    use_server: bool = False
    server_url: str = "http://localhost:8888/.netlify/functions/text-to-speech"
    production_domain: str = ""


class StudioConfig(BaseModel):
    """Top-level configuration for the studio."""

    studio: StudioSectionConfig = Field(default_factory=StudioSectionConfig)
    storyblok: StoryblokConfig = Field(default_factory=StoryblokConfig)
    llm: LLMConfig = Field(default_factory=LLMConfig)
    images: ImageConfig = Field(default_factory=ImageConfig)
    tts: TTSConfig = Field(default_factory=TTSConfig)

    @property
    def data_path(self) -> Path:
        return Path(self.studio.data_dir).expanduser()


def load_config(path: str | Path | None = None) -> StudioConfig:
    """Load configuration from a TOML file.

    Search order:
    1. Explicit path (if provided)
    2. .blog-studio.toml in CWD
    3. ~/.config/blog-studio/config.toml

    Then overlay environment variables.

    Args:
        path: Explicit path to a TOML file.

    Returns:
        Merged StudioConfig.
    """
    data: dict[str, object] = {}

    if path is not None:
        toml_path = Path(path)
        if toml_path.exists():
            data = _load_toml(toml_path)
        else:
            logger.warning("Config file not found: %s", toml_path)
    else:
        for search_dir in CONFIG_SEARCH_PATHS:
            candidate = search_dir / CONFIG_FILENAME
            if candidate.exists():
                data = _load_toml(candidate)
                logger.info("Loaded config from %s", candidate)
                break
        global_config = Path.home() / ".config" / "blog-studio" / "config.toml"
        if not data and global_config.exists():
            data = _load_toml(global_config)
            logger.info("Loaded config from %s", global_config)

    config = StudioConfig.model_validate(data) if data else StudioConfig()

    return _apply_env_vars(config)


def merge_cli_overrides(config: StudioConfig, **cli_kwargs: object) -> StudioConfig:
    """Overlay explicitly-set CLI flags onto the config.

    Only overrides values where the CLI flag was explicitly provided
    (i.e., not None).
    """
    data = config.model_dump()

    mapping: dict[str, tuple[str, str]] = {
        "data_dir": ("studio", "data_dir"),
        "provider": ("llm", "provider"),
        "use_tts_server": ("tts", "use_server"),
    }

    for key, value in cli_kwargs.items():
        if value is None or key not in mapping:
            continue
        section, field = mapping[key]
        data[section][field] = value

    return StudioConfig.model_validate(data)


def _load_toml(path: Path) -> dict[str, object]:
    """Load a TOML file and return the data dict."""
    try:
        with open(path, "rb") as f:
            return tomllib.load(f)
    except (tomllib.TOMLDecodeError, OSError) as exc:
        logger.warning("Failed to parse %s: %s", path, exc)
        return {}


def _apply_env_vars(config: StudioConfig) -> StudioConfig:
    """Apply environment variable overrides to config."""
    data = config.model_dump()

    env_mapping: dict[str, tuple[str, str]] = {
        "BLOG_STUDIO_DATA_DIR": ("studio", "data_dir"),
        "ADMIN_PASSWORD": ("studio", "admin_password"),
        "STORYBLOK_SPACE_ID": ("storyblok", "space_id"),
        "STORYBLOK_MANAGEMENT_TOKEN": ("storyblok", "management_token"),
        "STORYBLOK_TOKEN": ("storyblok", "preview_token"),
        "BLOG_STUDIO_LLM_PROVIDER": ("llm", "provider"),
        "MISTRAL_API_KEY": ("llm", "mistral_api_key"),
        "ANTHROPIC_API_KEY": ("llm", "anthropic_api_key"),
        "FAL_API_KEY": ("images", "fal_api_key"),
        "ELEVENLABS_API_KEY": ("tts", "elevenlabs_api_key"),
        "TTS_SERVER_URL": ("tts", "server_url"),
        "PRODUCTION_DOMAIN": ("tts", "production_domain"),
    }

    for env_var, (section, field) in env_mapping.items():
        value = os.environ.get(env_var)
        if value is not None:
            data[section][field] = value

    max_raw = os.environ.get("MAX_REQUESTS_PER_HOUR")
    if max_raw is not None:
        try:
            data["studio"]["max_requests_per_hour"] = int(max_raw)
        except ValueError:
            logger.warning("Ignoring non-integer MAX_REQUESTS_PER_HOUR=%r", max_raw)

    server_raw = os.environ.get("BLOG_STUDIO_USE_TTS_SERVER")
    if server_raw is not None:
        data["tts"]["use_server"] = server_raw.lower() in ("true", "1", "yes")

    return StudioConfig.model_validate(data)
