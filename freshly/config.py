"""TOML configuration loader."""

from __future__ import annotations

import os
import sys
from dataclasses import dataclass, field
from pathlib import Path

if sys.version_info >= (3, 11):
    import tomllib
else:
    try:
        import tomli as tomllib
    except ImportError:
        tomllib = None  # type: ignore[assignment]

from .imagegen.gemini import DEFAULT_MODEL as DEFAULT_IMAGE_MODEL
from .imagegen.throttle import (
    DEFAULT_BASE_DELAY,
    DEFAULT_MAX_RETRIES,
    DEFAULT_MIN_INTERVAL,
    DEFAULT_TIMEOUT,
)


@dataclass
class DatabaseConfig:
    path: str = "~/.config/freshly/freshly.db"


@dataclass
class ClaudeVisionConfig:
    api_key: str = ""
    model: str = "claude-sonnet-4-5-20250929"


@dataclass
class GeminiVisionConfig:
    api_key: str = ""
    model: str = "gemini-2.0-flash"


@dataclass
class VisionConfig:
    backend: str = "gemini"
    claude: ClaudeVisionConfig = field(default_factory=ClaudeVisionConfig)
    gemini: GeminiVisionConfig = field(default_factory=GeminiVisionConfig)


@dataclass
class GeminiImageConfig:
    api_key: str = ""
    model: str = DEFAULT_IMAGE_MODEL


@dataclass
class ImageGenConfig:
    backend: str = "gemini"
    gemini: GeminiImageConfig = field(default_factory=GeminiImageConfig)


@dataclass
class ThrottleConfig:
    min_interval: float = DEFAULT_MIN_INTERVAL
    base_delay: float = DEFAULT_BASE_DELAY
    max_retries: int = DEFAULT_MAX_RETRIES
    timeout: float | None = DEFAULT_TIMEOUT  # 0 in TOML disables


@dataclass
class SchedulerConfig:
    refresh_schedule: str = "0 0 * * *"
    warm_schedule: str = "30 3 * * *"


@dataclass
class FreshlyConfig:
    database: DatabaseConfig = field(default_factory=DatabaseConfig)
    vision: VisionConfig = field(default_factory=VisionConfig)
    imagegen: ImageGenConfig = field(default_factory=ImageGenConfig)
    throttle: ThrottleConfig = field(default_factory=ThrottleConfig)
    scheduler: SchedulerConfig = field(default_factory=SchedulerConfig)


def load_config(path: str | Path | None = None) -> FreshlyConfig:
    """Load configuration from a TOML file.

    Falls back to defaults if no path is given or the file doesn't exist.
    API keys can be overridden via environment variables.
    """
    raw: dict = {}

    if path is not None:
        p = Path(path)
        if p.exists():
            if tomllib is None:
                raise ImportError(
                    "tomli is required on Python < 3.11: pip install tomli"
                )
            with open(p, "rb") as f:
                raw = tomllib.load(f)

    dbs = raw.get("database", {})
    vis = raw.get("vision", {})
    img = raw.get("imagegen", {})
    thr = raw.get("throttle", {})
    sch = raw.get("scheduler", {})

    claude_cfg = vis.get("claude", {})
    gemini_cfg = vis.get("gemini", {})
    image_gemini_cfg = img.get("gemini", {})

    # Resolve API keys: config file → environment variable
    env_gemini_key = os.environ.get("GEMINI_API_KEY", "")
    claude_api_key = claude_cfg.get("api_key", "") or os.environ.get(
        "ANTHROPIC_API_KEY", ""
    )
    gemini_api_key = gemini_cfg.get("api_key", "") or env_gemini_key
    image_api_key = image_gemini_cfg.get("api_key", "") or gemini_api_key

    timeout = thr.get("timeout", DEFAULT_TIMEOUT)
    if not timeout:
        timeout = None

    return FreshlyConfig(
        database=DatabaseConfig(
            path=dbs.get("path", "~/.config/freshly/freshly.db"),
        ),
        vision=VisionConfig(
            backend=vis.get("backend", "gemini"),
            claude=ClaudeVisionConfig(
                api_key=claude_api_key,
                model=claude_cfg.get("model", "claude-sonnet-4-5-20250929"),
            ),
            gemini=GeminiVisionConfig(
                api_key=gemini_api_key,
                model=gemini_cfg.get("model", "gemini-2.0-flash"),
            ),
        ),
        imagegen=ImageGenConfig(
            backend=img.get("backend", "gemini"),
            gemini=GeminiImageConfig(
                api_key=image_api_key,
                model=image_gemini_cfg.get("model", DEFAULT_IMAGE_MODEL),
            ),
        ),
        throttle=ThrottleConfig(
            min_interval=float(thr.get("min_interval", DEFAULT_MIN_INTERVAL)),
            base_delay=float(thr.get("base_delay", DEFAULT_BASE_DELAY)),
            max_retries=int(thr.get("max_retries", DEFAULT_MAX_RETRIES)),
            timeout=timeout,
        ),
        scheduler=SchedulerConfig(
            refresh_schedule=sch.get("refresh_schedule", "0 0 * * *"),
            warm_schedule=sch.get("warm_schedule", "30 3 * * *"),
        ),
    )
