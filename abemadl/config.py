"""
config — Loads config.yaml with env var overrides.

Precedence: CLI options > env vars > config.yaml > defaults
"""
from __future__ import annotations
import os
from pathlib import Path
from dataclasses import dataclass
import yaml

from .errors import StorageError
from .paths import get_dirs


@dataclass
class Config:
    # Persisted files (empty = use platformdirs default)
    urls_path: str = ""
    log_path: str = ""

    # Output
    download_dir: str = "./"

    # Browser
    browser_path: str = ""  # empty = Playwright's bundled chromium
    page_timeout_ms: int = 30_000
    scroll_interval_seconds: float = 5.0
    max_concurrency: int = 0  # 0 = no limit on open pages

    # Media fetch
    streamlink_quality: str = "best"
    download_attempts: int = 1  # 1 = no retry

    # Logging
    log_level: str = "WARNING"


def load_config(config_path: str | Path | None = None) -> Config:
    """Load config from YAML file, then override with env vars."""
    cfg = Config()

    # 1. Load from YAML if available
    if config_path is None:
        config_path = os.environ.get("ABEMADL_CONFIG") or get_dirs()["config"] / "config.yaml"
    path = Path(config_path).expanduser()
    if path.exists():
        try:
            with open(path, encoding="utf-8") as f:
                data = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise StorageError(path, f"invalid YAML: {e}") from e
        if not isinstance(data, dict):
            raise StorageError(path, "expected a mapping at the top level")
        for key, value in data.items():
            key_norm = key.replace("-", "_")
            if hasattr(cfg, key_norm) and value is not None:
                setattr(cfg, key_norm, value)

    # 2. Override with env vars (ABEMADL_ prefix)
    env_map = {
        "ABEMADL_URLS": "urls_path",
        "ABEMADL_LOG_PATH": "log_path",
        "ABEMADL_DST": "download_dir",
        "ABEMADL_BROWSER_PATH": "browser_path",
        "ABEMADL_PAGE_TIMEOUT_MS": "page_timeout_ms",
        "ABEMADL_SCROLL_INTERVAL": "scroll_interval_seconds",
        "ABEMADL_MAX_CONCURRENCY": "max_concurrency",
        "ABEMADL_QUALITY": "streamlink_quality",
        "ABEMADL_DOWNLOAD_ATTEMPTS": "download_attempts",
        "ABEMADL_LOG_LEVEL": "log_level",
    }
    for env_key, attr in env_map.items():
        val = os.environ.get(env_key)
        if val is not None:
            field_type = type(getattr(cfg, attr))
            if field_type == int:
                setattr(cfg, attr, int(val))
            elif field_type == float:
                setattr(cfg, attr, float(val))
            else:
                setattr(cfg, attr, val)

    return cfg
