from __future__ import annotations
import os
from pathlib import Path
from platformdirs import PlatformDirs

APP = "abemadl"
AUTHOR = "abemadl"


def get_dirs() -> dict[str, Path]:
    d = PlatformDirs(appname=APP, appauthor=AUTHOR, roaming=True)
    paths = {
        "config": Path(d.user_config_dir), # urls.json, config.yaml
        "logs": Path(d.user_log_dir),      # downloads.json + rotating log
    }
    for p in paths.values():
        p.mkdir(parents=True, exist_ok=True)
    return paths


def default_urls_path() -> Path:
    return get_dirs()["config"] / "urls.json"


def default_log_path() -> Path:
    return get_dirs()["logs"] / "downloads.json"


def expand(p: str | os.PathLike) -> Path:
    """Expand ~ and normalise, without requiring the path to exist."""
    return Path(os.path.normpath(Path(p).expanduser()))
