"""
store — JSON-backed URL list and download log.

Both files are single-writer; nothing here locks across processes.
Writes go to a sibling temp file first and then replace the target, so a
reader never sees a half-written file.
"""
from __future__ import annotations
import json
import os
import tempfile
from pathlib import Path

import structlog
from pydantic import ValidationError

from .errors import StorageError
from .models import Log, LogAdapter, UrlListAdapter, dump_log
from .paths import expand

log = structlog.get_logger()


def init_file(path: Path, init: str):
    """Create parent dirs and seed the file with `init` if it does not exist yet."""
    path.parent.mkdir(parents=True, exist_ok=True)
    if not path.exists():
        path.write_text(init, encoding="utf-8")
        log.info("store_initialized", path=str(path))


def _read_json(path: Path):
    try:
        return json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as e:
        raise StorageError(path, f"invalid JSON: {e}") from e
    except OSError as e:
        raise StorageError(path, f"unreadable: {e}") from e


def _replace_json(path: Path, payload, indent: int | None = None):
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            json.dump(payload, f, ensure_ascii=False, indent=indent)
        os.replace(tmp, path)
    except BaseException:
        Path(tmp).unlink(missing_ok=True)
        raise


class UrlStore:
    """Ordered list of seed program URLs; newest first."""

    def __init__(self, path: str | os.PathLike):
        self.path = expand(path)

    def load(self) -> list[str]:
        init_file(self.path, "[]")
        data = _read_json(self.path)
        try:
            return UrlListAdapter.validate_python(data)
        except ValidationError as e:
            raise StorageError(self.path, f"expected a list of URL strings: {e}") from e

    def add(self, url: str) -> list[str]:
        """
        Prepend `url`, keeping the relative order of existing entries.
        A URL already tracked is moved to the front instead of being duplicated.
        """
        old = self.load()
        urls = [url] + [u for u in old if u != url]
        _replace_json(self.path, urls, indent=4)
        if len(urls) == len(old):
            log.info("url_moved_to_front", url=url, total=len(urls))
        else:
            log.info("url_added", url=url, total=len(urls))
        return urls


class LogStore:
    """Download log: resolved program URL -> Recorded episodes."""

    def __init__(self, path: str | os.PathLike):
        self.path = expand(path)

    def load(self) -> Log:
        init_file(self.path, "{}")
        data = _read_json(self.path)
        try:
            return LogAdapter.validate_python(data)
        except ValidationError as e:
            raise StorageError(self.path, f"malformed download log: {e}") from e

    def save(self, history: Log):
        """Replace the whole log file in one operation."""
        _replace_json(self.path, dump_log(history))
        log.info("log_saved", path=str(self.path), programs=len(history))
