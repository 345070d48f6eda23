from __future__ import annotations
import re
import shutil
import subprocess
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Iterable, Protocol
from urllib.parse import urlparse

import structlog
from tenacity import Retrying, retry_if_exception_type, stop_after_attempt, wait_exponential

from .errors import DownloadError
from .models import Episode, Recorded, VOD, VODStatus
from .paths import expand

log = structlog.get_logger()

EXT = "m2ts"
MAX_NAME_BYTES = 255

_ILLEGAL_RE = re.compile(r'[\\/:*?"<>|\x00-\x1f\x80-\x9f]+')
_RESERVED_RE = re.compile(r"^(con|prn|aux|nul|com\d|lpt\d)(\..*)?$", re.IGNORECASE)


def _clean(s: str) -> str:
    s = re.sub(r"\s+", " ", s)
    s = _ILLEGAL_RE.sub("", s)
    return re.sub(r" {2,}", " ", s)


def _cut(s: str, max_bytes: int) -> str:
    b = s.encode("utf-8")
    if len(b) <= max_bytes:
        return s
    return b[:max(max_bytes, 0)].decode("utf-8", "ignore")


def sanitize(s: str) -> str:
    """Make a string safe for a single file/folder name on any host filesystem."""
    s = _clean(s).strip().rstrip(". ")
    if s in ("", ".", "..") or _RESERVED_RE.match(s):
        return "_" + s if s else "_"
    return _cut(s, MAX_NAME_BYTES).rstrip(". ")


def _last_segment(video_url: str) -> str:
    return (urlparse(video_url).path or "").split("/")[-1]


def build_output_path(dst_root: str | Path, title: str, subtitle: str | None, video_url: str) -> Path:
    """
    <dst>/<title>/<title - subtitle_segment.m2ts>, each part sanitized.

    Only the "title - subtitle" stem is shortened to fit the name limit, so the
    video id suffix and the extension always survive.
    """
    suffix = f"_{_clean(_last_segment(video_url)).strip()}.{EXT}"
    stem = _clean(f"{title} - {subtitle or ''}").lstrip()
    stem = _cut(stem, MAX_NAME_BYTES - len(suffix.encode("utf-8")))
    return expand(dst_root) / sanitize(title) / f"{stem}{suffix}"


# --- Media fetch capability ---

@dataclass(frozen=True)
class FetchResult:
    ok: bool
    returncode: int = 0
    stderr: str = ""


class MediaFetcher(Protocol):
    def fetch(self, stream_url: str, dst: Path) -> FetchResult: ...


class StreamlinkFetcher:
    """Runs `streamlink <url> <quality> -o <dst>` and waits for it."""

    def __init__(self, quality: str = "best", executable: str | None = None):
        self.quality = quality
        self.executable = executable

    def _cmd(self, stream_url: str) -> list[str]:
        exe = self.executable or shutil.which("streamlink")
        if not exe:
            raise DownloadError(stream_url, "streamlink is not installed or not on PATH")
        return [exe]

    def fetch(self, stream_url: str, dst: Path) -> FetchResult:
        cmd = self._cmd(stream_url) + [stream_url, self.quality, "-o", str(dst)]
        log.info("streamlink_command", command=" ".join(cmd))
        p = subprocess.run(cmd, capture_output=True, text=True)
        if p.returncode != 0:
            return FetchResult(False, p.returncode, (p.stderr or p.stdout or "").strip())
        return FetchResult(True, 0, "")


# --- Retry policy ---

@dataclass
class RetryPolicy:
    """
    How often a failed fetch is retried. attempts=1 means a single try.
    Only DownloadError is retried; anything else propagates at once.
    """
    attempts: int = 1
    wait_min: float = 5.0
    wait_max: float = 120.0
    sleep: Callable[[float], None] = time.sleep

    def run(self, fn: Callable[[], Episode]) -> Episode:
        retrying = Retrying(
            stop=stop_after_attempt(max(1, self.attempts)),
            wait=wait_exponential(min=self.wait_min, max=self.wait_max),
            retry=retry_if_exception_type(DownloadError),
            reraise=True,
            sleep=self.sleep,
            before_sleep=lambda rs: log.warning(
                "download_retry", attempt=rs.attempt_number, error=str(rs.outcome.exception())
            ),
        )
        return retrying(fn)


NO_RETRY = RetryPolicy()


def download_episode(
    episode: Episode,
    title: str,
    dst_root: str | Path,
    fetcher: MediaFetcher,
    policy: RetryPolicy = NO_RETRY,
) -> Episode:
    """Fetch one episode into its program folder; returns it as a log entry."""
    path = build_output_path(dst_root, title, episode.subtitle, episode.video_url)
    path.parent.mkdir(parents=True, exist_ok=True)

    def attempt() -> Episode:
        try:
            result = fetcher.fetch(episode.video_url, path)
        except OSError as e:
            raise DownloadError(episode.video_url, str(e)) from e
        if not result.ok:
            raise DownloadError(
                episode.video_url,
                result.stderr or f"exit status {result.returncode}",
                result.returncode,
            )
        return episode

    log.info("download_start", url=episode.video_url, file=str(path))
    policy.run(attempt)
    log.info("download_done", url=episode.video_url, file=str(path))
    if isinstance(episode, VOD):
        return episode.as_episode()
    return episode


def download_all(
    targets: Iterable[VODStatus],
    dst_root: str | Path,
    fetcher: MediaFetcher,
    policy: RetryPolicy = NO_RETRY,
) -> list[Recorded]:
    """
    Download every target one at a time, in order.
    The first failure propagates; nothing after it is attempted.
    """
    downloaded = []
    for program in targets:
        if not program.episodes:
            continue
        eps = [download_episode(ep, program.title, dst_root, fetcher, policy) for ep in program.episodes]
        downloaded.append(Recorded(url=program.url, title=program.title, episodes=tuple(eps)))
    return downloaded
