"""
errors — Failure kinds raised by the crawl/download pipeline.

Every kind is fatal for the run: the pipeline does not isolate failures
per episode or per program.
"""
from __future__ import annotations
from pathlib import Path


class AbemadlError(Exception):
    """Base class for all abemadl failures."""


class ResolutionError(AbemadlError):
    """A seed page could not be loaded while discovering its listing tabs."""

    def __init__(self, url: str, reason: str):
        super().__init__(f"cannot resolve {url}: {reason}")
        self.url = url
        self.reason = reason


class ScrapeError(AbemadlError):
    """A listing page was unreachable or missed a required field."""

    def __init__(self, url: str, reason: str):
        super().__init__(f"cannot scrape {url}: {reason}")
        self.url = url
        self.reason = reason


class DownloadError(AbemadlError):
    """The media fetcher reported failure for an episode."""

    def __init__(self, video_url: str, reason: str, returncode: int | None = None):
        super().__init__(f"download of {video_url} failed: {reason}")
        self.video_url = video_url
        self.reason = reason
        self.returncode = returncode


class StorageError(AbemadlError):
    """A persisted JSON/YAML file is unreadable or does not match its schema."""

    def __init__(self, path: str | Path, reason: str):
        super().__init__(f"{path}: {reason}")
        self.path = Path(path)
        self.reason = reason


class PipelineAborted(AbemadlError):
    """Raised when a run stops early; carries the state it failed in."""

    def __init__(self, state, cause: BaseException):
        super().__init__(f"run aborted while {state.value}: {cause}")
        self.state = state
        self.cause = cause
