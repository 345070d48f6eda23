"""
pipeline — One crawl run: resolve → scrape → plan → download → persist.

States:
    IDLE → RESOLVING_URLS → SCRAPING_METADATA → COMPUTING_TARGETS
         → DOWNLOADING → PERSISTING_LOG → IDLE
    RESOLVING_URLS | SCRAPING_METADATA | DOWNLOADING → ABORTED

The download log is read before any browsing and written exactly once, after
every target downloaded. An aborted run never writes it, so files fetched
before the failure are downloaded again next time.
"""
from __future__ import annotations
import asyncio
import enum
from dataclasses import dataclass, field
from pathlib import Path
from typing import Awaitable, Callable

import structlog

from .browser import BrowserSession, PlaywrightSession
from .dedupe import merge_log, plan_targets
from .downloader import MediaFetcher, NO_RETRY, RetryPolicy, download_all
from .errors import PipelineAborted
from .models import Log, Recorded, VODStatus
from .resolver import resolve_all
from .scraper import DEFAULT_SCROLL_INTERVAL, scrape_all
from .store import LogStore, UrlStore

log = structlog.get_logger()


class RunState(str, enum.Enum):
    IDLE = "idle"
    RESOLVING_URLS = "resolving_urls"
    SCRAPING_METADATA = "scraping_metadata"
    COMPUTING_TARGETS = "computing_targets"
    DOWNLOADING = "downloading"
    PERSISTING_LOG = "persisting_log"
    ABORTED = "aborted"


@dataclass
class RunResult:
    targets: list[VODStatus] = field(default_factory=list)
    downloaded: list[Recorded] = field(default_factory=list)
    log: Log = field(default_factory=dict)
    dry_run: bool = False

    @property
    def target_count(self) -> int:
        return sum(len(p.episodes) for p in self.targets)


def playwright_factory(executable_path: str | None = None, timeout_ms: int = 30_000):
    def factory() -> Awaitable[BrowserSession]:
        return PlaywrightSession(executable_path, timeout_ms).start()
    return factory


class CrawlRun:
    def __init__(
        self,
        urls: UrlStore,
        history: LogStore,
        dst: str | Path,
        fetcher: MediaFetcher,
        browser_factory: Callable[[], Awaitable[BrowserSession]],
        policy: RetryPolicy = NO_RETRY,
        max_concurrency: int | None = None,
        scroll_interval: float = DEFAULT_SCROLL_INTERVAL,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.urls = urls
        self.history = history
        self.dst = dst
        self.fetcher = fetcher
        self.browser_factory = browser_factory
        self.policy = policy
        self.max_concurrency = max_concurrency or None
        self.scroll_interval = scroll_interval
        self.sleep = sleep
        self.state = RunState.IDLE

    def _enter(self, state: RunState):
        log.info("run_state", from_state=self.state.value, to_state=state.value)
        self.state = state

    def _abort(self, cause: BaseException) -> PipelineAborted:
        failed = self.state
        self._enter(RunState.ABORTED)
        log.error("run_aborted", state=failed.value, error=str(cause))
        return PipelineAborted(failed, cause)

    async def fetch_programs(self, seeds: list[str]) -> list[VODStatus]:
        """Resolve and scrape every seed with one shared browser session."""
        self._enter(RunState.RESOLVING_URLS)
        if not seeds:
            return []
        browser = None
        try:
            browser = await self.browser_factory()
            resolved = await resolve_all(browser, seeds, self.max_concurrency)
            log.info("resolved", seeds=len(seeds), urls=len(resolved))

            self._enter(RunState.SCRAPING_METADATA)
            programs = await scrape_all(
                browser, resolved, self.max_concurrency, self.scroll_interval, self.sleep
            )
            session, browser = browser, None
            await session.close()
            return programs
        except Exception as e:
            if browser is not None:
                await self._close_quietly(browser)
            raise self._abort(e) from e
        except BaseException:
            if browser is not None:
                await self._close_quietly(browser)
            raise

    async def _close_quietly(self, browser: BrowserSession):
        # Already aborting; a failing close must not mask the original error.
        try:
            await browser.close()
        except Exception as e:
            log.warning("browser_close_failed", error=str(e))

    def run(self, dry_run: bool = False) -> RunResult:
        seeds = self.urls.load()
        history = self.history.load()

        programs = asyncio.run(self.fetch_programs(seeds))

        self._enter(RunState.COMPUTING_TARGETS)
        targets = plan_targets(programs, history)
        result = RunResult(targets=targets, log=history, dry_run=dry_run)
        log.info("targets_planned", programs=len(targets), episodes=result.target_count)
        if dry_run:
            self._enter(RunState.IDLE)
            return result

        self._enter(RunState.DOWNLOADING)
        try:
            result.downloaded = download_all(targets, self.dst, self.fetcher, self.policy)
        except Exception as e:
            raise self._abort(e) from e

        self._enter(RunState.PERSISTING_LOG)
        result.log = merge_log(history, result.downloaded)
        self.history.save(result.log)

        self._enter(RunState.IDLE)
        return result
