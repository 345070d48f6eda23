"""
scraper — Read a program's episode listing from one listing page.

The listing is lazy-loaded: more episodes appear as the page is scrolled,
so the page is scrolled until its height stops changing before anything
is read.
"""
from __future__ import annotations
import asyncio
from typing import Awaitable, Callable

import structlog

from .browser import BrowserSession, PageDriver
from .errors import ScrapeError
from .fanout import gather_limited
from .models import VOD, VODStatus

log = structlog.get_logger()

# Listing markers (must render before scraping starts)
EPISODE_TITLE_SELECTOR = "p.com-video-EpisodeList__title"
LABEL_SELECTOR = "span.com-vod-VODLabel"

PROGRAM_TITLE_SELECTOR = "h1.com-video-TitleSection__title"
EPISODE_SELECTOR = "div.com-video-EpisodeList__listitem"
EPISODE_LINK_SELECTOR = "a.com-a-Link"
SUBTITLE_SELECTOR = "span.com-a-CollapsedText__container"

FREE_LABEL = "無料"

SCROLL_JS = """() => {
    window.scrollBy(0, document.body.scrollHeight);
    return document.body.scrollHeight;
}"""

DEFAULT_SCROLL_INTERVAL = 5.0


async def scroll_to_end(
    page: PageDriver,
    interval: float = DEFAULT_SCROLL_INTERVAL,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
) -> int:
    """
    Scroll to the bottom until the page height stops growing.
    Returns the number of scroll cycles.

    There is no cycle cap: a page whose height grows forever keeps this loop running.
    """
    bottom = 0
    cycles = 0
    while True:
        last = bottom
        bottom = await page.evaluate(SCROLL_JS)
        cycles += 1
        await sleep(interval)
        if bottom <= last:
            break
    log.debug("scroll_settled", height=bottom, cycles=cycles)
    return cycles


async def _text(page: PageDriver, selector: str, root=None) -> str | None:
    handle = await page.query_one(selector, root=root)
    if handle is None:
        return None
    return await page.read_property(handle, "textContent")


async def _read_episode(page: PageDriver, url: str, node) -> VOD:
    link = await page.query_one(EPISODE_LINK_SELECTOR, root=node)
    video_url = await page.read_property(link, "href") if link is not None else None
    if not video_url:
        # One broken entry fails the whole program.
        raise ScrapeError(url, "episode without a video link")

    subtitle = await _text(page, SUBTITLE_SELECTOR, root=node)
    label = await _text(page, LABEL_SELECTOR, root=node)
    return VOD(
        video_url=video_url,
        subtitle=subtitle,
        free=(label or "").strip() == FREE_LABEL,
    )


async def scrape(
    browser: BrowserSession,
    url: str,
    scroll_interval: float = DEFAULT_SCROLL_INTERVAL,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
) -> VODStatus:
    """Load `url` in its own page and return its title and full episode listing."""
    page = await browser.new_page()
    try:
        try:
            await page.goto(url)
            await page.wait_for_selector(EPISODE_TITLE_SELECTOR)
            await page.wait_for_selector(LABEL_SELECTOR)
        except Exception as e:
            raise ScrapeError(url, str(e)) from e

        await scroll_to_end(page, scroll_interval, sleep)

        title = await _text(page, PROGRAM_TITLE_SELECTOR)
        if not title:
            raise ScrapeError(url, "program title not found")

        nodes = await page.query_all(EPISODE_SELECTOR)
        episodes = [await _read_episode(page, url, n) for n in nodes]
    finally:
        await page.close()

    log.info("scrape_done", url=url, title=title, episodes=len(episodes),
             free=sum(1 for e in episodes if e.free))
    return VODStatus(url=url, title=title.strip(), episodes=tuple(episodes))


async def scrape_all(
    browser: BrowserSession,
    urls: list[str],
    limit: int | None = None,
    scroll_interval: float = DEFAULT_SCROLL_INTERVAL,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
) -> list[VODStatus]:
    """Scrape every resolved URL concurrently; results follow `urls` order."""
    return await gather_limited(
        lambda u: scrape(browser, u, scroll_interval, sleep), urls, limit
    )
