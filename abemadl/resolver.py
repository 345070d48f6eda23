"""
resolver — Expand a seed program URL into every listing page of the program.

Long series split their episodes across tabs on the program page; each tab
links to another listing page that must be scraped separately.
"""
from __future__ import annotations
import structlog

from .browser import BrowserSession
from .errors import ResolutionError
from .fanout import gather_limited

log = structlog.get_logger()

TAB_SELECTOR = "li.com-m-TabList__tab > a.com-m-TabList__label-container"


async def resolve_nested_urls(browser: BrowserSession, url: str) -> list[str]:
    """Return [url] or [url, *tab URLs] in document order."""
    page = await browser.new_page()
    try:
        try:
            await page.goto(url)
        except Exception as e:
            raise ResolutionError(url, str(e)) from e

        tabs = await page.query_all(TAB_SELECTOR)
        nested = []
        for tab in tabs:
            href = await page.read_property(tab, "href")
            if href:
                nested.append(href)
    finally:
        await page.close()

    log.info("resolve_done", url=url, tabs=len(nested))
    return [url, *nested]


async def resolve_all(browser: BrowserSession, seeds: list[str], limit: int | None = None) -> list[str]:
    """Resolve every seed concurrently and flatten, keeping seed order."""
    nested = await gather_limited(lambda u: resolve_nested_urls(browser, u), seeds, limit)
    return [u for urls in nested for u in urls]
