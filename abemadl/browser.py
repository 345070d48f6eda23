"""
browser — Page automation capability used by the resolver and the scraper.

`BrowserSession` / `PageDriver` are the only surface the crawl code touches,
so tests can swap in an in-memory fake. `PlaywrightSession` is the real
implementation on top of playwright's async API.
"""
from __future__ import annotations
from typing import Any, Optional, Protocol

import structlog
from playwright.async_api import async_playwright, ElementHandle, Page

log = structlog.get_logger()

VIEWPORT = {"width": 1200, "height": 800}
LAUNCH_ARGS = ["--no-sandbox", "--disable-setuid-sandbox"]


class PageDriver(Protocol):
    async def goto(self, url: str) -> None: ...
    async def wait_for_selector(self, selector: str) -> None: ...
    async def query_all(self, selector: str, root: Any = None) -> list[Any]: ...
    async def query_one(self, selector: str, root: Any = None) -> Optional[Any]: ...
    async def read_property(self, handle: Any, name: str) -> Optional[str]: ...
    async def evaluate(self, script: str) -> Any: ...
    async def close(self) -> None: ...


class BrowserSession(Protocol):
    async def new_page(self) -> PageDriver: ...
    async def close(self) -> None: ...


class PlaywrightPage:
    def __init__(self, page: Page):
        self._page = page

    async def goto(self, url: str) -> None:
        await self._page.goto(url)

    async def wait_for_selector(self, selector: str) -> None:
        await self._page.wait_for_selector(selector)

    async def query_all(self, selector: str, root: ElementHandle | None = None) -> list[ElementHandle]:
        return await (root or self._page).query_selector_all(selector)

    async def query_one(self, selector: str, root: ElementHandle | None = None) -> ElementHandle | None:
        return await (root or self._page).query_selector(selector)

    async def read_property(self, handle: ElementHandle, name: str) -> str | None:
        prop = await handle.get_property(name)
        return await prop.json_value()

    async def evaluate(self, script: str) -> Any:
        return await self._page.evaluate(script)

    async def close(self) -> None:
        await self._page.close()


class PlaywrightSession:
    """
    One headless chromium shared by every page of a run.

        async with PlaywrightSession(executable_path=...) as browser:
            page = await browser.new_page()
    """

    def __init__(self, executable_path: str | None = None, timeout_ms: int = 30_000):
        self.executable_path = executable_path or None
        self.timeout_ms = timeout_ms
        self._pw = None
        self._browser = None
        self._context = None

    async def start(self) -> "PlaywrightSession":
        self._pw = await async_playwright().start()
        try:
            self._browser = await self._pw.chromium.launch(
                headless=True,
                args=LAUNCH_ARGS,
                executable_path=self.executable_path,
            )
            self._context = await self._browser.new_context(viewport=VIEWPORT)
        except Exception:
            await self.close()
            raise
        self._context.set_default_timeout(self.timeout_ms)
        log.info("browser_started", executable=self.executable_path or "bundled")
        return self

    async def new_page(self) -> PlaywrightPage:
        if self._context is None:
            raise RuntimeError("browser session not started")
        return PlaywrightPage(await self._context.new_page())

    async def close(self) -> None:
        # Safe to call more than once; abort paths close unconditionally.
        try:
            if self._browser is not None:
                browser, self._browser, self._context = self._browser, None, None
                await browser.close()
        finally:
            if self._pw is not None:
                pw, self._pw = self._pw, None
                await pw.stop()
                log.info("browser_closed")

    async def __aenter__(self) -> "PlaywrightSession":
        return await self.start()

    async def __aexit__(self, *exc) -> None:
        await self.close()
