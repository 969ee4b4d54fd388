"""Shared headless Chromium for the browser render backend.

One :class:`BrowserPool` is owned by whoever runs renders (the FastAPI app
lifespan, or the CLI for a single command). The browser process is launched
lazily on first use; concurrent first callers await the same launch. Every
render gets its own page, which is closed on every exit path.
"""

from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Awaitable, Callable, Sequence

from playwright.async_api import async_playwright

from ashram.core.config import settings

logger = logging.getLogger(__name__)

Stopper = Callable[[], Awaitable[None]]
Launcher = Callable[[Sequence[str]], Awaitable[tuple[Any, Stopper]]]


async def launch_chromium(args: Sequence[str]) -> tuple[Any, Stopper]:
    playwright = await async_playwright().start()
    try:
        browser = await playwright.chromium.launch(headless=True, args=list(args))
    except Exception:
        await playwright.stop()
        raise
    return browser, playwright.stop


class BrowserPool:
    def __init__(
        self,
        *,
        launcher: Launcher | None = None,
        launch_args: Sequence[str] | None = None,
        page_timeout_seconds: float | None = None,
    ) -> None:
        self._launcher = launcher or launch_chromium
        self.launch_args = list(settings.browser_launch_args if launch_args is None else launch_args)
        self.page_timeout_seconds = (
            settings.browser_page_timeout_seconds if page_timeout_seconds is None else page_timeout_seconds
        )
        self.launch_count = 0
        self.open_pages = 0
        self._browser: Any | None = None
        self._stop: Stopper | None = None
        self._launch: asyncio.Future[Any] | None = None
        self._lock = asyncio.Lock()

    def is_healthy(self) -> bool:
        return self._browser is not None and bool(self._browser.is_connected())

    def _launch_reusable(self) -> bool:
        launch = self._launch
        if launch is None:
            return False
        if not launch.done():
            return True
        if launch.cancelled() or launch.exception() is not None:
            return False
        return self.is_healthy()

    async def _start(self) -> Any:
        await self._release()
        self.launch_count += 1
        logger.info("browser_launch_started", extra={"launch": self.launch_count})
        try:
            browser, stop = await self._launcher(self.launch_args)
        except Exception as exc:
            logger.error("browser_launch_failed", extra={"error": str(exc)})
            raise
        self._browser, self._stop = browser, stop
        logger.info("browser_launch_finished", extra={"launch": self.launch_count})
        return browser

    async def browser(self) -> Any:
        if self.is_healthy():
            return self._browser
        async with self._lock:
            if not self._launch_reusable():
                self._launch = asyncio.ensure_future(self._start())
            launch = self._launch
        # A caller that times out must not cancel the launch other callers wait on.
        return await asyncio.shield(launch)

    @asynccontextmanager
    async def page(self) -> AsyncIterator[Any]:
        browser = await self.browser()
        page = await browser.new_page()
        self.open_pages += 1
        try:
            timeout_ms = self.page_timeout_seconds * 1000
            page.set_default_timeout(timeout_ms)
            page.set_default_navigation_timeout(timeout_ms)
            yield page
        finally:
            self.open_pages -= 1
            try:
                await page.close()
            except Exception as exc:
                logger.warning("browser_page_close_failed", extra={"error": str(exc)})

    async def _release(self) -> None:
        browser, stop = self._browser, self._stop
        self._browser, self._stop = None, None
        if browser is not None:
            try:
                await browser.close()
            except Exception as exc:
                logger.warning("browser_close_failed", extra={"error": str(exc)})
        if stop is not None:
            try:
                await stop()
            except Exception as exc:
                logger.warning("browser_driver_stop_failed", extra={"error": str(exc)})

    async def shutdown(self) -> None:
        async with self._lock:
            launch, self._launch = self._launch, None
            if launch is not None and not launch.done():
                launch.cancel()
            await self._release()
        logger.info("browser_pool_shutdown", extra={"launches": self.launch_count})
