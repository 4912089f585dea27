"""Playwright implementation of the browser-driver capability.

Each session owns its own playwright instance, browser, context and page,
and tears them down innermost first on close(). Heavy resources (images,
fonts, media, stylesheets) are aborted at the routing layer; county
appraiser pages only need their DOM.

Driver failures are classified here, where the Playwright exception types
are known:

- a navigation that exceeds Playwright's own timeout -> PAGE_LOAD_TIMEOUT
- a wait condition that never holds -> TIMEOUT
- a page, context or browser that has gone away -> BROWSER_CRASH
- any other navigation error -> NAVIGATION_FAILED
"""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING, Any

from playwright.async_api import (
    Browser,
    BrowserContext,
    Page,
    Playwright,
    Route,
    async_playwright,
)
from playwright.async_api import Error as PlaywrightError
from playwright.async_api import ElementHandle as PlaywrightElementHandle
from playwright.async_api import (
    TimeoutError as PlaywrightTimeoutError,
)

from propwright.common.exceptions import (
    ScraperError,
    browser_crash,
    browser_launch_failed,
    navigation_failed,
    page_load_timeout,
    timeout,
)
from propwright.data_types import (
    WaitForLoadState,
    WaitForSelector,
    WaitForText,
    WaitForTimeout,
)
from propwright.driver.session import SessionOptions

if TYPE_CHECKING:
    from propwright.data_types import WaitCondition

logger = logging.getLogger(__name__)

_CLOSED_MARKERS = ("has been closed", "browser has disconnected", "crashed")

_BODY_CONTAINS_TEXT = (
    "text => document.body !== null && document.body.innerText.includes(text)"
)


def _is_closed_error(exc: BaseException) -> bool:
    message = str(exc).lower()
    return any(marker in message for marker in _CLOSED_MARKERS)


def _crash_or(exc: PlaywrightError, fallback: ScraperError) -> ScraperError:
    if _is_closed_error(exc):
        return browser_crash(f"Browser went away: {exc}", detail=exc)
    return fallback


class PlaywrightElement:
    """ElementHandle backed by a Playwright element handle."""

    def __init__(self, handle: PlaywrightElementHandle) -> None:
        self._handle = handle

    async def text(self) -> str:
        return (await self._handle.text_content()) or ""

    async def inner_html(self) -> str:
        return await self._handle.inner_html()

    async def get_attribute(self, name: str) -> str | None:
        return await self._handle.get_attribute(name)

    async def locate_all(self, selector: str) -> list[PlaywrightElement]:
        handles = await self._handle.query_selector_all(selector)
        return [PlaywrightElement(handle) for handle in handles]


class PlaywrightSession:
    """BrowserSession backed by one Playwright page.

    Construct through PlaywrightSessionFactory.open_session(); the session
    owns every Playwright object it holds and releases them in close().
    """

    def __init__(
        self,
        playwright: Playwright,
        browser: Browser,
        context: BrowserContext,
        page: Page,
        options: SessionOptions,
    ) -> None:
        self._playwright = playwright
        self._browser = browser
        self._context = context
        self._page = page
        self._options = options
        self._closed = False

    @property
    def url(self) -> str:
        return self._page.url

    async def navigate(
        self,
        url: str,
        wait_until: str = "domcontentloaded",
        timeout_ms: int | None = None,
    ) -> None:
        effective_timeout = timeout_ms or self._options.timeout_ms
        logger.debug(f"Navigating to {url} (wait_until={wait_until})")
        try:
            await self._page.goto(
                url, wait_until=wait_until, timeout=effective_timeout
            )
        except PlaywrightTimeoutError as e:
            raise page_load_timeout(
                f"Page load exceeded {effective_timeout}ms: {url}",
                detail={"url": url, "timeout_ms": effective_timeout},
            ) from e
        except PlaywrightError as e:
            raise _crash_or(
                e,
                navigation_failed(
                    f"Navigation to {url} failed: {e}",
                    detail={"url": url, "error": str(e)},
                ),
            ) from e

    async def locate(self, selector: str) -> PlaywrightElement | None:
        try:
            handle = await self._page.query_selector(selector)
        except PlaywrightError as e:
            if _is_closed_error(e):
                raise browser_crash(f"Browser went away: {e}", detail=e) from e
            raise
        return PlaywrightElement(handle) if handle is not None else None

    async def locate_all(self, selector: str) -> list[PlaywrightElement]:
        try:
            handles = await self._page.query_selector_all(selector)
        except PlaywrightError as e:
            if _is_closed_error(e):
                raise browser_crash(f"Browser went away: {e}", detail=e) from e
            raise
        return [PlaywrightElement(handle) for handle in handles]

    async def fill(self, selector: str, value: str) -> None:
        await self._page.fill(selector, value)

    async def click(self, selector: str) -> None:
        await self._page.click(selector)

    async def press(self, selector: str, key: str) -> None:
        await self._page.press(selector, key)

    async def wait_for(
        self, condition: WaitCondition, timeout_ms: int | None = None
    ) -> None:
        """Block until a wait condition holds.

        Args:
            condition: One of the WaitFor* conditions.
            timeout_ms: Bound for the wait (default: the session timeout).

        Raises:
            ScraperError: TIMEOUT if the condition never holds,
                BROWSER_CRASH if the page went away while waiting.
        """
        effective_timeout = timeout_ms or self._options.timeout_ms
        try:
            if isinstance(condition, WaitForSelector):
                await self._page.wait_for_selector(
                    condition.selector,
                    state=condition.state,
                    timeout=effective_timeout,
                )
            elif isinstance(condition, WaitForLoadState):
                await self._page.wait_for_load_state(
                    condition.state, timeout=effective_timeout
                )
            elif isinstance(condition, WaitForText):
                await self._page.wait_for_function(
                    _BODY_CONTAINS_TEXT,
                    arg=condition.text,
                    timeout=effective_timeout,
                )
            elif isinstance(condition, WaitForTimeout):
                await asyncio.sleep(condition.timeout / 1000.0)
            else:
                logger.warning(f"Unknown wait condition type: {type(condition)}")
        except PlaywrightTimeoutError as e:
            raise timeout(
                f"Wait condition timeout after {effective_timeout}ms: "
                f"{condition}",
                detail={"condition": repr(condition)},
            ) from e
        except PlaywrightError as e:
            if _is_closed_error(e):
                raise browser_crash(f"Browser went away: {e}", detail=e) from e
            raise

    async def close(self) -> None:
        """Close page, context, browser and playwright, innermost first."""
        if self._closed:
            return
        self._closed = True
        try:
            try:
                await self._context.close()
            finally:
                await self._browser.close()
        finally:
            await self._playwright.stop()


class PlaywrightSessionFactory:
    """Launches one Playwright browser per session.

    Example:
        factory = PlaywrightSessionFactory(browser_type="chromium")
        session = await factory.open_session(SessionOptions())
        try:
            await session.navigate("https://example.com")
        finally:
            await session.close()
    """

    def __init__(self, browser_type: str = "chromium") -> None:
        if browser_type not in ("chromium", "firefox", "webkit"):
            raise ValueError(f"Unsupported browser type: {browser_type}")
        self.browser_type = browser_type

    async def open_session(self, options: SessionOptions) -> PlaywrightSession:
        """Launch a browser and open a page configured by ``options``.

        Raises:
            ScraperError: BROWSER_LAUNCH_FAILED if any launch step fails.
                Anything already started is torn down first.
        """
        playwright = await async_playwright().start()
        try:
            browser_launcher = getattr(playwright, self.browser_type)
            browser: Browser = await browser_launcher.launch(
                headless=options.headless
            )
            try:
                context_kwargs: dict[str, Any] = {
                    "viewport": options.viewport,
                    "locale": options.locale,
                    "timezone_id": options.timezone_id,
                }
                if options.user_agent:
                    context_kwargs["user_agent"] = options.user_agent
                context = await browser.new_context(**context_kwargs)
                context.set_default_timeout(options.timeout_ms)
                try:
                    page = await context.new_page()
                    if options.blocked_resource_types:
                        await page.route(
                            "**/*", _resource_blocker(options.blocked_resource_types)
                        )
                except BaseException:
                    await context.close()
                    raise
            except BaseException:
                await browser.close()
                raise
        except PlaywrightError as e:
            await playwright.stop()
            raise browser_launch_failed(
                f"Failed to launch {self.browser_type}: {e}", detail=e
            ) from e
        except BaseException:
            await playwright.stop()
            raise

        logger.debug(
            f"Opened {self.browser_type} session "
            f"(headless={options.headless}, viewport={options.viewport})"
        )
        return PlaywrightSession(playwright, browser, context, page, options)


def _resource_blocker(blocked: frozenset[str]):
    async def _handle(route: Route) -> None:
        if route.request.resource_type in blocked:
            await route.abort()
        else:
            await route.continue_()

    return _handle
