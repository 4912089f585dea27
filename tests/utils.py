"""Test utilities: an in-memory browser session over static HTML.

FakeSession implements the BrowserSession capability with lxml documents,
so strategies and the lifecycle can run without a browser. Selectors are
CSS (via cssselect) or ``xpath=`` prefixed XPath, as with Playwright.
"""

from __future__ import annotations

import asyncio
from collections.abc import Mapping
from html import escape as escape_html
from typing import Any

from lxml import etree, html

from propwright.common.exceptions import navigation_failed, timeout
from propwright.data_types import (
    WaitForLoadState,
    WaitForSelector,
    WaitForText,
    WaitForTimeout,
)
from propwright.driver.session import SessionOptions

EMPTY_PAGE = "<html><body></body></html>"


def select(root: Any, selector: str) -> list[Any]:
    """Elements under ``root`` matching a CSS or ``xpath=`` selector."""
    if selector.startswith("xpath="):
        return [
            match
            for match in root.xpath(selector[len("xpath=") :])
            if isinstance(match, etree._Element)
        ]
    return root.cssselect(selector)


class FakeElement:
    """ElementHandle over one lxml element."""

    def __init__(self, element: Any) -> None:
        self.element = element

    async def text(self) -> str:
        return self.element.text_content()

    async def inner_html(self) -> str:
        parts = [escape_html(self.element.text or "", quote=False)]
        parts.extend(
            etree.tostring(child, encoding="unicode", method="html")
            for child in self.element
        )
        return "".join(parts)

    async def get_attribute(self, name: str) -> str | None:
        return self.element.get(name)

    async def locate_all(self, selector: str) -> list[FakeElement]:
        return [FakeElement(match) for match in select(self.element, selector)]


class FakeSession:
    """BrowserSession serving static pages.

    Args:
        pages: URL -> HTML. The ``"*"`` key serves any other URL.
        on_action: Selector -> HTML loaded after clicking (or pressing a
            key in) that selector, to mimic form submission.
        failures: Method name -> exception raised when it is called
            (``"navigate"``, ``"locate"``, ``"wait_for"``, ``"close"``, ...).
    """

    def __init__(
        self,
        pages: Mapping[str, str] | None = None,
        on_action: Mapping[str, str] | None = None,
        failures: Mapping[str, BaseException] | None = None,
        options: SessionOptions | None = None,
        events: list[str] | None = None,
    ) -> None:
        self.pages = dict(pages or {})
        self.on_action = dict(on_action or {})
        self.failures = dict(failures or {})
        self.options = options or SessionOptions()
        self.document = html.document_fromstring(EMPTY_PAGE)
        self._url = "about:blank"
        self.navigations: list[str] = []
        self.filled: list[tuple[str, str]] = []
        self.clicked: list[str] = []
        self.pressed: list[tuple[str, str]] = []
        self.waits: list[Any] = []
        self.close_calls = 0
        self.events = events if events is not None else []

    def _maybe_fail(self, method: str) -> None:
        failure = self.failures.get(method)
        if failure is not None:
            raise failure

    def load(self, markup: str) -> None:
        self.document = html.document_fromstring(markup)

    @property
    def url(self) -> str:
        return self._url

    async def navigate(
        self,
        url: str,
        wait_until: str = "domcontentloaded",
        timeout_ms: int | None = None,
    ) -> None:
        self._maybe_fail("navigate")
        markup = self.pages.get(url, self.pages.get("*"))
        if markup is None:
            raise navigation_failed(f"No page served for {url}")
        self.navigations.append(url)
        self._url = url
        self.load(markup)

    async def locate(self, selector: str) -> FakeElement | None:
        self._maybe_fail("locate")
        matches = select(self.document, selector)
        return FakeElement(matches[0]) if matches else None

    async def locate_all(self, selector: str) -> list[FakeElement]:
        self._maybe_fail("locate_all")
        return [FakeElement(match) for match in select(self.document, selector)]

    async def fill(self, selector: str, value: str) -> None:
        self._maybe_fail("fill")
        if not select(self.document, selector):
            raise RuntimeError(f"No element matches {selector}")
        self.filled.append((selector, value))

    async def click(self, selector: str) -> None:
        self._maybe_fail("click")
        if not select(self.document, selector):
            raise RuntimeError(f"No element matches {selector}")
        self.clicked.append(selector)
        if selector in self.on_action:
            self.load(self.on_action[selector])

    async def press(self, selector: str, key: str) -> None:
        self._maybe_fail("press")
        self.pressed.append((selector, key))
        if selector in self.on_action:
            self.load(self.on_action[selector])

    async def wait_for(self, condition: Any, timeout_ms: int | None = None) -> None:
        self._maybe_fail("wait_for")
        self.waits.append(condition)
        if isinstance(condition, WaitForSelector):
            if not select(self.document, condition.selector):
                raise timeout(f"Selector never appeared: {condition.selector}")
        elif isinstance(condition, WaitForText):
            if condition.text not in self.document.text_content():
                raise timeout(f"Text never appeared: {condition.text}")
        elif not isinstance(condition, (WaitForLoadState, WaitForTimeout)):
            raise TypeError(f"Unknown wait condition: {condition!r}")

    async def close(self) -> None:
        self.close_calls += 1
        self.events.append("close")
        self._maybe_fail("close")


class FakeSessionFactory:
    """SessionFactory handing out FakeSessions and recording them."""

    def __init__(
        self,
        pages: Mapping[str, str] | None = None,
        on_action: Mapping[str, str] | None = None,
        failures: Mapping[str, BaseException] | None = None,
        open_error: BaseException | None = None,
    ) -> None:
        self.pages = pages
        self.on_action = on_action
        self.failures = failures
        self.open_error = open_error
        self.sessions: list[FakeSession] = []
        self.open_calls = 0
        # "open" and "close" in the order they happened, across sessions
        self.events: list[str] = []

    async def open_session(self, options: SessionOptions) -> FakeSession:
        self.open_calls += 1
        if self.open_error is not None:
            raise self.open_error
        session = FakeSession(
            self.pages,
            self.on_action,
            self.failures,
            options=options,
            events=self.events,
        )
        self.sessions.append(session)
        self.events.append("open")
        # Yield so concurrently started attempts interleave here
        await asyncio.sleep(0)
        return session

    @property
    def total_close_calls(self) -> int:
        return sum(session.close_calls for session in self.sessions)


def page(body: str) -> str:
    """Wrap a body fragment into a full HTML document."""
    return f"<html><head><title>Test</title></head><body>{body}</body></html>"
