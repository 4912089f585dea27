"""Browser-driver capability consumed by the lifecycle and the strategies.

The engine never talks to a browser library directly; it only needs to open
a session, navigate, locate elements and read their text, wait, and close.
PlaywrightSessionFactory is the production implementation; tests supply an
lxml-backed fake.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from propwright.data_types import WaitCondition


DEFAULT_BLOCKED_RESOURCE_TYPES = frozenset(
    {"image", "stylesheet", "font", "media"}
)


@dataclass(frozen=True)
class SessionOptions:
    """Options for opening one browser session.

    Attributes:
        headless: Run the browser without a window.
        timeout_ms: Default timeout for driver operations.
        viewport: Viewport size, e.g. ``{"width": 1920, "height": 1080}``.
        user_agent: Custom user agent (None = browser default).
        locale: Browser locale.
        timezone_id: Browser timezone.
        blocked_resource_types: Request resource types aborted by the
            session (images, fonts, ...).
    """

    headless: bool = True
    timeout_ms: int = 30000
    viewport: dict[str, int] = field(
        default_factory=lambda: {"width": 1920, "height": 1080}
    )
    user_agent: str | None = None
    locale: str = "en-US"
    timezone_id: str = "America/New_York"
    blocked_resource_types: frozenset[str] = DEFAULT_BLOCKED_RESOURCE_TYPES


@runtime_checkable
class ElementHandle(Protocol):
    """One element on the live page."""

    async def text(self) -> str:
        """Rendered text content ("" when the element has none)."""
        ...

    async def inner_html(self) -> str: ...

    async def get_attribute(self, name: str) -> str | None: ...

    async def locate_all(self, selector: str) -> list[ElementHandle]:
        """Descendants matching a CSS selector, in document order."""
        ...


@runtime_checkable
class BrowserSession(Protocol):
    """One exclusively owned page of one browser session."""

    @property
    def url(self) -> str: ...

    async def navigate(
        self,
        url: str,
        wait_until: str = "domcontentloaded",
        timeout_ms: int | None = None,
    ) -> None:
        """Open ``url``.

        Raises:
            ScraperError: PAGE_LOAD_TIMEOUT when the driver's own load
                timeout elapses, NAVIGATION_FAILED for a network failure.
        """
        ...

    async def locate(self, selector: str) -> ElementHandle | None:
        """First element matching ``selector``, or None."""
        ...

    async def locate_all(self, selector: str) -> list[ElementHandle]: ...

    async def fill(self, selector: str, value: str) -> None: ...

    async def click(self, selector: str) -> None: ...

    async def press(self, selector: str, key: str) -> None: ...

    async def wait_for(
        self, condition: WaitCondition, timeout_ms: int | None = None
    ) -> None:
        """Block until ``condition`` holds.

        Raises:
            ScraperError: TIMEOUT when the condition never holds.
        """
        ...

    async def close(self) -> None: ...


class SessionFactory(Protocol):
    """Opens browser sessions; one per scrape attempt."""

    async def open_session(self, options: SessionOptions) -> BrowserSession:
        """Open a new, exclusively owned session.

        Raises:
            ScraperError: BROWSER_LAUNCH_FAILED if the browser can't start.
        """
        ...
