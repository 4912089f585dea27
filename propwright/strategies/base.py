"""Hook builders and page-reading helpers shared by the county strategies.

A county strategy is a handful of small async functions. The common shapes
(open a deep link, type into a search form, read an element's text or
lines) live here so each county module only spells out what differs.
"""

from __future__ import annotations

import logging
from urllib.parse import quote

from propwright.common.exceptions import ErrorKind, ScraperError, missing_field
from propwright.common.text import clean_text, html_block_to_lines
from propwright.data_types import (
    Hook,
    ScrapeContext,
    WaitForSelector,
    WaitForTimeout,
)

logger = logging.getLogger(__name__)


def require_locator(ctx: ScrapeContext, name: str) -> str:
    """The named locator from the profile.

    Raises:
        ScraperError: MISSING_REQUIRED_FIELD if the profile lacks it.
    """
    locator = ctx.locator(name)
    if not locator:
        raise missing_field(
            name,
            jurisdiction_id=ctx.jurisdiction_id,
            identifier_value=ctx.identifier,
            detail={"locator": name, "reason": "not configured in profile"},
        )
    return locator


def deep_link_url(
    ctx: ScrapeContext, suffix: str, transform: bool = True
) -> str:
    """Build a deep link from the profile's search URL.

    ``suffix`` is appended to ``search_url`` after substituting
    ``{identifier}`` with the (optionally transformed) URL-quoted key.
    """
    identifier = ctx.transformed_identifier() if transform else ctx.identifier
    return ctx.profile.search_url + suffix.format(
        identifier=quote(identifier, safe="")
    )


def deep_link(
    suffix: str,
    wait_until: str = "domcontentloaded",
    transform: bool = True,
) -> Hook:
    """A navigate hook that opens ``search_url + suffix`` directly.

    Example:
        navigate = deep_link("?RE={identifier}")
    """

    async def navigate(ctx: ScrapeContext) -> None:
        url = deep_link_url(ctx, suffix, transform=transform)
        logger.info(f"[{ctx.jurisdiction_id}] Navigating to: {url}")
        ctx.state["url"] = url
        await ctx.session.navigate(
            url, wait_until=wait_until, timeout_ms=ctx.profile.timeout_ms
        )

    return navigate


async def open_search_page(ctx: ScrapeContext) -> None:
    """Navigate hook for sites searched through a form."""
    url = ctx.profile.search_url
    logger.info(f"[{ctx.jurisdiction_id}] Opening search page: {url}")
    ctx.state["url"] = url
    await ctx.session.navigate(url, timeout_ms=ctx.profile.timeout_ms)


def submit_search_form(
    input_locator: str = "search_input",
    button_locator: str = "search_button",
) -> Hook:
    """A query hook typing the raw identifier into a search form.

    The button is clicked when the profile configures one; otherwise Enter
    is pressed in the input.
    """

    async def query(ctx: ScrapeContext) -> None:
        search_input = require_locator(ctx, input_locator)
        await ctx.session.wait_for(
            WaitForSelector(search_input), ctx.profile.timeout_ms
        )
        await ctx.session.fill(search_input, ctx.identifier)
        search_button = ctx.locator(button_locator)
        if search_button:
            await ctx.session.click(search_button)
        else:
            await ctx.session.press(search_input, "Enter")
        logger.debug(f"[{ctx.jurisdiction_id}] Submitted search form")

    return query


def wait_with_fallback(
    selector_locator: str, fallback_ms: int = 5000
) -> Hook:
    """An await_stable hook for single-page apps that sometimes never settle.

    Waits (for at most half the profile timeout) for the named locator; if
    it never appears, waits a fixed ``fallback_ms`` and lets extraction
    decide what the page holds.
    """

    async def await_stable(ctx: ScrapeContext) -> None:
        selector = require_locator(ctx, selector_locator)
        try:
            await ctx.session.wait_for(
                WaitForSelector(selector), ctx.profile.timeout_ms // 2
            )
        except ScraperError as e:
            if e.kind is not ErrorKind.TIMEOUT:
                raise
            logger.info(
                f"[{ctx.jurisdiction_id}] Wait for {selector} failed, "
                f"waiting {fallback_ms}ms instead"
            )
            await ctx.session.wait_for(WaitForTimeout(fallback_ms))

    return await_stable


async def read_text(ctx: ScrapeContext, selector: str) -> str:
    """Whitespace-cleaned text of the first match, "" if absent."""
    element = await ctx.session.locate(selector)
    if element is None:
        return ""
    return clean_text(await element.text())


async def read_lines(
    ctx: ScrapeContext, selector: str, drop_tags: tuple[str, ...] = ()
) -> list[str]:
    """Lines of the first match's markup, [] if absent."""
    element = await ctx.session.locate(selector)
    if element is None:
        return []
    return html_block_to_lines(await element.inner_html(), drop_tags)
