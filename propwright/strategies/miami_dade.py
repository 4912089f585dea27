"""Miami-Dade County Property Appraiser.

The only bundled county searched through a form rather than a deep link:
the raw identifier is typed into the search box and submitted. The result
page either shows one property, a list of candidates, or a "no results"
message, so readiness waits for any of the three.

Owner names may be listed in separate elements or in one field joined
with ``&`` / ``AND``. When the profile configures structured address
locators they take precedence over the single address field.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from propwright.common.data_models import MailingAddress, PropertyRecord
from propwright.common.exceptions import multiple_results, no_results
from propwright.common.text import clean_text, split_owner_names
from propwright.data_types import ScrapeContext, Strategy, WaitForSelector
from propwright.strategies.base import (
    open_search_page,
    read_text,
    require_locator,
    submit_search_form,
)

if TYPE_CHECKING:
    from propwright.config import JurisdictionProfile

logger = logging.getLogger(__name__)

_RESULT_LOCATORS = ("owner_name", "no_results", "result_rows")
_STRUCTURED_ADDRESS_LOCATORS = ("address_line1", "city", "state", "zip")


async def await_results(ctx: ScrapeContext) -> None:
    """Wait until the page shows a record, a result list or "no results"."""
    selectors = [ctx.locator(name) for name in _RESULT_LOCATORS]
    any_result = ", ".join(selector for selector in selectors if selector)
    await ctx.session.wait_for(
        WaitForSelector(any_result, state="attached"), ctx.profile.timeout_ms
    )


async def _owner_names(ctx: ScrapeContext) -> list[str]:
    multiple = ctx.locator("owner_name_multiple")
    if multiple:
        elements = await ctx.session.locate_all(multiple)
        names = [clean_text(await element.text()) for element in elements]
        return [name for name in names if name]
    return split_owner_names(
        await read_text(ctx, require_locator(ctx, "owner_name"))
    )


async def _read_optional(ctx: ScrapeContext, name: str) -> str:
    selector = ctx.locator(name)
    return await read_text(ctx, selector) if selector else ""


async def _mailing_address(ctx: ScrapeContext) -> MailingAddress | str:
    if ctx.locator("address_line1"):
        street, city, state, zip_code = [
            await _read_optional(ctx, name)
            for name in _STRUCTURED_ADDRESS_LOCATORS
        ]
        parts = [part for part in (street, city, state, zip_code) if part]
        if street:
            return MailingAddress(
                street=street,
                city=city,
                state=state,
                zip=zip_code,
                raw=", ".join(parts),
            )
        if parts:
            return ", ".join(parts)
    return await read_text(ctx, require_locator(ctx, "mailing_address"))


async def extract(ctx: ScrapeContext):
    no_results_selector = ctx.locator("no_results")
    if (
        no_results_selector
        and await ctx.session.locate(no_results_selector) is not None
    ):
        raise no_results(
            ctx.jurisdiction_id,
            ctx.identifier,
            detail={"indicator": no_results_selector},
        )

    rows_selector = ctx.locator("result_rows")
    if rows_selector:
        rows = await ctx.session.locate_all(rows_selector)
        if len(rows) > 1:
            raise multiple_results(
                f"Search for '{ctx.identifier}' matched {len(rows)} properties",
                jurisdiction_id=ctx.jurisdiction_id,
                identifier_value=ctx.identifier,
                detail={"count": len(rows)},
            )

    owners = await _owner_names(ctx)
    if not owners:
        return PropertyRecord.raw(ctx.session.url, owner_names=[])
    return PropertyRecord.raw(
        ctx.session.url,
        owner_names=owners,
        mailing_address=await _mailing_address(ctx),
    )


def build(profile: JurisdictionProfile) -> Strategy:
    return Strategy(
        jurisdiction_id=profile.id,
        navigate=open_search_page,
        query=submit_search_form(),
        await_stable=await_results,
        extract=extract,
    )
