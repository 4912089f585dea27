"""Volusia County Property Appraiser.

Record pages sit behind a data-use disclaimer, which the query phase
accepts. The page is then ready once its body text shows the
``Owner(s):`` label; values live in the element following each label.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from propwright.common.data_models import PropertyRecord
from propwright.data_types import (
    ScrapeContext,
    Strategy,
    WaitForSelector,
    WaitForText,
)
from propwright.strategies.base import deep_link, read_lines, require_locator

if TYPE_CHECKING:
    from propwright.config import JurisdictionProfile

logger = logging.getLogger(__name__)

READY_TEXT = "Owner(s):"


async def accept_disclaimer(ctx: ScrapeContext) -> None:
    button = require_locator(ctx, "disclaimer_button")
    await ctx.session.wait_for(WaitForSelector(button), ctx.profile.timeout_ms)
    logger.debug(f"[{ctx.jurisdiction_id}] Accepting data disclaimer")
    await ctx.session.click(button)


async def await_owner_label(ctx: ScrapeContext) -> None:
    await ctx.session.wait_for(WaitForText(READY_TEXT), ctx.profile.timeout_ms)


async def extract(ctx: ScrapeContext):
    owners = await read_lines(ctx, require_locator(ctx, "owner_name"))
    # The address block ends with an "Update Mailing Address" link
    address_lines = await read_lines(
        ctx, require_locator(ctx, "mailing_address"), drop_tags=("a",)
    )
    return PropertyRecord.raw(
        ctx.state.get("url", ""),
        owner_names=owners,
        mailing_address="\n".join(address_lines),
    )


def build(profile: JurisdictionProfile) -> Strategy:
    return Strategy(
        jurisdiction_id=profile.id,
        navigate=deep_link("?altkey={identifier}"),
        query=accept_disclaimer,
        await_stable=await_owner_label,
        extract=extract,
    )
