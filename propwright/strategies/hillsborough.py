"""Hillsborough County Property Appraiser.

The site is a single-page app keyed by the URL hash
(``#/parcel/basic/{parcel}``). The owner heading is filled in by script
after load, so readiness waits for it with a short fixed fallback.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from propwright.common.data_models import PropertyRecord
from propwright.data_types import ScrapeContext, Strategy
from propwright.strategies.base import (
    deep_link,
    read_lines,
    require_locator,
    wait_with_fallback,
)

if TYPE_CHECKING:
    from propwright.config import JurisdictionProfile


async def extract(ctx: ScrapeContext):
    owners = await read_lines(ctx, require_locator(ctx, "owner_name"))
    address_lines = await read_lines(ctx, require_locator(ctx, "mailing_address"))
    if not address_lines:
        # Older layout: <h5>Mailing Address</h5><p>...</p>
        fallback = ctx.locator("mailing_address_fallback")
        if fallback:
            address_lines = await read_lines(ctx, fallback)
    return PropertyRecord.raw(
        ctx.state.get("url", ""),
        owner_names=owners,
        mailing_address="\n".join(address_lines),
    )


def build(profile: JurisdictionProfile) -> Strategy:
    return Strategy(
        jurisdiction_id=profile.id,
        navigate=deep_link("#/parcel/basic/{identifier}", wait_until="load"),
        await_stable=wait_with_fallback("owner_name"),
        extract=extract,
    )
