"""Duval County Property Appraiser.

Deep link: ``Basic/Detail.aspx?RE={parcel}``, where the RE number is the
parcel id without its hyphen (``035697-0000`` -> ``0356970000``). The
mailing address is split over line 1 and line 3 spans; line 2 is unused.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from propwright.common.data_models import PropertyRecord
from propwright.data_types import ScrapeContext, Strategy
from propwright.strategies.base import deep_link, read_text, require_locator

if TYPE_CHECKING:
    from propwright.config import JurisdictionProfile

ADDRESS_LINE_LOCATORS = ("address_line1", "address_line3")


async def extract(ctx: ScrapeContext):
    owner = await read_text(ctx, require_locator(ctx, "owner_name"))
    lines = [
        await read_text(ctx, require_locator(ctx, name))
        for name in ADDRESS_LINE_LOCATORS
    ]
    return PropertyRecord.raw(
        ctx.state.get("url", ""),
        owner_names=[owner] if owner else [],
        mailing_address="\n".join(line for line in lines if line),
    )


def build(profile: JurisdictionProfile) -> Strategy:
    return Strategy(
        jurisdiction_id=profile.id,
        navigate=deep_link("?RE={identifier}"),
        extract=extract,
    )
