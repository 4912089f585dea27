"""Pasco County Property Appraiser.

Deep link: ``parcel.aspx?parcel={key}``. Pasco prints parcel ids as
section-township-range first (``22-26-21-0030-00000-0280``) but its site
keys them range-township-section, with no separators
(``2126220030000000280``); see ``propwright.common.identifiers``.

The owner and the address share one ``<br>``-separated block: the first
line is the owner, the rest is the mailing address.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from propwright.common.data_models import PropertyRecord
from propwright.data_types import ScrapeContext, Strategy
from propwright.strategies.base import deep_link, read_lines, require_locator

if TYPE_CHECKING:
    from propwright.config import JurisdictionProfile


async def extract(ctx: ScrapeContext):
    lines = await read_lines(ctx, require_locator(ctx, "mailing_block"))
    owner, address_lines = (lines[0], lines[1:]) if lines else ("", [])
    return PropertyRecord.raw(
        ctx.state.get("url", ""),
        owner_names=[owner] if owner else [],
        mailing_address="\n".join(address_lines),
    )


def build(profile: JurisdictionProfile) -> Strategy:
    return Strategy(
        jurisdiction_id=profile.id,
        navigate=deep_link("?parcel={identifier}"),
        extract=extract,
    )
