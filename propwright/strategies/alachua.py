"""Alachua County Property Appraiser (qPublic).

qPublic renders the owner name in several elements sharing the
``sprOwnerName1`` id fragment; only the search label or search link
variant holds the display name, not the "Exact" or "Label" variants.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from propwright.common.data_models import PropertyRecord
from propwright.common.text import clean_text
from propwright.data_types import ScrapeContext, Strategy
from propwright.strategies.base import deep_link, read_lines, require_locator

if TYPE_CHECKING:
    from propwright.config import JurisdictionProfile

OWNER_ID_FRAGMENT = "sprOwnerName1"


def is_owner_name_id(element_id: str) -> bool:
    return (
        OWNER_ID_FRAGMENT in element_id
        and ("lblSearch" in element_id or "lnkSearch" in element_id)
        and "Exact" not in element_id
        and "Label" not in element_id
    )


async def extract(ctx: ScrapeContext):
    owner = ""
    for element in await ctx.session.locate_all(require_locator(ctx, "owner_name")):
        if is_owner_name_id(await element.get_attribute("id") or ""):
            owner = clean_text(await element.text())
            if owner:
                break

    address_lines = await read_lines(ctx, require_locator(ctx, "mailing_address"))
    return PropertyRecord.raw(
        ctx.state.get("url", ""),
        owner_names=[owner] if owner else [],
        mailing_address="\n".join(address_lines),
    )


def build(profile: JurisdictionProfile) -> Strategy:
    return Strategy(
        jurisdiction_id=profile.id,
        navigate=deep_link("&KeyValue={identifier}"),
        extract=extract,
    )
