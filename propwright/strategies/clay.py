"""Clay County Property Appraiser (qPublic).

A Clay parcel may list several owners, each in its own block with its own
address. Owner names are merged one per line in document order; identical
addresses are listed once.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from propwright.common.data_models import PropertyRecord
from propwright.common.text import clean_text, merge_addresses, merge_owner_names
from propwright.data_types import ScrapeContext, Strategy
from propwright.driver.session import ElementHandle
from propwright.strategies.base import deep_link, require_locator

if TYPE_CHECKING:
    from propwright.config import JurisdictionProfile

_ADDRESS_ID_FRAGMENTS = ("lblAddress1", "lblAddress2", "lblCityStateZip")
_NOT_A_NAME = ("Address", "City", "Zip")


async def _owner_name(block: ElementHandle) -> str:
    for element in await block.locate_all("span, a"):
        element_id = await element.get_attribute("id") or ""
        if any(fragment in element_id for fragment in _NOT_A_NAME):
            continue
        text = clean_text(await element.text())
        if text:
            return text
    return ""


async def _address(block: ElementHandle) -> str:
    parts: dict[str, str] = {}
    for span in await block.locate_all("span"):
        element_id = await span.get_attribute("id") or ""
        text = clean_text(await span.text())
        for fragment in _ADDRESS_ID_FRAGMENTS:
            if fragment in element_id and text:
                parts[fragment] = text
    return "\n".join(
        parts[fragment] for fragment in _ADDRESS_ID_FRAGMENTS if fragment in parts
    )


async def extract(ctx: ScrapeContext):
    names: list[str] = []
    addresses: list[str] = []
    for block in await ctx.session.locate_all(require_locator(ctx, "owner_block")):
        names.append(await _owner_name(block))
        addresses.append(await _address(block))

    owners = merge_owner_names(names)
    return PropertyRecord.raw(
        ctx.state.get("url", ""),
        owner_names=[owners] if owners else [],
        mailing_address=merge_addresses(addresses),
        additional_data={"owner_count": sum(1 for name in names if name)},
    )


def build(profile: JurisdictionProfile) -> Strategy:
    return Strategy(
        jurisdiction_id=profile.id,
        navigate=deep_link("&KeyValue={identifier}", wait_until="networkidle"),
        extract=extract,
    )
