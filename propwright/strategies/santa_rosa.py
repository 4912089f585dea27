"""Santa Rosa County Property Appraiser.

The parcel viewer (normally framed by srcpa.gov) is opened directly and
lays the owner out in ``td[data-cell=...]`` cells. Its city cell holds
``CITY, ST ZIP``, so this is the one bundled county producing a structured
MailingAddress; an unparseable city line falls back to the raw text.
"""

from __future__ import annotations

import re
from typing import TYPE_CHECKING

from propwright.common.data_models import MailingAddress, PropertyRecord
from propwright.data_types import ScrapeContext, Strategy
from propwright.strategies.base import deep_link, read_text, require_locator

if TYPE_CHECKING:
    from propwright.config import JurisdictionProfile

_CITY_STATE_ZIP_RE = re.compile(
    r"^(?P<city>.+?),?\s+(?P<state>[A-Z]{2})\s+(?P<zip>\d{5}(?:-\d{4})?)$"
)


def parse_mailing_address(street: str, city_line: str) -> MailingAddress | str:
    """Structure a street line and a ``CITY, ST ZIP`` line if possible."""
    raw = "\n".join(part for part in (street, city_line) if part)
    match = _CITY_STATE_ZIP_RE.match(city_line)
    if not street or match is None:
        return raw
    return MailingAddress(
        street=street,
        city=match.group("city").strip(),
        state=match.group("state"),
        zip=match.group("zip"),
        raw=raw,
    )


async def extract(ctx: ScrapeContext):
    names = [
        await read_text(ctx, require_locator(ctx, "owner_name")),
        await read_text(ctx, require_locator(ctx, "owner_additional")),
    ]
    owner = " ".join(name for name in names if name)
    street = await read_text(ctx, require_locator(ctx, "street"))
    city_line = await read_text(ctx, require_locator(ctx, "city_state_zip"))
    return PropertyRecord.raw(
        ctx.state.get("url", ""),
        owner_names=[owner] if owner else [],
        mailing_address=parse_mailing_address(street, city_line),
    )


def build(profile: JurisdictionProfile) -> Strategy:
    return Strategy(
        jurisdiction_id=profile.id,
        navigate=deep_link(
            "?parcel={identifier}&baseUrl=http://srcpa.gov/",
            wait_until="networkidle",
        ),
        extract=extract,
    )
