"""Per-jurisdiction identifier rewriting.

County sites rarely accept a parcel number in the form it is printed on a
tax bill. Each jurisdiction gets a pipeline of small, pure primitives that
turn the caller's raw identifier into the key its site expects, e.g.::

    duval: "035697-0000"              -> "0356970000"
    pasco: "22-26-21-0030-00000-0280" -> "2126220030000000280"

Malformed input raises a VALIDATION_ERROR ScraperError carrying the raw
value; a transform never guesses.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Callable, Mapping, Sequence

from propwright.common.exceptions import ScraperError, validation_error

logger = logging.getLogger(__name__)

Transform = Callable[[str], str]

_NON_NUMERIC_RE = re.compile(r"[^0-9]")


def identity(raw: str) -> str:
    return raw


def strip_non_numeric() -> Transform:
    """Drop every character that is not a digit."""

    def _strip(raw: str) -> str:
        return _NON_NUMERIC_RE.sub("", raw)

    return _strip


def remove_separator(separator: str) -> Transform:
    """Remove every occurrence of a fixed separator."""
    if not separator:
        raise ValueError("separator must be non-empty")

    def _remove(raw: str) -> str:
        return raw.replace(separator, "")

    return _remove


def reorder_segments(
    separator: str,
    order: Sequence[int],
    min_segments: int | None = None,
) -> Transform:
    """Reorder the leading fixed-width segments of a separated key.

    ``order`` lists the source positions of the leading output segments;
    segments after ``max(order)`` are appended unchanged. With
    ``order=(2, 1, 0)``, ``A-B-C-D-E`` becomes ``C-B-A-D-E``.

    Args:
        separator: Segment separator, e.g. ``"-"``.
        order: Source index for each leading output segment.
        min_segments: Minimum segment count accepted (default:
            ``max(order) + 1``).

    Raises:
        ScraperError: VALIDATION_ERROR when the key has too few segments.
    """
    if not order:
        raise ValueError("order must list at least one segment")
    if sorted(order) != list(range(len(order))):
        raise ValueError(f"order must be a permutation of 0..{len(order) - 1}")
    required = min_segments if min_segments is not None else max(order) + 1

    def _reorder(raw: str) -> str:
        parts = raw.split(separator)
        if len(parts) < required:
            raise validation_error(
                f"Identifier '{raw}' has {len(parts)} segment(s) separated "
                f"by '{separator}', expected at least {required}",
                identifier_value=raw,
                detail={
                    "raw_identifier": raw,
                    "separator": separator,
                    "segments": len(parts),
                    "required_segments": required,
                },
            )
        leading = [parts[index] for index in order]
        return separator.join(leading + parts[len(order) :])

    return _reorder


def compose(*steps: Transform) -> Transform:
    """Chain transforms left to right."""

    def _composed(raw: str) -> str:
        value = raw
        for step in steps:
            value = step(value)
        return value

    return _composed


# Pipelines for the bundled jurisdictions. Anything absent is identity.
DEFAULT_PIPELINES: dict[str, Transform] = {
    "duval": remove_separator("-"),
    "pasco": compose(
        reorder_segments("-", (2, 1, 0), min_segments=3),
        strip_non_numeric(),
    ),
}


class IdentifierTransformer:
    """Maps a jurisdiction id to its identifier pipeline.

    Example:
        transformer = IdentifierTransformer()
        transformer.transform("duval", "035697-0000")  # "0356970000"
    """

    def __init__(self, pipelines: Mapping[str, Transform] | None = None):
        self._pipelines: dict[str, Transform] = dict(
            DEFAULT_PIPELINES if pipelines is None else pipelines
        )

    def register(self, jurisdiction_id: str, transform: Transform) -> None:
        self._pipelines[jurisdiction_id] = transform

    def transform(self, jurisdiction_id: str, raw_identifier: str) -> str:
        """Rewrite ``raw_identifier`` for ``jurisdiction_id``.

        Raises:
            ScraperError: VALIDATION_ERROR for malformed input.
        """
        raw = raw_identifier.strip()
        if not raw:
            raise validation_error(
                "Identifier is empty",
                jurisdiction_id=jurisdiction_id,
                identifier_value=raw_identifier,
                detail={"raw_identifier": raw_identifier},
            )

        pipeline = self._pipelines.get(jurisdiction_id, identity)
        try:
            transformed = pipeline(raw)
        except ScraperError as e:
            e.with_context(jurisdiction_id, raw_identifier)
            raise

        if not transformed:
            raise validation_error(
                f"Identifier '{raw_identifier}' is empty after transformation",
                jurisdiction_id=jurisdiction_id,
                identifier_value=raw_identifier,
                detail={"raw_identifier": raw_identifier},
            )

        if transformed != raw:
            logger.debug(
                f"[{jurisdiction_id}] Transformed identifier "
                f'"{raw_identifier}" to "{transformed}"'
            )
        return transformed
