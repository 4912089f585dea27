"""Text normalization shared by strategies and the validation harness.

``html_block_to_lines`` turns a markup fragment whose logical lines are
separated by ``<br>`` or block elements into clean, ordered, non-empty
lines. ``fold`` produces a comparison key and is never used for display.
"""

from __future__ import annotations

import re
from collections.abc import Iterable

from lxml import etree, html

# Closing one of these ends a line in rendered text
_BLOCK_TAGS = frozenset(
    {"p", "div", "li", "tr", "h1", "h2", "h3", "h4", "h5", "h6"}
)
_PUNCTUATION_RE = re.compile(r"[^\w\s]")
_WHITESPACE_RE = re.compile(r"\s+")
_OWNER_SPLIT_RE = re.compile(r"\s+&\s+|\s+AND\s+", re.IGNORECASE)

LINE_SEPARATOR = "\n"


def html_block_to_lines(
    markup: str | None, drop_tags: Iterable[str] = ()
) -> list[str]:
    """Split a markup fragment into trimmed, non-empty lines.

    Lines end at ``<br>`` (any spelling) and after closing block elements.
    Source newlines are layout whitespace like any other, so a name
    wrapped in the page source stays on one line. lxml strips tags and
    decodes entities; each line has its whitespace collapsed and trimmed,
    and empty lines are dropped.

    Args:
        markup: Inner HTML of an element, or plain text.
        drop_tags: Tags removed with their content before reading the text
            (e.g. ``("a",)`` to skip an "update address" link).

    Returns:
        Ordered list of non-empty lines, in document order.

    Examples:
        >>> html_block_to_lines("JOHN DOE<br>123 MAIN ST<br/>TAMPA, FL")
        ['JOHN DOE', '123 MAIN ST', 'TAMPA, FL']
        >>> html_block_to_lines("SMITH &amp; JONES<br> <br>")
        ['SMITH & JONES']
        >>> html_block_to_lines("SMITH JOHN\\n  &amp; SMITH JANE<br>1 OAK AVE")
        ['SMITH JOHN & SMITH JANE', '1 OAK AVE']
    """
    if not markup or not markup.strip():
        return []

    try:
        fragment = html.fragment_fromstring(markup, create_parent="div")
    except (etree.ParserError, ValueError):
        # Nothing parseable; treat the input as one line of plain text
        line = clean_text(markup)
        return [line] if line else []

    tags = tuple(drop_tags)
    if tags:
        for element in list(fragment.iterdescendants(*tags)):
            element.drop_tree()

    for node in fragment.iter():
        if node.text:
            node.text = _WHITESPACE_RE.sub(" ", node.text)
        if node.tail:
            node.tail = _WHITESPACE_RE.sub(" ", node.tail)
    for element in fragment.iterdescendants(etree.Element):
        if element.tag == "br" or element.tag in _BLOCK_TAGS:
            element.tail = LINE_SEPARATOR + (element.tail or "")

    lines = fragment.text_content().split(LINE_SEPARATOR)
    return [line.strip() for line in lines if line.strip()]


def fold(text: str | None) -> str:
    """Fold text into a comparison key.

    Lowercases, removes punctuation, collapses whitespace runs to one space
    and trims. ``fold(fold(s)) == fold(s)`` for every ``s``.

    Examples:
        >>> fold("  123 MAIN ST. ")
        '123 main st'
        >>> fold("O'Brien,   Mary-Kate")
        'obrien marykate'
    """
    if not text:
        return ""
    lowered = text.lower()
    without_punctuation = _PUNCTUATION_RE.sub("", lowered)
    return _WHITESPACE_RE.sub(" ", without_punctuation).strip()


def clean_text(text: str | None) -> str:
    """Collapse internal whitespace and trim, keeping case and punctuation."""
    if not text:
        return ""
    return _WHITESPACE_RE.sub(" ", text.replace("\xa0", " ")).strip()


def merge_owner_names(blocks: Iterable[str]) -> str:
    """Join owner blocks in document order, one per line.

    Empty blocks are skipped; duplicates are kept, since two owner blocks
    with the same name are still two owners.
    """
    return LINE_SEPARATOR.join(
        block.strip() for block in blocks if block and block.strip()
    )


def merge_addresses(candidates: Iterable[str]) -> str:
    """Join address candidates, dropping duplicates in first-seen order.

    Example:
        >>> merge_addresses(["1 MAIN ST", "1 MAIN ST", "2 OAK AVE"])
        '1 MAIN ST\\n2 OAK AVE'
    """
    unique = dict.fromkeys(
        candidate.strip()
        for candidate in candidates
        if candidate and candidate.strip()
    )
    return LINE_SEPARATOR.join(unique)


def split_owner_names(text: str | None) -> list[str]:
    """Split a single owner field listing several owners.

    ``"JOHN DOE & JANE DOE"`` and ``"JOHN DOE AND JANE DOE"`` both become
    ``["JOHN DOE", "JANE DOE"]``.
    """
    cleaned = clean_text(text)
    if not cleaned:
        return []
    return [part.strip() for part in _OWNER_SPLIT_RE.split(cleaned) if part]
