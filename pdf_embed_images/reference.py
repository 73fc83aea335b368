"""Parsing of embed references (``folder/doc.pdf#page=3``).

All functions here are pure and never raise on malformed input: a bad
page number degrades to page 1 and a bad percent-escape is kept as-is.
"""

from __future__ import annotations

import math
import re
from urllib.parse import parse_qs, unquote

from bs4.element import Tag

from pdf_embed_images.models import ParsedEmbed

PDF_EXT_RE = re.compile(r"\.pdf$", re.IGNORECASE)
"""Matches a path ending in ``.pdf`` (case-insensitive)."""

EMBED_SOURCE_ATTRS = ("src", "data-src", "data-href", "data")
"""Attributes that may carry the reference, checked in this order."""

_NUMBER_RE = re.compile(r"^[+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?$")
"""Decimal numeric literal accepted as a page number."""


def _parse_page_from_fragment(fragment: str) -> int:
    """Read the ``page`` parameter of a ``page=N&...`` fragment.

    Returns the floored value when it is a finite number >= 1, else 1.
    """
    query = fragment[1:] if fragment.startswith("#") else fragment
    if query.startswith("?"):
        query = query[1:]
    values = parse_qs(query, keep_blank_values=True).get("page")
    raw = values[0].strip() if values else "1"
    if not _NUMBER_RE.match(raw):
        return 1
    page = float(raw)
    if not math.isfinite(page) or page < 1:
        return 1
    return math.floor(page)


def parse_pdf_embed(src: str) -> ParsedEmbed:
    """Split *src* into link text and page number.

    Everything before the first ``#`` is the (percent-decoded, trimmed)
    link text; the remainder is read as a query-string fragment.

    >>> parse_pdf_embed("Papers/a%20b.pdf#page=2.7")
    ParsedEmbed(link_text='Papers/a b.pdf', page=2)
    """
    raw_path, sep, fragment = src.strip().partition("#")
    link_text = unquote(raw_path).strip()
    page = _parse_page_from_fragment(fragment) if sep and fragment else 1
    return ParsedEmbed(link_text=link_text, page=page)


def looks_like_pdf_source(src: str) -> bool:
    """Return True if *src* (fragment ignored) names a ``.pdf`` file."""
    file_part = src.split("#", 1)[0]
    return PDF_EXT_RE.search(file_part) is not None


def get_embed_source(node: Tag) -> str | None:
    """Return the first non-empty reference attribute of *node*, if any."""
    for attr in EMBED_SOURCE_ATTRS:
        value = node.get(attr)
        if isinstance(value, list):
            value = " ".join(value)
        if value:
            return value
    return None
