"""Parsing raw citations into structured references and canonical keys.

Two raw citations that denote the same passage always produce the same key,
whatever their spacing, dash style or book abbreviation:

    >>> normalize_reference("jn 3: 16 - 18")
    'John 3:16-18'
    >>> normalize_reference("Ps. 23:1, 4-6")
    'Psalms 23:1,4-6'
"""

import re
from typing import Optional

from verselink.models.scripture import ParsedReference
from verselink.services.scripture.books import canonical_book
from verselink.services.scripture.verse_groups import DASHES, split_verse_groups

VERSE_RANGE = rf"\d+(?:\s*[{DASHES}]\s*\d+)?"
VERSE_LIST = rf"{VERSE_RANGE}(?:\s*,\s*{VERSE_RANGE})*"

_REFERENCE = re.compile(
    rf"^\s*(?P<book>.*?[^\d\s.])\.?\s*(?P<chapter>\d+)"
    rf"(?:\s*:\s*(?P<verses>{VERSE_RANGE}(?:\s*[,|]\s*{VERSE_RANGE})*))?\s*$"
)


def parse_reference(raw: str) -> Optional[ParsedReference]:
    """Parse a citation string into its structured form.

    A chapter-only reference ("John 3") is read as verse 1 of that chapter.

    Args:
        raw: Citation text such as "1 Cor 13:4-7" or "Matthew 26:6-13, 17-30"

    Returns:
        ParsedReference, or None when the book is unknown or the shape is wrong
    """
    if not raw:
        return None

    match = _REFERENCE.match(raw)
    if not match:
        return None

    book = canonical_book(match.group("book"))
    if book is None:
        return None

    verses = match.group("verses") or "1"
    groups = split_verse_groups(verses)
    if not groups:
        return None

    return ParsedReference(book=book, chapter=int(match.group("chapter")), groups=tuple(groups))


def normalize_reference(raw: str) -> str:
    """Map a raw citation to its canonical key.

    Strings that do not parse (e.g. legacy keys stored under an unknown book
    spelling) are still normalized textually so they can be compared.

    Args:
        raw: Citation text

    Returns:
        Canonical key such as "John 3:16-18"
    """
    parsed = parse_reference(raw)
    if parsed is not None:
        return parsed.key

    normalized = re.sub(r":\s+", ":", raw or "")
    normalized = re.sub(r"\s*,\s*", ",", normalized)
    normalized = re.sub(rf"(\d+)\s*[{DASHES}]\s*(\d+)", r"\1-\2", normalized)
    return re.sub(r"\s+", " ", normalized).strip()
