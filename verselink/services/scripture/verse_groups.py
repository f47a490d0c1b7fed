"""Splitting a citation's verse list into ordered verse groups."""

import re
from typing import List

from verselink.models.scripture import VerseGroup

DASHES = "-–—"
RANGE_SPLIT = re.compile(rf"\s*[{DASHES}]\s*")
DISPLAY_SEPARATOR = " | "


def split_verse_groups(reference: str) -> List[VerseGroup]:
    """Split the verse part of a reference into ranges, in citation order.

    Accepts a full reference ("Matthew 26:6-13,17-30"), its display form
    ("Matthew 26:6-13 | 17-30") or a bare verse list ("16, 18-20").

    Args:
        reference: Reference or verse list

    Returns:
        One VerseGroup per comma-separated group; unparsable groups are dropped
    """
    verse_part = reference.rsplit(":", 1)[-1].strip()
    if not verse_part:
        return []

    groups: List[VerseGroup] = []
    for chunk in re.split(r"\s*[,|]\s*", verse_part):
        bounds = [b for b in RANGE_SPLIT.split(chunk.strip()) if b]
        if not bounds or not all(b.isdigit() for b in bounds):
            continue
        if len(bounds) == 1:
            verse = int(bounds[0])
            groups.append(VerseGroup(start=verse, end=verse))
        elif len(bounds) == 2:
            groups.append(VerseGroup(start=int(bounds[0]), end=int(bounds[1])))
    return groups


def format_reference_for_display(reference: str) -> str:
    """Show verse groups with a divider: "Matthew 26:6-13,17-30" -> "Matthew 26:6-13 | 17-30"."""
    match = re.match(r"^(.+?\s+\d+:)(.+)$", reference)
    if not match:
        return reference
    prefix, verses = match.groups()
    return prefix + re.sub(r"\s*,\s*(?=\d)", DISPLAY_SEPARATOR, verses)


def format_reference_for_api(reference: str) -> str:
    """Reverse of format_reference_for_display."""
    return re.sub(r"\s+\|\s+", ",", reference)
