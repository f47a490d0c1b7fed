"""Scripture citation extraction from note text."""

import html
import re
from typing import List, Optional

from verselink.models.scripture import ScriptureCitation, ScriptureDetection
from verselink.services.scripture.books import book_name_pattern, starts_numbered_book
from verselink.services.scripture.normalizer import VERSE_LIST, parse_reference
from verselink.utils.logging import get_logger

LOGGER = get_logger(__name__)

DETECTION_CONFIDENCE = 0.9

# NET Bible copyright attribution required wherever fetched verse text is shown
NET_BIBLE_COPYRIGHT = (
    "Scripture quotations are from the NET Bible® copyright ©1996, 2019 by "
    "Biblical Studies Press, L.L.C. http://netbible.com All rights reserved."
)

_CITATION = re.compile(
    rf"(?<![\w])(?P<book>{book_name_pattern()})(?:\.\s*|\s+)"
    rf"(?P<chapter>\d+)\s*:\s*(?P<verses>{VERSE_LIST})(?!\d)",
    re.IGNORECASE,
)
_TRAILING_VERSE = re.compile(r",\s*(\d+)$")
_NEXT_WORD = re.compile(r"^\s*([A-Za-z]+)")
_TAG = re.compile(r"<[^>]*>")


def strip_markup(body: str) -> str:
    """Reduce note markup to plain text with collapsed whitespace."""
    if not body:
        return ""
    text = html.unescape(_TAG.sub(" ", body))
    return re.sub(r"\s+", " ", text).strip()


def _trim_next_book_ordinal(text: str, raw: str, end: int) -> str:
    """Drop a trailing ", N" that actually starts the next book ("..., 1 Peter 4:9")."""
    trailing = _TRAILING_VERSE.search(raw)
    if not trailing:
        return raw
    next_word = _NEXT_WORD.match(text[end:])
    if next_word and starts_numbered_book(trailing.group(1), next_word.group(1)):
        return raw[:trailing.start()]
    return raw


def extract_citations(text: str) -> List[ScriptureCitation]:
    """Find every scripture citation in plain text.

    Matches are scanned left to right and never overlap: scanning resumes
    after the end of each accepted citation.

    Args:
        text: Plain text (markup already stripped)

    Returns:
        Citations in order of appearance; empty when there are none
    """
    citations: List[ScriptureCitation] = []
    if not text:
        return citations

    position = 0
    while True:
        match = _CITATION.search(text, position)
        if match is None:
            break

        raw = _trim_next_book_ordinal(text, match.group(0), match.end())
        end = match.start() + len(raw)
        reference = parse_reference(raw)

        if reference is not None:
            citations.append(
                ScriptureCitation(raw_text=raw, start=match.start(), end=end, reference=reference)
            )
        position = max(end, match.start() + 1)

    LOGGER.debug(
        "Extracted scripture citations",
        extra={"count": len(citations), "text_length": len(text)},
    )
    return citations


def detect_scripture(text: str) -> ScriptureDetection:
    """Detect scripture references in arbitrary (possibly marked-up) text."""
    if not text or not text.strip():
        return ScriptureDetection(is_scripture=False, type=None)

    plain_text = strip_markup(text)
    citations = extract_citations(plain_text)
    if not citations:
        return ScriptureDetection(is_scripture=False, type=None)

    unique: List[ScriptureCitation] = []
    seen = set()
    for citation in citations:
        if citation.raw_text not in seen:
            seen.add(citation.raw_text)
            unique.append(citation)

    return ScriptureDetection(
        is_scripture=True,
        type="reference",
        references=unique,
        confidence=DETECTION_CONFIDENCE,
        detected_text=plain_text,
    )


def primary_reference(detection: ScriptureDetection) -> Optional[str]:
    """Return the first detected reference as written, if any."""
    if detection.references:
        return detection.references[0].raw_text
    return None
