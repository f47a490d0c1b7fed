"""Wrapping resolved citations in a note body with note-link markers.

This is a targeted scanner, not a markup parser. It only recognizes the
two wrappers the editor produces: note-link spans and ``<a>`` links.
Whenever an occurrence's surroundings are ambiguous it is left unwrapped.
"""

import html
import re
from typing import List, Mapping
from uuid import UUID

from verselink.services.scripture.books import starts_numbered_book
from verselink.utils.logging import get_logger

LOGGER = get_logger(__name__)

NOTE_LINK_CLASS = "note-link"

_NOTE_LINK_OPEN = re.compile(
    rf'<span\b[^>]*\bclass\s*=\s*"[^"]*\b{NOTE_LINK_CLASS}\b[^"]*"[^>]*>', re.IGNORECASE
)
_SPAN_OPEN = re.compile(r"<span\b", re.IGNORECASE)
_SPAN_CLOSE = re.compile(r"</span\s*>", re.IGNORECASE)
_ANCHOR_OPEN = re.compile(r"<a\b", re.IGNORECASE)
_ANCHOR_CLOSE = re.compile(r"</a\s*>", re.IGNORECASE)
_WHITESPACE = r"(?:\s|&nbsp;|&#160;)+"
_GAP = r"(?:\s|&nbsp;|&#160;)*"
_DASH_CHARS = "-\u2013\u2014"
_DASH = r"(?:[-\u2013\u2014]|&ndash;|&mdash;|&#821[12];|&#x201[34];)"
_CONTINUATION = re.compile(
    rf"{_GAP}(?:(?P<dash>{_DASH})|,){_GAP}(?P<number>\d+)(?:{_GAP}(?P<word>[A-Za-z]+))?",
    re.IGNORECASE,
)


def note_link(raw_text: str, document_id: UUID, matched: str) -> str:
    """Marker span pointing a citation at its reference document."""
    return (
        f'<span class="{NOTE_LINK_CLASS}" data-note-id="{document_id}" '
        f'data-reference="{html.escape(raw_text, quote=True)}">{matched}</span>'
    )


def _token_pattern(token: str) -> str:
    return "".join(_DASH if char in _DASH_CHARS else re.escape(char) for char in token)


def _citation_pattern(raw_text: str) -> "re.Pattern[str]":
    tokens = [_token_pattern(token) for token in raw_text.split()]
    return re.compile(rf"(?<![\w]){_WHITESPACE.join(tokens)}(?!\d)", re.IGNORECASE)


def _continues_citation(body: str, end: int) -> bool:
    """Whether more verses of the same citation follow ``end`` ("-18", ", 18").

    A ", N" that starts a numbered book ("..., 1 Peter 4:9") is not a
    continuation.
    """
    tail = _CONTINUATION.match(body, end)
    if tail is None:
        return False
    if tail.group("dash"):
        return True
    word = tail.group("word")
    return not (word and starts_numbered_book(tail.group("number"), word))


def _inside_tag(body: str, position: int) -> bool:
    return body.rfind("<", 0, position) > body.rfind(">", 0, position)


def _inside_note_link(body: str, position: int) -> bool:
    """Whether a note-link span opened before ``position`` is still open there."""
    last_open = None
    for last_open in _NOTE_LINK_OPEN.finditer(body, 0, position):
        pass
    if last_open is None:
        return False

    between = body[last_open.end():position]
    depth = 1 + len(_SPAN_OPEN.findall(between)) - len(_SPAN_CLOSE.findall(between))
    return depth > 0


def _inside_anchor(body: str, position: int) -> bool:
    before = body[:position]
    return len(_ANCHOR_OPEN.findall(before)) > len(_ANCHOR_CLOSE.findall(before))


def _should_skip(body: str, position: int) -> bool:
    return (
        _inside_tag(body, position)
        or _inside_note_link(body, position)
        or _inside_anchor(body, position)
    )


def rewrite_body(body: str, citation_to_document: Mapping[str, UUID]) -> str:
    """Wrap every unmarked occurrence of each resolved citation.

    Longer citations are handled first so that "John 3:16-18" is wrapped
    whole before "John 3:16" is looked for; the shorter one then sits
    inside a marker and is skipped. An occurrence followed by more verses
    ("John 3:16-18" when only "John 3:16" resolved) is left alone. Dashes
    match their HTML entities too. Rewriting the output again changes
    nothing.

    Args:
        body: Note markup
        citation_to_document: Raw citation text -> reference document id

    Returns:
        Rewritten markup (the input itself when nothing was wrapped)
    """
    if not body or not citation_to_document:
        return body

    wrapped = 0
    for raw_text in sorted(citation_to_document, key=len, reverse=True):
        if not raw_text.strip():
            continue
        document_id = citation_to_document[raw_text]

        parts: List[str] = []
        cursor = 0
        for match in _citation_pattern(raw_text).finditer(body):
            if _should_skip(body, match.start()) or _continues_citation(body, match.end()):
                continue
            parts.append(body[cursor:match.start()])
            parts.append(note_link(raw_text, document_id, match.group(0)))
            cursor = match.end()
            wrapped += 1

        if parts:
            parts.append(body[cursor:])
            body = "".join(parts)

    LOGGER.debug("Rewrote note body", extra={"wrapped": wrapped})
    return body
