"""In-process data models for scripture citations."""

from dataclasses import dataclass, field
from typing import List, Optional, Tuple
from uuid import UUID


@dataclass(frozen=True)
class VerseGroup:
    """One contiguous verse range of a citation (start == end for a single verse)."""

    start: int
    end: int

    @property
    def is_single(self) -> bool:
        return self.start == self.end

    def render(self) -> str:
        """Render as it appears in a normalized key ("16" or "18-20")."""
        return str(self.start) if self.is_single else f"{self.start}-{self.end}"


@dataclass(frozen=True)
class ParsedReference:
    """Structured form of a scripture citation.

    Attributes:
        book: Canonical book name (e.g. "1 Corinthians")
        chapter: Chapter number
        groups: Verse groups in citation order (never sorted)
    """

    book: str
    chapter: int
    groups: Tuple[VerseGroup, ...]

    @property
    def key(self) -> str:
        """Canonical key used for per-owner deduplication."""
        verses = ",".join(group.render() for group in self.groups)
        return f"{self.book} {self.chapter}:{verses}"

    @property
    def verse_start(self) -> int:
        return min(group.start for group in self.groups)

    @property
    def verse_end(self) -> Optional[int]:
        """Last verse covered, or None for a single-verse citation."""
        end = max(group.end for group in self.groups)
        return None if end == self.verse_start else end

    @property
    def is_multi_group(self) -> bool:
        return len(self.groups) > 1

    def group_reference(self, group: VerseGroup) -> str:
        """Reference string for one verse group of this citation."""
        return f"{self.book} {self.chapter}:{group.start}-{group.end}"


@dataclass(frozen=True)
class ScriptureCitation:
    """A citation found in plain text.

    Attributes:
        raw_text: Substring exactly as written (e.g. "jn 3:16, 18 - 20")
        start: Offset of the first character in the scanned text
        end: Offset one past the last character
        reference: Structured, canonical form
    """

    raw_text: str
    start: int
    end: int
    reference: ParsedReference

    @property
    def key(self) -> str:
        return self.reference.key


@dataclass
class ScriptureDetection:
    """Summary of a detection pass over arbitrary text."""

    is_scripture: bool
    type: Optional[str]
    references: List[ScriptureCitation] = field(default_factory=list)
    confidence: float = 0.0
    detected_text: Optional[str] = None


@dataclass(frozen=True)
class Verse:
    """One verse returned by the content provider."""

    number: int
    text: str


@dataclass(frozen=True)
class StoredReference:
    """A persisted reference record as seen by the resolver."""

    owner_id: str
    normalized_key: str
    document_id: UUID


@dataclass(frozen=True)
class CollectionTarget:
    """Collection a resolution pass links reference documents into.

    Attributes:
        collection_id: Target collection (the owner's unassigned sentinel or a real one)
        is_unassigned: True when the target is the sentinel; no membership rows
            are ever written for it
    """

    collection_id: UUID
    is_unassigned: bool = False
