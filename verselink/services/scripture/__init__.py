"""Scripture citation detection, resolution and note markup services."""

from verselink.services.scripture.detector import detect_scripture, extract_citations, strip_markup
from verselink.services.scripture.fetcher import ScriptureApiClient, ScriptureFetcher
from verselink.services.scripture.locks import KeyedLock, reference_creation_lock
from verselink.services.scripture.normalizer import normalize_reference, parse_reference
from verselink.services.scripture.pipeline import link_scripture_references
from verselink.services.scripture.reference_service import ScriptureReferenceService
from verselink.services.scripture.resolver import ReferenceResolver
from verselink.services.scripture.rewriter import rewrite_body
from verselink.services.scripture.store import ReferenceStore, SqlReferenceStore
from verselink.services.scripture.verse_groups import split_verse_groups

__all__ = [
    "detect_scripture",
    "extract_citations",
    "strip_markup",
    "ScriptureApiClient",
    "ScriptureFetcher",
    "KeyedLock",
    "reference_creation_lock",
    "normalize_reference",
    "parse_reference",
    "link_scripture_references",
    "ScriptureReferenceService",
    "ReferenceResolver",
    "rewrite_body",
    "ReferenceStore",
    "SqlReferenceStore",
    "split_verse_groups",
]
