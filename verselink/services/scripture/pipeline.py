"""Note-save pipeline: extract, resolve and rewrite scripture citations."""

from typing import Tuple

from verselink.models.scripture import CollectionTarget
from verselink.schemas.scripture import ResolutionOutcome
from verselink.services.scripture.detector import extract_citations, strip_markup
from verselink.services.scripture.resolver import ReferenceResolver
from verselink.services.scripture.rewriter import rewrite_body
from verselink.utils.logging import get_logger

LOGGER = get_logger(__name__)


async def link_scripture_references(
    resolver: ReferenceResolver,
    owner_id: str,
    body: str,
    target: CollectionTarget,
) -> Tuple[ResolutionOutcome, str]:
    """Run one note body through the whole pipeline.

    Args:
        resolver: Resolver bound to the owner's store
        owner_id: Owner of the note
        body: Note markup
        target: Collection the note currently targets

    Returns:
        Tuple of (resolution outcome, rewritten body). A body without
        citations comes back unchanged with an empty outcome.
    """
    citations = extract_citations(strip_markup(body))
    if not citations:
        LOGGER.debug("No scripture citations in note", extra={"owner_id": owner_id})
        return ResolutionOutcome(), body

    outcome = await resolver.resolve(owner_id, citations, target)
    return outcome, rewrite_body(body, outcome.citation_to_document)
