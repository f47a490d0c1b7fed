"""Scripture reference schemas for detection, resolution and API payloads."""

from enum import Enum
from typing import Dict, List, Optional
from uuid import UUID

from pydantic import BaseModel, Field


class ReferenceAction(str, Enum):
    """What a resolution pass did for one distinct citation."""

    CREATED = "created"
    ADDED = "added"
    SKIPPED = "skipped"
    UNASSIGNED = "unassigned"
    ERROR = "error"


class ResolutionResult(BaseModel):
    """Outcome for one distinct normalized citation of a note."""

    action: ReferenceAction = Field(..., description="Resolution outcome")
    document_id: Optional[UUID] = Field(None, description="Resolved reference document")
    raw_citation: str = Field(..., description="Citation as first written in the note")
    normalized_key: str = Field(..., description="Canonical key of the citation")
    error: Optional[str] = Field(None, description="Failure message when action is error")


class ResolutionOutcome(BaseModel):
    """Result of resolving every citation in one note."""

    results: List[ResolutionResult] = Field(default_factory=list)
    citation_to_document: Dict[str, UUID] = Field(
        default_factory=dict,
        description="Every raw citation string mapped to its reference document",
    )


class ParsedReferenceResponse(BaseModel):
    """Structured form of a citation."""

    book: str
    chapter: int
    verse: int = Field(..., description="First verse")
    verse_end: Optional[int] = Field(None, description="Last verse when more than one")
    reference: str = Field(..., description="Canonical key")
    display: str = Field(..., description="Display form with | between verse groups")


class DetectRequest(BaseModel):
    text: str = Field(..., min_length=1, description="Note text or markup to scan")


class DetectResponse(BaseModel):
    is_scripture: bool
    type: Optional[str] = None
    references: List[str] = Field(default_factory=list)
    confidence: float = 0.0
    detected_text: Optional[str] = None
    primary_reference: Optional[str] = None
    parsed_reference: Optional[ParsedReferenceResponse] = None


class FetchVerseRequest(BaseModel):
    reference: str = Field(..., min_length=1, description="Scripture reference, e.g. John 3:16-18")


class FetchVerseResponse(BaseModel):
    reference: str
    book: str
    chapter: int
    verse: int
    verse_end: Optional[int] = None
    translation: str
    text: str
    copyright: str


class CheckExistingRequest(BaseModel):
    reference: str = Field(..., min_length=1)
    collection_id: Optional[UUID] = Field(None, description="Collection to test membership against")


class CheckExistingResponse(BaseModel):
    exists: bool
    document_id: Optional[UUID] = None
    reference: Optional[str] = None
    in_collection: bool = False
    in_unassigned: bool = False


class ProcessReferencesRequest(BaseModel):
    collection_id: Optional[UUID] = Field(
        None, description="Target collection; defaults to the note's first collection, else unassigned"
    )


class ProcessReferencesResponse(BaseModel):
    results: List[ResolutionResult] = Field(default_factory=list)
    updated_body: str
