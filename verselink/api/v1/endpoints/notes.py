"""Note endpoints."""

from typing import Annotated, Optional
from uuid import UUID

from fastapi import APIRouter, Body, Depends, Request

from verselink.api.v1.endpoints.scripture import get_reference_service
from verselink.core.auth import get_current_user
from verselink.schemas.auth import CurrentUser
from verselink.schemas.scripture import ProcessReferencesRequest
from verselink.services.scripture.reference_service import ScriptureReferenceService
from verselink.utils.logging import get_logger
from verselink.utils.responses import create_api_response

LOGGER = get_logger(__name__)

router = APIRouter()


@router.post(
    "/{note_id}/process-scripture-references",
    response_model=dict,
    summary="Link the scripture references of a note",
    operation_id="process_scripture_references",
)
async def process_scripture_references(
    request: Request,
    note_id: UUID,
    current_user: Annotated[CurrentUser, Depends(get_current_user)],
    reference_service: Annotated[ScriptureReferenceService, Depends(get_reference_service)],
    payload: Annotated[Optional[ProcessReferencesRequest], Body()] = None,
) -> dict:
    """Resolve every citation in a saved note and mark it up.

    Each distinct citation is linked to the user's reference document for
    it (created on first use) and added to the target collection. The
    rewritten body is saved and returned.

    Raises:
        HTTPException 404: Note or collection not found
    """
    collection_id = payload.collection_id if payload else None
    result = await reference_service.process_note(current_user.id, note_id, collection_id)

    return create_api_response(
        data=result,
        message=f"Processed {len(result.results)} scripture references",
        request=request,
    )
