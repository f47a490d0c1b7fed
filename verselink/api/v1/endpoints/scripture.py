"""Scripture API endpoints: detection, verse lookup and existing-reference checks."""

from typing import Annotated

from fastapi import APIRouter, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from verselink.core.auth import get_current_user
from verselink.core.database import get_async_session as get_session
from verselink.schemas.auth import CurrentUser
from verselink.schemas.scripture import CheckExistingRequest, DetectRequest, FetchVerseRequest
from verselink.services.scripture.reference_service import ScriptureReferenceService, detect
from verselink.utils.logging import get_logger
from verselink.utils.responses import create_api_response

LOGGER = get_logger(__name__)

router = APIRouter()


async def get_reference_service(
    db_session: Annotated[AsyncSession, Depends(get_session)]
) -> ScriptureReferenceService:
    """Dependency for the scripture reference service."""
    return ScriptureReferenceService(db_session)


@router.post(
    "/detect",
    response_model=dict,
    summary="Detect scripture references in text",
    operation_id="detect_scripture",
)
async def detect_references(request: Request, payload: DetectRequest) -> dict:
    """Find scripture citations in text or note markup."""
    detection = detect(payload.text)
    message = (
        f"Detected {len(detection.references)} scripture references"
        if detection.is_scripture
        else "No scripture references detected"
    )
    return create_api_response(data=detection, message=message, request=request)


@router.post(
    "/fetch-verse",
    response_model=dict,
    summary="Fetch verse text for a reference",
    operation_id="fetch_verse",
)
async def fetch_verse(
    request: Request,
    payload: FetchVerseRequest,
    current_user: Annotated[CurrentUser, Depends(get_current_user)],
    reference_service: Annotated[ScriptureReferenceService, Depends(get_reference_service)],
) -> dict:
    """Fetch verse text from the content provider.

    Raises:
        HTTPException 400: Reference does not parse
        HTTPException 502: Provider failed or returned no verses
    """
    verse = await reference_service.fetch_verse(payload.reference)
    return create_api_response(
        data=verse,
        message=f"Fetched {verse.reference}",
        request=request,
    )


@router.post(
    "/check-existing",
    response_model=dict,
    summary="Check for an existing reference document",
    operation_id="check_existing_reference",
)
async def check_existing(
    request: Request,
    payload: CheckExistingRequest,
    current_user: Annotated[CurrentUser, Depends(get_current_user)],
    reference_service: Annotated[ScriptureReferenceService, Depends(get_reference_service)],
) -> dict:
    """Check whether the user already has a reference document for a citation."""
    result = await reference_service.check_existing(
        current_user.id, payload.reference, payload.collection_id
    )
    return create_api_response(
        data=result,
        message="Reference exists" if result.exists else "Reference not found",
        request=request,
    )
