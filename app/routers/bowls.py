# =============================================================================
# app/routers/bowls.py - Bowl CRUD Endpoints
# =============================================================================
# Handles recording, browsing, editing and deleting bowls.
#
# Browsing (list/get) is public. Creating requires authentication; editing
# and deleting require being the bowl's creator.
# =============================================================================

import logging
from datetime import date
from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, File, Form, HTTPException, Path, Query, UploadFile, status
from fastapi.exceptions import RequestValidationError
from pydantic import ValidationError

from app.auth import AuthUser, get_current_user, get_current_user_optional
from app.config import Settings
from app.dependencies import BowlServiceDep, ServiceContainer, get_services
from core.models.bowl import (
    BowlCreate,
    BowlDetail,
    BowlList,
    BowlSubmissionResponse,
    BowlUpdate,
)
from core.models.pipeline import CandidateFile

logger = logging.getLogger(__name__)

router = APIRouter()


# =============================================================================
# Helper Functions
# =============================================================================

async def read_upload_files(
    files: list[UploadFile] | None,
    settings: Settings,
) -> list[CandidateFile]:
    """
    Turn multipart uploads into pipeline candidates, keeping their order.

    Files whose declared size is already over the limit are not read; the
    validator rejects them on the declared size alone.
    """
    candidates = []
    for index, upload in enumerate(files or []):
        filename = upload.filename or f"image-{index + 1}"
        content_type = upload.content_type or ""

        if upload.size is not None and upload.size > settings.max_image_size_bytes:
            candidates.append(CandidateFile(filename=filename, content_type=content_type, size=upload.size))
            continue

        data = await upload.read()
        candidates.append(CandidateFile.from_bytes(filename, content_type, data))

    return candidates


# =============================================================================
# Endpoints
# =============================================================================

@router.post("", response_model=BowlSubmissionResponse, status_code=status.HTTP_201_CREATED)
async def create_bowl(
    services: Annotated[ServiceContainer, Depends(get_services)],
    wood_type: Annotated[str, Form(description="Wood species, e.g. Maple")],
    wood_source: Annotated[str, Form(description="Where the wood came from")],
    date_made: Annotated[date, Form(description="Date the bowl was finished")],
    comments: Annotated[str | None, Form()] = None,
    finishes: Annotated[list[str] | None, Form(description="Finish names, one field per finish")] = None,
    files: Annotated[list[UploadFile] | None, File(description="Photos, in display order")] = None,
    user: AuthUser = Depends(get_current_user),
):
    """
    Record a new bowl with its finishes and photos.

    This endpoint:
    1. Saves the bowl
    2. Saves its finishes (trimmed, de-duplicated)
    3. Runs every photo through Validator -> Resizer -> Uploader -> Linker

    The bowl is saved even if some photos fail; each photo's outcome is in
    the response together with a summary notification.
    """
    try:
        data = BowlCreate(
            wood_type=wood_type,
            wood_source=wood_source,
            date_made=date_made,
            comments=comments,
            finishes=finishes or [],
        )
    except ValidationError as e:
        raise RequestValidationError(e.errors(include_url=False, include_context=False)) from e

    candidates = await read_upload_files(files, services.settings)
    logger.info(f"Creating bowl for user {user.id} with {len(candidates)} photo(s)")

    return await services.bowls.create_bowl(user.id, data, candidates)


@router.get("", response_model=BowlList)
async def list_bowls(
    bowls: BowlServiceDep,
    search: Annotated[str | None, Query(max_length=200, description="Text to find in wood type, source or comments")] = None,
    page: Annotated[int, Query(ge=1, description="Page number")] = 1,
    page_size: Annotated[int, Query(ge=1, le=100, description="Bowls per page")] = 20,
    mine: Annotated[bool, Query(description="Only bowls I created")] = False,
    user: AuthUser | None = Depends(get_current_user_optional),
):
    """
    Browse the gallery, newest bowls first.

    Each entry carries its primary image (display order 0).
    """
    if mine and user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Sign in to list your own bowls",
            headers={"WWW-Authenticate": "Bearer"},
        )

    return bowls.list_bowls(
        search=search,
        page=page,
        page_size=page_size,
        owner_id=user.id if mine else None,
    )


@router.get("/{bowl_id}", response_model=BowlDetail)
async def get_bowl(
    bowl_id: Annotated[UUID, Path(description="Bowl UUID")],
    bowls: BowlServiceDep,
):
    """
    Get a bowl with its finishes, images (in display order) and creator.
    """
    return bowls.get_bowl(bowl_id)


@router.patch("/{bowl_id}", response_model=BowlDetail)
async def update_bowl(
    bowl_id: Annotated[UUID, Path(description="Bowl UUID")],
    request: BowlUpdate,
    bowls: BowlServiceDep,
    user: AuthUser = Depends(get_current_user),
):
    """
    Edit a bowl.

    Only fields present in the body change. Sending `finishes` replaces the
    whole list. User must own the bowl.
    """
    return bowls.update_bowl(bowl_id, user.id, request)


@router.delete("/{bowl_id}")
async def delete_bowl(
    bowl_id: Annotated[UUID, Path(description="Bowl UUID")],
    bowls: BowlServiceDep,
    user: AuthUser = Depends(get_current_user),
):
    """
    Delete a bowl, its finishes, its image rows and every stored image.

    User must own the bowl.
    """
    return bowls.delete_bowl(bowl_id, user.id)
