# =============================================================================
# app/routers/images.py - Bowl Image Endpoints
# =============================================================================
# Handles the photos of an existing bowl: list, add, delete and reorder.
# Changes require being the bowl's creator.
# =============================================================================

import logging
from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, File, Path, UploadFile

from app.auth import AuthUser, get_current_user
from app.dependencies import ServiceContainer, get_services
from app.routers.bowls import read_upload_files
from core.models.bowl import ImageUploadResponse
from core.models.image import BowlImageResponse, ImageReorderRequest

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/{bowl_id}/images", response_model=list[BowlImageResponse])
async def list_images(
    bowl_id: Annotated[UUID, Path(description="Bowl UUID")],
    services: Annotated[ServiceContainer, Depends(get_services)],
):
    """
    List a bowl's images in display order with their best available URLs.
    """
    records = services.images.list_images(bowl_id)
    return [BowlImageResponse.from_record(r) for r in records]


@router.post("/{bowl_id}/images", response_model=ImageUploadResponse)
async def add_images(
    bowl_id: Annotated[UUID, Path(description="Bowl UUID")],
    files: Annotated[list[UploadFile], File(description="Photos, in display order")],
    services: Annotated[ServiceContainer, Depends(get_services)],
    user: AuthUser = Depends(get_current_user),
):
    """
    Add photos to a bowl, after its current images.

    Each photo succeeds or fails on its own; see the per-photo outcomes.
    """
    candidates = await read_upload_files(files, services.settings)
    logger.info(f"Adding {len(candidates)} photo(s) to bowl {bowl_id}")
    return await services.images.add_images(bowl_id, user.id, candidates)


@router.delete("/{bowl_id}/images/{image_id}")
async def delete_image(
    bowl_id: Annotated[UUID, Path(description="Bowl UUID")],
    image_id: Annotated[UUID, Path(description="Image UUID")],
    services: Annotated[ServiceContainer, Depends(get_services)],
    user: AuthUser = Depends(get_current_user),
):
    """
    Delete one image and its stored files. The remaining images keep their
    relative order.
    """
    remaining = services.images.delete_image(bowl_id, image_id, user.id)
    return {
        "deleted": True,
        "image_id": str(image_id),
        "images": [BowlImageResponse.from_record(r) for r in remaining],
    }


@router.put("/{bowl_id}/images/order", response_model=list[BowlImageResponse])
async def reorder_images(
    bowl_id: Annotated[UUID, Path(description="Bowl UUID")],
    request: ImageReorderRequest,
    services: Annotated[ServiceContainer, Depends(get_services)],
    user: AuthUser = Depends(get_current_user),
):
    """
    Set the display order of a bowl's images.

    The body must list every image ID of the bowl exactly once; the first
    becomes the primary image.
    """
    ordered = services.images.reorder_images(bowl_id, user.id, request.image_ids)
    return [BowlImageResponse.from_record(r) for r in ordered]
