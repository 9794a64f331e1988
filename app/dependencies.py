# =============================================================================
# app/dependencies.py - Shared Dependencies
# =============================================================================
# FastAPI dependency injection for shared resources.
#
# Every long-lived object (Supabase client, storage, image pipeline,
# services, token verifier) is built once in the lifespan handler and kept
# on app.state.services. Route handlers receive them through Depends(),
# and tests swap the whole container for one built around fakes.
# =============================================================================

from dataclasses import dataclass
from typing import Annotated

from fastapi import Depends, Request

from app.auth.verifier import TokenVerifier
from app.config import Settings
from core.services.bowl_service import BowlService
from core.services.image_service import ImageService
from core.services.storage_service import StorageService
from image_pipeline import ImagePipeline, build_pipeline
from lib.supabase_client import SupabaseClient


@dataclass
class ServiceContainer:
    """Everything the API needs, wired together once per process."""

    settings: Settings
    supabase: SupabaseClient
    storage: StorageService
    pipeline: ImagePipeline
    bowls: BowlService
    images: ImageService
    verifier: TokenVerifier


def build_container(settings: Settings, supabase: SupabaseClient | None = None) -> ServiceContainer:
    """
    Wire up services from settings.

    Args:
        settings: Application settings
        supabase: Pre-built client (tests pass one around a fake); built
            from settings when omitted

    Returns:
        ServiceContainer
    """
    supabase = supabase or SupabaseClient.from_settings(settings)
    storage = StorageService(supabase, settings)
    pipeline = build_pipeline(settings, supabase, storage)
    bowls = BowlService(supabase, storage, pipeline)
    images = ImageService(supabase, storage, pipeline, bowls)

    return ServiceContainer(
        settings=settings,
        supabase=supabase,
        storage=storage,
        pipeline=pipeline,
        bowls=bowls,
        images=images,
        verifier=TokenVerifier.from_settings(settings),
    )


def get_services(request: Request) -> ServiceContainer:
    """Get the container built at startup."""
    return request.app.state.services


def get_supabase_client(services: Annotated[ServiceContainer, Depends(get_services)]) -> SupabaseClient:
    return services.supabase


def get_bowl_service(services: Annotated[ServiceContainer, Depends(get_services)]) -> BowlService:
    return services.bowls


def get_image_service(services: Annotated[ServiceContainer, Depends(get_services)]) -> ImageService:
    return services.images


def get_storage_service(services: Annotated[ServiceContainer, Depends(get_services)]) -> StorageService:
    return services.storage


# Type aliases for dependency injection
SupabaseDep = Annotated[SupabaseClient, Depends(get_supabase_client)]
BowlServiceDep = Annotated[BowlService, Depends(get_bowl_service)]
ImageServiceDep = Annotated[ImageService, Depends(get_image_service)]
StorageDep = Annotated[StorageService, Depends(get_storage_service)]
