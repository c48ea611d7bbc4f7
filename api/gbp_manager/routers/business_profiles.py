from typing import Optional
from uuid import UUID

import structlog
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from gbp_manager.clients.google_business import DirectoryClient
from gbp_manager.database import get_db
from gbp_manager.dependencies import get_current_user, get_directory_client, get_optional_directory_client
from gbp_manager.exceptions import GBPManagerError
from gbp_manager.models import User
from gbp_manager.schemas import (
    BusinessProfileCreate,
    BusinessProfileResult,
    BusinessProfileUpdate,
    ListingItem,
)
from gbp_manager.services.profile_sync import sync_business_profiles
from gbp_manager.services.profiles import (
    create_profile,
    delete_profile,
    get_profile,
    list_profiles,
    update_profile,
)

router = APIRouter(prefix="/business-profiles", tags=["business-profiles"])
logger = structlog.get_logger()


@router.get("")
async def get_profiles(
    sync: bool = False,
    include_inactive: bool = Query(False, alias="includeInactive"),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    client: Optional[DirectoryClient] = Depends(get_optional_directory_client),
):
    synced = False
    if sync and client is not None:
        try:
            await sync_business_profiles(db, client, user.id)
            synced = True
        except GBPManagerError as e:
            # Serve the stored profiles
            await db.rollback()
            logger.warning("business_profiles: sync failed", user_id=str(user.id), error=e.message)

    profiles = await list_profiles(db, user.id, include_inactive)
    return {
        "success": True,
        "profiles": [ListingItem.model_validate(profile) for profile in profiles],
        "synced": synced,
    }


@router.post("", response_model=BusinessProfileResult, status_code=status.HTTP_201_CREATED)
async def create(
    req: BusinessProfileCreate,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    client: DirectoryClient = Depends(get_directory_client),
):
    profile = await create_profile(db, client, user.id, req)
    return BusinessProfileResult(profile=ListingItem.model_validate(profile), pushed_to_google=True)


@router.get("/{profile_id}", response_model=ListingItem)
async def get_one(
    profile_id: UUID,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await get_profile(db, user.id, profile_id)


@router.put("/{profile_id}", response_model=BusinessProfileResult)
async def update(
    profile_id: UUID,
    req: BusinessProfileUpdate,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    client: Optional[DirectoryClient] = Depends(get_optional_directory_client),
):
    profile, pushed = await update_profile(db, client, user.id, profile_id, req)
    return BusinessProfileResult(profile=ListingItem.model_validate(profile), pushed_to_google=pushed)


@router.delete("/{profile_id}")
async def delete(
    profile_id: UUID,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    client: Optional[DirectoryClient] = Depends(get_optional_directory_client),
):
    removed = await delete_profile(db, client, user.id, profile_id)
    return {"success": True, "message": "Business profile deleted successfully", "removed_from_google": removed}
