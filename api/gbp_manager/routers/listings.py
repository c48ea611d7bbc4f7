from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from gbp_manager.clients.google_business import DirectoryClient
from gbp_manager.database import get_db
from gbp_manager.dependencies import get_current_user, get_directory_client
from gbp_manager.models import User
from gbp_manager.schemas import ListingItem, ListingToggleRequest, ListingToggleResponse, ProfileSyncResult
from gbp_manager.services.listings import list_listings, toggle_listing
from gbp_manager.services.profile_sync import sync_business_profiles

router = APIRouter(prefix="/gbp-listings", tags=["listings"])


@router.get("", response_model=List[ListingItem])
async def get_listings(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await list_listings(db, user.id)


@router.post("/toggle", response_model=ListingToggleResponse)
async def toggle(
    req: ListingToggleRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await toggle_listing(db, user.id, req.listing_id, req.toggle_type)


@router.post("/sync", response_model=ProfileSyncResult)
async def sync_listings(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    client: DirectoryClient = Depends(get_directory_client),
):
    return await sync_business_profiles(db, client, user.id)
