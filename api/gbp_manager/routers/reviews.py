from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from gbp_manager.clients.google_business import DirectoryClient
from gbp_manager.database import get_db
from gbp_manager.dependencies import get_current_user, get_directory_client, get_optional_directory_client
from gbp_manager.models import User
from gbp_manager.schemas import (
    ReviewListResponse,
    ReviewOut,
    ReviewReplyRequest,
    ReviewReplyResponse,
    ReviewStatus,
    ReviewStatusRequest,
    ReviewSyncRequest,
    ReviewSyncResult,
    Sentiment,
)
from gbp_manager.services.review_sync import sync_reviews_to_database
from gbp_manager.services.reviews import (
    delete_review_response,
    list_reviews,
    respond_to_review,
    update_review_status,
)
from gbp_manager.services.tenancy import get_owned_profile, resolve_organization_id

router = APIRouter(prefix="/reviews", tags=["reviews"])


@router.get("", response_model=ReviewListResponse)
async def get_reviews(
    business_profile_id: UUID = Query(..., alias="businessProfileId"),
    review_status: Optional[ReviewStatus] = Query(None, alias="status"),
    sentiment: Optional[Sentiment] = None,
    rating: Optional[int] = Query(None, ge=1, le=5),
    limit: int = Query(10, ge=1, le=100),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await list_reviews(db, user.id, business_profile_id, review_status, sentiment, rating, limit)


@router.post("/sync", response_model=ReviewSyncResult)
async def sync_reviews(
    req: ReviewSyncRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    client: DirectoryClient = Depends(get_directory_client),
):
    organization_id = await resolve_organization_id(db, user.id)
    profile = await get_owned_profile(db, organization_id, req.business_profile_id)
    return await sync_reviews_to_database(
        db, client, profile.id, profile.google_location_name, user_id=user.id
    )


@router.post("/{review_id}/response", response_model=ReviewReplyResponse, status_code=status.HTTP_201_CREATED)
async def create_response(
    review_id: UUID,
    req: ReviewReplyRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    client: Optional[DirectoryClient] = Depends(get_optional_directory_client),
):
    return await respond_to_review(db, client, user.id, review_id, req.content)


@router.delete("/{review_id}/response", response_model=ReviewOut)
async def remove_response(
    review_id: UUID,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    client: Optional[DirectoryClient] = Depends(get_optional_directory_client),
):
    return await delete_review_response(db, client, user.id, review_id)


@router.put("/{review_id}/status", response_model=ReviewOut)
async def set_status(
    review_id: UUID,
    req: ReviewStatusRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await update_review_status(db, user.id, review_id, req.status)
