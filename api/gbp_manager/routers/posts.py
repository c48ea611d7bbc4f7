from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from fastapi import status as http_status
from sqlalchemy.ext.asyncio import AsyncSession

from gbp_manager.database import get_db
from gbp_manager.dependencies import get_current_user
from gbp_manager.models import User
from gbp_manager.schemas import PostCreate, PostOut, PostStatus, PostUpdate
from gbp_manager.services.posts import create_post, delete_post, get_owned_post, list_posts, update_post

router = APIRouter(prefix="/posts", tags=["posts"])


@router.get("")
async def get_posts(
    business_profile_id: UUID = Query(..., alias="businessProfileId"),
    status: Optional[PostStatus] = None,
    limit: int = Query(10, ge=1, le=100),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    posts = await list_posts(db, user.id, business_profile_id, status, limit)
    return {
        "success": True,
        "posts": [PostOut.model_validate(post) for post in posts],
        "count": len(posts),
    }


@router.post("", response_model=PostOut, status_code=http_status.HTTP_201_CREATED)
async def create(
    req: PostCreate,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await create_post(db, user.id, req)


@router.get("/{post_id}", response_model=PostOut)
async def get_post(
    post_id: UUID,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await get_owned_post(db, user.id, post_id)


@router.put("/{post_id}", response_model=PostOut)
async def update(
    post_id: UUID,
    req: PostUpdate,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await update_post(db, user.id, post_id, req)


@router.delete("/{post_id}")
async def delete(
    post_id: UUID,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    await delete_post(db, user.id, post_id)
    return {"success": True, "message": "Post deleted successfully"}
