"""
Local posts for a business profile.

Every status change goes through ``Post.transition_to`` so the lifecycle is
enforced in one place. A new post starts as DRAFT and is moved to the
requested status from there.
"""
from datetime import datetime
from typing import Optional
from uuid import UUID

import structlog
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from gbp_manager.exceptions import RecordNotFoundError, ValidationError
from gbp_manager.models import BusinessProfile, Post, PostImage
from gbp_manager.schemas import PostCreate, PostImageIn, PostStatus, PostUpdate
from gbp_manager.services.activity import log_activity
from gbp_manager.services.tenancy import get_owned_profile, resolve_organization_id

logger = structlog.get_logger()

MAX_IMAGES = 10
INITIAL_STATUSES = (PostStatus.DRAFT, PostStatus.SCHEDULED, PostStatus.PUBLISHED)


def _images(images: list[PostImageIn]) -> list[PostImage]:
    return [PostImage(url=image.url, alt=image.alt, order=image.order) for image in images]


def _check_schedule(status: str, scheduled_at: Optional[datetime]) -> None:
    if status == PostStatus.SCHEDULED.value and scheduled_at is None:
        raise ValidationError("A scheduled post needs scheduled_at")


async def get_owned_post(db: AsyncSession, user_id: UUID, post_id: UUID) -> Post:
    organization_id = await resolve_organization_id(db, user_id)
    result = await db.execute(
        select(Post)
        .options(selectinload(Post.images), selectinload(Post.metrics))
        .join(BusinessProfile, Post.business_profile_id == BusinessProfile.id)
        .where(Post.id == post_id, BusinessProfile.organization_id == organization_id)
    )
    post = result.scalar_one_or_none()
    if post is None:
        raise RecordNotFoundError("Post", post_id)
    return post


async def list_posts(
    db: AsyncSession,
    user_id: UUID,
    business_profile_id: UUID,
    status: Optional[PostStatus] = None,
    limit: int = 10,
) -> list[Post]:
    """Posts of one profile, newest schedule/publish/creation first."""
    organization_id = await resolve_organization_id(db, user_id)
    profile = await get_owned_profile(db, organization_id, business_profile_id)

    query = (
        select(Post)
        .options(selectinload(Post.images), selectinload(Post.metrics))
        .where(Post.business_profile_id == profile.id)
    )
    if status is not None:
        query = query.where(Post.status == PostStatus(status).value)
    query = query.order_by(
        Post.scheduled_at.desc().nulls_last(),
        Post.published_at.desc().nulls_last(),
        Post.created_at.desc(),
    ).limit(limit)

    result = await db.execute(query)
    return list(result.scalars().all())


async def create_post(db: AsyncSession, user_id: UUID, data: PostCreate) -> Post:
    organization_id = await resolve_organization_id(db, user_id)
    profile = await get_owned_profile(db, organization_id, data.business_profile_id)

    if data.status not in INITIAL_STATUSES:
        raise ValidationError(f"A new post cannot start as {data.status.value}")
    content = data.content.strip()
    if not content:
        raise ValidationError("Post content is required")
    _check_schedule(data.status.value, data.scheduled_at)

    post = Post(
        business_profile_id=profile.id,
        content=content,
        call_to_action=data.call_to_action.model_dump(mode="json") if data.call_to_action else None,
        scheduled_at=data.scheduled_at,
        status=PostStatus.DRAFT.value,
        created_by=user_id,
        images=_images(data.images),
        metrics=None,
    )
    if data.status != PostStatus.DRAFT:
        post.transition_to(data.status.value)
    db.add(post)
    await db.flush()

    log_activity(
        db, user_id, "CREATE", "post", post.id,
        description=f"Created {post.status.lower()} post for {profile.name}",
        metadata={
            "post_id": str(post.id),
            "business_profile_id": str(profile.id),
            "status": post.status,
            "has_media": bool(data.images),
        },
    )
    await db.commit()
    logger.info("posts: created", post_id=str(post.id), status=post.status, images=len(data.images))
    return post


async def update_post(db: AsyncSession, user_id: UUID, post_id: UUID, data: PostUpdate) -> Post:
    """Edit content, schedule or call to action, move the status, and append images."""
    post = await get_owned_post(db, user_id, post_id)
    if post.status == PostStatus.DELETED.value:
        raise ValidationError("A deleted post cannot be edited", {"post_id": str(post_id)})

    if len(post.images) + len(data.images) > MAX_IMAGES:
        raise ValidationError(f"Maximum {MAX_IMAGES} images allowed", {"images": len(post.images)})

    fields = data.model_dump(exclude_unset=True, exclude={"images", "status"})
    content = post.content
    if "content" in fields:
        content = (fields["content"] or "").strip()
        if not content:
            raise ValidationError("Post content is required")
    scheduled_at = data.scheduled_at if "scheduled_at" in fields else post.scheduled_at

    # transition_to raises before touching the post, so nothing is half-applied
    previous = post.status
    if data.status is not None and data.status.value != post.status:
        _check_schedule(data.status.value, scheduled_at)
        post.transition_to(data.status.value)

    post.content = content
    post.scheduled_at = scheduled_at
    if "call_to_action" in fields:
        post.call_to_action = data.call_to_action.model_dump(mode="json") if data.call_to_action else None
    post.images.extend(_images(data.images))

    profile = await db.get(BusinessProfile, post.business_profile_id)
    log_activity(
        db, user_id, "UPDATE", "post", post.id,
        description=f"Updated post for {profile.name}",
        metadata={
            "post_id": str(post.id),
            "previous_status": previous,
            "new_status": post.status,
            "has_new_media": bool(data.images),
        },
    )
    await db.commit()
    logger.info("posts: updated", post_id=str(post.id), status=post.status)
    return post


async def delete_post(db: AsyncSession, user_id: UUID, post_id: UUID) -> None:
    """Remove the post; its images and metrics go with it."""
    post = await get_owned_post(db, user_id, post_id)
    profile = await db.get(BusinessProfile, post.business_profile_id)
    image_count = len(post.images)

    await db.delete(post)
    log_activity(
        db, user_id, "DELETE", "post", post_id,
        description=f"Deleted post from {profile.name}",
        metadata={
            "post_id": str(post_id),
            "business_profile_id": str(post.business_profile_id),
            "deleted_images": image_count,
        },
    )
    await db.commit()
    logger.info("posts: deleted", post_id=str(post_id), images=image_count)
