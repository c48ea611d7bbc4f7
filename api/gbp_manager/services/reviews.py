"""
Reviews as the user sees them: filtered listing, reply, withdraw a reply, change status.

A review is RESPONDED exactly when it has a response. Replies to real reviews
are published to Google first; placeholder reviews are only stored locally.
"""
from datetime import datetime
from typing import Optional
from uuid import UUID

import structlog
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from gbp_manager.clients.google_business import DirectoryClient
from gbp_manager.exceptions import ConflictError, RecordNotFoundError, ValidationError
from gbp_manager.models import BusinessProfile, Review, ReviewResponse
from gbp_manager.schemas import ReviewListResponse, ReviewOut, ReviewStats, ReviewStatus, Sentiment
from gbp_manager.services.activity import log_activity
from gbp_manager.services.tenancy import get_owned_profile, resolve_organization_id

logger = structlog.get_logger()


async def get_owned_review(db: AsyncSession, user_id: UUID, review_id: UUID) -> Review:
    organization_id = await resolve_organization_id(db, user_id)
    result = await db.execute(
        select(Review)
        .options(selectinload(Review.response))
        .join(BusinessProfile, Review.business_profile_id == BusinessProfile.id)
        .where(Review.id == review_id, BusinessProfile.organization_id == organization_id)
    )
    review = result.scalar_one_or_none()
    if review is None:
        raise RecordNotFoundError("Review", review_id)
    return review


def _publishes_remotely(review: Review) -> bool:
    return not review.is_synthetic and bool(review.google_review_name)


async def respond_to_review(
    db: AsyncSession,
    client: Optional[DirectoryClient],
    user_id: UUID,
    review_id: UUID,
    content: str,
) -> ReviewResponse:
    """Reply to a review. Only one response per review."""
    content = (content or "").strip()
    if not content:
        raise ValidationError("Response content must not be empty")
    review = await get_owned_review(db, user_id, review_id)
    if review.response is not None:
        raise ConflictError("Review already has a response", {"review_id": str(review_id)})

    published_at = datetime.utcnow()
    if _publishes_remotely(review):
        if client is None:
            raise ValidationError("A Google connection is required to reply to this review")
        await client.create_reply(review.google_review_name, content)

    response = ReviewResponse(content=content, created_by=user_id, published_at=published_at)
    review.response = response
    review.status = ReviewStatus.RESPONDED.value
    log_activity(db, user_id, "CREATE", "review_response", review.id, description="Replied to review")
    await db.commit()
    logger.info("reviews: responded", review_id=str(review.id), remote=_publishes_remotely(review))
    return response


async def delete_review_response(
    db: AsyncSession,
    client: Optional[DirectoryClient],
    user_id: UUID,
    review_id: UUID,
) -> Review:
    review = await get_owned_review(db, user_id, review_id)
    if review.response is None:
        raise RecordNotFoundError("Review response", review_id)

    if _publishes_remotely(review):
        if client is None:
            raise ValidationError("A Google connection is required to withdraw this reply")
        await client.delete_reply(review.google_review_name)

    review.response = None
    review.status = ReviewStatus.NEW.value
    log_activity(db, user_id, "DELETE", "review_response", review.id, description="Deleted review reply")
    await db.commit()
    logger.info("reviews: response deleted", review_id=str(review.id))
    return review


async def update_review_status(
    db: AsyncSession,
    user_id: UUID,
    review_id: UUID,
    status: ReviewStatus,
) -> Review:
    status = ReviewStatus(status)
    review = await get_owned_review(db, user_id, review_id)
    has_response = review.response is not None

    if status == ReviewStatus.RESPONDED and not has_response:
        raise ValidationError("Reply to the review to mark it RESPONDED")
    if status != ReviewStatus.RESPONDED and has_response:
        raise ValidationError(
            "A review with a response stays RESPONDED; delete the response first",
            {"status": status.value},
        )

    previous = review.status
    review.status = status.value
    log_activity(
        db, user_id, "UPDATE", "review", review.id,
        description=f"Review status {previous} -> {status.value}",
        metadata={"from": previous, "to": status.value},
    )
    await db.commit()
    return review


def calculate_review_stats(reviews: list[Review]) -> ReviewStats:
    total = len(reviews)
    if total == 0:
        return ReviewStats(
            sentiment_breakdown={s.value: 0 for s in Sentiment},
            rating_breakdown={rating: 0 for rating in range(1, 6)},
        )
    responded = sum(
        1 for r in reviews if r.response is not None or r.status == ReviewStatus.RESPONDED.value
    )
    return ReviewStats(
        total=total,
        average_rating=sum(r.rating for r in reviews) / total,
        # half-up, not banker's rounding
        response_rate=int(responded * 100 / total + 0.5),
        sentiment_breakdown={s.value: sum(1 for r in reviews if r.sentiment == s.value) for s in Sentiment},
        rating_breakdown={rating: sum(1 for r in reviews if r.rating == rating) for rating in range(1, 6)},
    )


async def list_reviews(
    db: AsyncSession,
    user_id: UUID,
    business_profile_id: UUID,
    status: Optional[ReviewStatus] = None,
    sentiment: Optional[Sentiment] = None,
    rating: Optional[int] = None,
    limit: int = 10,
) -> ReviewListResponse:
    """Newest reviews of one profile, filtered, with stats over the returned page."""
    organization_id = await resolve_organization_id(db, user_id)
    profile = await get_owned_profile(db, organization_id, business_profile_id)

    query = (
        select(Review)
        .options(selectinload(Review.response))
        .where(Review.business_profile_id == profile.id)
    )
    if status is not None:
        query = query.where(Review.status == ReviewStatus(status).value)
    if sentiment is not None:
        query = query.where(Review.sentiment == Sentiment(sentiment).value)
    if rating is not None:
        if not 1 <= rating <= 5:
            raise ValidationError("Rating filter must be between 1 and 5", {"rating": rating})
        query = query.where(Review.rating == rating)

    result = await db.execute(query.order_by(Review.published_at.desc()).limit(limit))
    reviews = list(result.scalars().all())
    return ReviewListResponse(
        reviews=[ReviewOut.model_validate(review) for review in reviews],
        stats=calculate_review_stats(reviews),
        count=len(reviews),
    )
