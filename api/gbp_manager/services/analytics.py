"""
Analytics aggregation over the record store.

Loading (``load_snapshots``) is separated from aggregation: every
``calculate_*`` / ``generate_*`` / ``get_*`` function below is a pure function
over a list of ``ProfileSnapshot`` so it can be tested without a database.

Per profile the working set is:
- insight rows inside the date window, date ascending
- the 10 most recently published posts, with metrics
- the 10 most recently published reviews
- every ANSWERED question
"""
import csv
import io
from collections import defaultdict
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional
from uuid import UUID

import structlog
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from gbp_manager.models import BusinessInsight, BusinessProfile, Post, Question, Review
from gbp_manager.schemas import (
    AnalyticsData,
    AnalyticsMetrics,
    AnalyticsTrend,
    AnalyticsTrends,
    LocationComparison,
    Period,
    RecentReview,
    TopPost,
)
from gbp_manager.services.dates import day_key, day_label, resolve_date_range, truncate
from gbp_manager.services.tenancy import get_owned_profile, resolve_organization_id

logger = structlog.get_logger()

POSTS_PER_PROFILE = 10
REVIEWS_PER_PROFILE = 10
TOP_POSTS_LIMIT = 5
RECENT_REVIEWS_LIMIT = 5
POST_CONTENT_LIMIT = 100
REVIEW_CONTENT_LIMIT = 150


@dataclass
class ProfileSnapshot:
    """One profile and the rows loaded for it."""
    id: UUID
    name: str
    insights: list = field(default_factory=list)
    posts: list = field(default_factory=list)
    reviews: list = field(default_factory=list)
    questions: list = field(default_factory=list)


# ─── Loading ───

async def _load_snapshot(db: AsyncSession, profile: BusinessProfile, start_date, end_date) -> ProfileSnapshot:
    insights = await db.execute(
        select(BusinessInsight)
        .where(
            BusinessInsight.business_profile_id == profile.id,
            BusinessInsight.date >= start_date,
            BusinessInsight.date <= end_date,
        )
        .order_by(BusinessInsight.date.asc())
    )
    posts = await db.execute(
        select(Post)
        .options(selectinload(Post.metrics))
        .where(Post.business_profile_id == profile.id)
        .order_by(Post.published_at.desc().nulls_last())
        .limit(POSTS_PER_PROFILE)
    )
    reviews = await db.execute(
        select(Review)
        .where(Review.business_profile_id == profile.id)
        .order_by(Review.published_at.desc())
        .limit(REVIEWS_PER_PROFILE)
    )
    questions = await db.execute(
        select(Question).where(
            Question.business_profile_id == profile.id,
            Question.status == "ANSWERED",
        )
    )
    return ProfileSnapshot(
        id=profile.id,
        name=profile.name,
        insights=list(insights.scalars().all()),
        posts=list(posts.scalars().all()),
        reviews=list(reviews.scalars().all()),
        questions=list(questions.scalars().all()),
    )


async def load_snapshots(
    db: AsyncSession,
    user_id: UUID,
    start_date,
    end_date,
    business_profile_id: Optional[UUID] = None,
) -> list[ProfileSnapshot]:
    """Profiles in scope: the requested one (must be the org's) or every opted-in one."""
    organization_id = await resolve_organization_id(db, user_id)
    if business_profile_id:
        profiles = [await get_owned_profile(db, organization_id, business_profile_id)]
    else:
        result = await db.execute(
            select(BusinessProfile)
            .where(
                BusinessProfile.organization_id == organization_id,
                BusinessProfile.selected_for_analytics.is_(True),
            )
            .order_by(BusinessProfile.name)
        )
        profiles = list(result.scalars().all())

    return [await _load_snapshot(db, profile, start_date, end_date) for profile in profiles]


# ─── Aggregation ───

def _sum_insights(metrics: AnalyticsMetrics, insights) -> None:
    for insight in insights:
        metrics.total_views += insight.total_views or 0
        metrics.total_searches += insight.total_searches or 0
        metrics.website_clicks += insight.website_clicks or 0
        metrics.phone_call_clicks += insight.phone_call_clicks or 0
        metrics.direction_requests += insight.direction_requests or 0
        metrics.photo_views += insight.photo_views or 0


def calculate_overview_metrics(snapshots: list[ProfileSnapshot]) -> AnalyticsMetrics:
    """Global sums. Average rating is weighted by review count, not per location."""
    metrics = AnalyticsMetrics()
    rating_sum = 0
    for snapshot in snapshots:
        _sum_insights(metrics, snapshot.insights)
        metrics.total_posts += len(snapshot.posts)
        metrics.total_questions += len(snapshot.questions)
        metrics.total_reviews += len(snapshot.reviews)
        rating_sum += sum(review.rating for review in snapshot.reviews)
    if metrics.total_reviews:
        metrics.average_rating = rating_sum / metrics.total_reviews
    return metrics


def generate_trend_data(snapshots: list[ProfileSnapshot]) -> AnalyticsTrends:
    """Daily series summed across profiles. Days without rows are absent."""
    views = defaultdict(int)
    searches = defaultdict(int)
    actions = defaultdict(int)
    for snapshot in snapshots:
        for insight in snapshot.insights:
            key = day_key(insight.date)
            views[key] += insight.total_views or 0
            searches[key] += insight.total_searches or 0
            actions[key] += (
                (insight.website_clicks or 0)
                + (insight.phone_call_clicks or 0)
                + (insight.direction_requests or 0)
            )

    def series(values: dict) -> list[AnalyticsTrend]:
        return [AnalyticsTrend(date=key, value=values[key], label=day_label(key)) for key in sorted(values)]

    return AnalyticsTrends(views=series(views), searches=series(searches), actions=series(actions))


def create_location_comparison(snapshots: list[ProfileSnapshot]) -> list[LocationComparison]:
    return [
        LocationComparison(
            location_id=snapshot.id,
            location_name=snapshot.name,
            metrics=calculate_overview_metrics([snapshot]),
        )
        for snapshot in snapshots
    ]


def get_top_performing_posts(snapshots: list[ProfileSnapshot], limit: int = TOP_POSTS_LIMIT) -> list[TopPost]:
    """Posts that have metrics, by views + clicks, highest first."""
    candidates = [
        (post, snapshot.name)
        for snapshot in snapshots
        for post in snapshot.posts
        if post.metrics is not None
    ]
    candidates.sort(key=lambda item: item[0].metrics.views + item[0].metrics.clicks, reverse=True)
    return [
        TopPost(
            id=post.id,
            content=truncate(post.content, POST_CONTENT_LIMIT),
            views=post.metrics.views,
            clicks=post.metrics.clicks,
            published_at=post.published_at,
            location_name=location_name,
        )
        for post, location_name in candidates[:limit]
    ]


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def get_recent_reviews(snapshots: list[ProfileSnapshot], limit: int = RECENT_REVIEWS_LIMIT) -> list[RecentReview]:
    candidates = [(review, snapshot.name) for snapshot in snapshots for review in snapshot.reviews]
    candidates.sort(key=lambda item: _as_utc(item[0].published_at), reverse=True)
    return [
        RecentReview(
            id=review.id,
            rating=review.rating,
            content=truncate(review.content, REVIEW_CONTENT_LIMIT),
            reviewer_name=review.reviewer_name,
            published_at=review.published_at,
            location_name=location_name,
        )
        for review, location_name in candidates[:limit]
    ]


def includes_synthetic_data(snapshots: list[ProfileSnapshot]) -> bool:
    return any(
        row.is_synthetic
        for snapshot in snapshots
        for row in (*snapshot.insights, *snapshot.reviews)
    )


# ─── Operations ───

async def get_analytics_data(
    db: AsyncSession,
    user_id: UUID,
    period: Period = Period.month,
    business_profile_id: Optional[UUID] = None,
    now: Optional[datetime] = None,
) -> AnalyticsData:
    """Dashboard analytics for one profile or every opted-in profile.

    Never fails for lack of data; empty scope yields zeroed metrics.

    Raises:
        ValidationError: unknown period.
        OrganizationNotFoundError: the user has no organization.
        RecordNotFoundError: ``business_profile_id`` is not the organization's.
    """
    start_date, end_date = resolve_date_range(period, now)
    snapshots = await load_snapshots(db, user_id, start_date, end_date, business_profile_id)
    logger.info(
        "analytics: aggregating",
        user_id=str(user_id), period=getattr(period, "value", period), profiles=len(snapshots),
    )
    return AnalyticsData(
        period=period,
        start_date=start_date,
        end_date=end_date,
        overview=calculate_overview_metrics(snapshots),
        trends=generate_trend_data(snapshots),
        location_comparison=create_location_comparison(snapshots),
        top_performing_posts=get_top_performing_posts(snapshots),
        recent_reviews=get_recent_reviews(snapshots),
        includes_synthetic_data=includes_synthetic_data(snapshots),
    )


def overview_to_csv(overview: AnalyticsMetrics) -> str:
    output = io.StringIO()
    writer = csv.writer(output, lineterminator="\n")
    writer.writerow(["Metric", "Value"])
    writer.writerows([
        ["Total Views", overview.total_views],
        ["Total Searches", overview.total_searches],
        ["Website Clicks", overview.website_clicks],
        ["Phone Clicks", overview.phone_call_clicks],
        ["Direction Requests", overview.direction_requests],
        ["Photo Views", overview.photo_views],
        ["Average Rating", f"{overview.average_rating:.1f}"],
        ["Total Reviews", overview.total_reviews],
        ["Total Posts", overview.total_posts],
        ["Total Questions", overview.total_questions],
    ])
    # rows are newline-joined, no trailing newline
    return output.getvalue().rstrip("\n")


async def export_analytics_data(
    db: AsyncSession,
    user_id: UUID,
    period: Period = Period.month,
    business_profile_id: Optional[UUID] = None,
    now: Optional[datetime] = None,
) -> str:
    """Overview metrics as a two-column ``Metric,Value`` CSV."""
    data = await get_analytics_data(db, user_id, period, business_profile_id, now)
    return overview_to_csv(data.overview)
