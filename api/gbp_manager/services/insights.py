"""
Insight backfill.

Google's Performance API is not wired in, so daily insight rows are generated
as bounded random placeholder values (marked ``is_synthetic``) for every
(profile, date, DAILY) key in the backfill window that has no row yet.
Existing rows are never overwritten.
"""
import random
from datetime import date, datetime, timedelta
from typing import Optional
from uuid import UUID

import structlog
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from gbp_manager.config import get_settings
from gbp_manager.exceptions import SyntheticDataDisabledError
from gbp_manager.models import BusinessInsight, BusinessProfile
from gbp_manager.schemas import InsightSyncResult
from gbp_manager.services.activity import log_activity
from gbp_manager.services.tenancy import get_owned_profile, resolve_organization_id

logger = structlog.get_logger()

# Inclusive bounds for each generated daily metric
METRIC_RANGES = {
    "total_views": (50, 149),
    "total_searches": (20, 69),
    "website_clicks": (5, 24),
    "phone_call_clicks": (2, 16),
    "direction_requests": (8, 32),
    "photo_views": (10, 39),
}
VIEW_SPLIT = {"direct_views": 0.40, "discovery_views": 0.35, "branded_views": 0.25}
SEARCH_SPLIT = {"direct_searches": 0.30, "discovery_searches": 0.50, "branded_searches": 0.20}


def generate_daily_metrics(rng: random.Random) -> dict[str, int]:
    values = {name: rng.randint(low, high) for name, (low, high) in METRIC_RANGES.items()}
    for name, ratio in VIEW_SPLIT.items():
        values[name] = int(values["total_views"] * ratio)
    for name, ratio in SEARCH_SPLIT.items():
        values[name] = int(values["total_searches"] * ratio)
    return values


async def backfill_profile_insights(
    db: AsyncSession,
    business_profile_id: UUID,
    days: int,
    rng: random.Random,
    today: Optional[date] = None,
) -> tuple[int, int]:
    """Insert missing DAILY rows for the last ``days`` days. Returns (created, skipped)."""
    today = today or datetime.utcnow().date()
    window = [today - timedelta(days=offset) for offset in range(days)]

    result = await db.execute(
        select(BusinessInsight.date).where(
            BusinessInsight.business_profile_id == business_profile_id,
            BusinessInsight.period == "DAILY",
            BusinessInsight.date >= window[-1],
            BusinessInsight.date <= today,
        )
    )
    existing = set(result.scalars().all())

    created = 0
    skipped = 0
    for day in window:
        if day in existing:
            skipped += 1
            continue
        db.add(BusinessInsight(
            business_profile_id=business_profile_id,
            date=day,
            period="DAILY",
            is_synthetic=True,
            **generate_daily_metrics(rng),
        ))
        try:
            await db.commit()
        except IntegrityError:
            # Another backfill got there first; keep its row
            await db.rollback()
            skipped += 1
            continue
        created += 1
    return created, skipped


async def sync_insights_data(
    db: AsyncSession,
    user_id: UUID,
    business_profile_id: Optional[UUID] = None,
    *,
    rng: Optional[random.Random] = None,
    today: Optional[date] = None,
) -> InsightSyncResult:
    """Backfill placeholder insights for one profile, or every opted-in profile.

    Raises:
        SyntheticDataDisabledError: placeholder data is switched off.
        OrganizationNotFoundError / RecordNotFoundError: scoping failures.
    """
    settings = get_settings()
    if not settings.SYNTHETIC_DATA_ENABLED:
        raise SyntheticDataDisabledError(
            "No insight source is available and placeholder data is disabled",
            {"config_key": "SYNTHETIC_DATA_ENABLED"},
        )
    rng = rng or random.Random()
    organization_id = await resolve_organization_id(db, user_id)

    if business_profile_id:
        profile = await get_owned_profile(db, organization_id, business_profile_id)
        profile_ids = [profile.id]
    else:
        result = await db.execute(
            select(BusinessProfile.id).where(
                BusinessProfile.organization_id == organization_id,
                BusinessProfile.selected_for_analytics.is_(True),
            )
        )
        profile_ids = list(result.scalars().all())

    logger.info("insights_backfill: starting", profiles=len(profile_ids), days=settings.INSIGHTS_BACKFILL_DAYS)

    summary = InsightSyncResult()
    for profile_id in profile_ids:
        try:
            created, skipped = await backfill_profile_insights(
                db, profile_id, settings.INSIGHTS_BACKFILL_DAYS, rng, today
            )
        except Exception as e:
            await db.rollback()
            logger.error("insights_backfill: profile failed", business_profile_id=str(profile_id), error=str(e))
            continue
        summary.profiles_processed += 1
        summary.rows_created += created
        summary.rows_skipped += skipped

    log_activity(
        db, user_id, "CREATE", "business_insights", business_profile_id,
        description=f"Backfilled {summary.rows_created} insight rows",
        metadata=summary.model_dump(),
    )
    await db.commit()

    logger.info(
        "insights_backfill: complete",
        profiles_processed=summary.profiles_processed,
        rows_created=summary.rows_created,
        rows_skipped=summary.rows_skipped,
    )
    return summary
