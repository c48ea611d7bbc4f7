"""Integration tests for the placeholder insight backfill."""

import random
from datetime import date, timedelta

import pytest
from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError

from gbp_manager.exceptions import RecordNotFoundError, SyntheticDataDisabledError
from gbp_manager.models import BusinessInsight
from gbp_manager.services.insights import (
    METRIC_RANGES,
    backfill_profile_insights,
    generate_daily_metrics,
    sync_insights_data,
)
from tests.fakes import ConcurrentWriterSession

TODAY = date(2024, 3, 31)


async def insight_rows(db, profile_id):
    result = await db.execute(
        select(BusinessInsight)
        .where(BusinessInsight.business_profile_id == profile_id)
        .order_by(BusinessInsight.date)
    )
    return result.scalars().all()


class TestGenerateDailyMetrics:
    def test_values_within_bounds(self):
        rng = random.Random(7)
        for _ in range(50):
            values = generate_daily_metrics(rng)
            for name, (low, high) in METRIC_RANGES.items():
                assert low <= values[name] <= high

    def test_sub_category_ratios(self):
        values = generate_daily_metrics(random.Random(1))
        assert values["direct_views"] == int(values["total_views"] * 0.40)
        assert values["discovery_views"] == int(values["total_views"] * 0.35)
        assert values["branded_views"] == int(values["total_views"] * 0.25)
        assert values["direct_searches"] == int(values["total_searches"] * 0.30)
        assert values["discovery_searches"] == int(values["total_searches"] * 0.50)
        assert values["branded_searches"] == int(values["total_searches"] * 0.20)


class TestSyncInsights:
    @pytest.mark.asyncio
    async def test_backfills_thirty_days(self, db, user, make_profile, settings):
        profile = await make_profile()
        profile_id = profile.id

        result = await sync_insights_data(db, user.id, profile_id, rng=random.Random(3), today=TODAY)

        assert result.profiles_processed == 1
        assert result.rows_created == 30
        assert result.rows_skipped == 0
        assert result.is_synthetic_data is True
        rows = await insight_rows(db, profile_id)
        assert len(rows) == 30
        assert rows[0].date == TODAY - timedelta(days=29)
        assert rows[-1].date == TODAY
        assert all(r.is_synthetic and r.period == "DAILY" for r in rows)

    @pytest.mark.asyncio
    async def test_second_run_creates_nothing(self, db, user, make_profile, settings):
        profile = await make_profile()
        profile_id = profile.id
        await sync_insights_data(db, user.id, profile_id, rng=random.Random(3), today=TODAY)

        result = await sync_insights_data(db, user.id, profile_id, rng=random.Random(4), today=TODAY)

        assert result.rows_created == 0
        assert result.rows_skipped == 30
        count = (await db.execute(select(func.count()).select_from(BusinessInsight))).scalar_one()
        assert count == 30

    @pytest.mark.asyncio
    async def test_existing_rows_are_never_overwritten(self, db, user, make_profile, settings):
        profile = await make_profile()
        profile_id = profile.id
        db.add(BusinessInsight(business_profile_id=profile_id, date=TODAY, period="DAILY", total_views=999))
        await db.commit()

        result = await sync_insights_data(db, user.id, profile_id, rng=random.Random(3), today=TODAY)

        assert result.rows_created == 29
        assert result.rows_skipped == 1
        rows = await insight_rows(db, profile_id)
        assert rows[-1].total_views == 999
        assert rows[-1].is_synthetic is False

    @pytest.mark.asyncio
    async def test_defaults_to_opted_in_profiles(self, db, user, make_profile, settings, monkeypatch):
        monkeypatch.setattr(settings, "INSIGHTS_BACKFILL_DAYS", 5)
        selected = await make_profile(selected=True)
        skipped = await make_profile(selected=False)
        selected_id, skipped_id = selected.id, skipped.id

        result = await sync_insights_data(db, user.id, rng=random.Random(3), today=TODAY)

        assert result.profiles_processed == 1
        assert len(await insight_rows(db, selected_id)) == 5
        assert await insight_rows(db, skipped_id) == []

    @pytest.mark.asyncio
    async def test_other_organization_profile_not_found(self, db, user, other_user, make_profile, settings):
        foreign = await make_profile(organization_id=other_user.organization_id)
        with pytest.raises(RecordNotFoundError):
            await sync_insights_data(db, user.id, foreign.id, today=TODAY)

    @pytest.mark.asyncio
    async def test_disabled_placeholder_data_raises(self, db, user, make_profile, settings, monkeypatch):
        monkeypatch.setattr(settings, "SYNTHETIC_DATA_ENABLED", False)
        profile = await make_profile()
        with pytest.raises(SyntheticDataDisabledError):
            await sync_insights_data(db, user.id, profile.id, today=TODAY)
        assert await insight_rows(db, profile.id) == []


class TestInsightUniqueness:
    @pytest.mark.asyncio
    async def test_duplicate_daily_row_is_rejected_by_the_store(self, db, make_profile):
        profile = await make_profile()
        profile_id = profile.id
        db.add(BusinessInsight(business_profile_id=profile_id, date=TODAY, period="DAILY", total_views=1))
        await db.commit()

        db.add(BusinessInsight(business_profile_id=profile_id, date=TODAY, period="DAILY", total_views=2))
        with pytest.raises(IntegrityError):
            await db.commit()
        await db.rollback()

        rows = await insight_rows(db, profile_id)
        assert [r.total_views for r in rows] == [1]

    @pytest.mark.asyncio
    async def test_same_day_in_another_period_is_allowed(self, db, make_profile):
        profile = await make_profile()
        profile_id = profile.id
        db.add(BusinessInsight(business_profile_id=profile_id, date=TODAY, period="DAILY"))
        db.add(BusinessInsight(business_profile_id=profile_id, date=TODAY, period="WEEKLY"))
        await db.commit()

        assert len(await insight_rows(db, profile_id)) == 2

    @pytest.mark.asyncio
    async def test_row_written_after_existence_check_counts_as_skipped(self, db, make_profile):
        profile = await make_profile()
        profile_id = profile.id
        competing = BusinessInsight(
            business_profile_id=profile_id, date=TODAY - timedelta(days=1), period="DAILY", total_views=999,
        )

        created, skipped = await backfill_profile_insights(
            ConcurrentWriterSession(db, competing), profile_id, 3, random.Random(5), TODAY,
        )

        assert (created, skipped) == (2, 1)
        rows = await insight_rows(db, profile_id)
        assert [r.date for r in rows] == [TODAY - timedelta(days=2), TODAY - timedelta(days=1), TODAY]
        assert rows[1].total_views == 999
        assert rows[1].is_synthetic is False
