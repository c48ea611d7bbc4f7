"""Integration tests for business profile synchronization against SQLite."""

from datetime import datetime

import pytest
from sqlalchemy import func, select

from gbp_manager.exceptions import (
    OrganizationNotFoundError,
    RemoteAuthError,
    RemotePermissionError,
    RemoteUnavailableError,
)
from gbp_manager.models import ActivityLog, BusinessProfile, User
from gbp_manager.services.profile_sync import profile_fields_from_location, sync_business_profiles
from tests.fakes import FakeDirectoryClient, make_location


async def count_profiles(db) -> int:
    return (await db.execute(select(func.count()).select_from(BusinessProfile))).scalar_one()


class TestProfileFieldMapping:
    def test_maps_location_payload(self):
        fields = profile_fields_from_location(make_location("7", title="Harbor Coffee"))
        assert fields["name"] == "Harbor Coffee"
        assert fields["phone_number"] == "+1 503-555-0100"
        assert fields["website"] == "https://cafe.example"
        assert fields["address"]["locality"] == "Portland"
        assert fields["categories"][0]["displayName"] == "Cafe"
        assert fields["description"] == "Coffee and pastries"
        assert fields["is_verified"] is True

    def test_name_falls_back_to_address_then_placeholder(self):
        assert profile_fields_from_location(make_location("7", title=None))["name"] == "7 Main St"
        assert profile_fields_from_location({"name": "locations/7"})["name"] == "Unknown Location"

    def test_unverified_without_maps_uri(self):
        assert profile_fields_from_location(make_location("7", verified=False))["is_verified"] is False


class TestSyncBusinessProfiles:
    @pytest.mark.asyncio
    async def test_creates_profiles_for_every_location(self, db, user, settings):
        user_id, org_id = user.id, user.organization_id
        client = FakeDirectoryClient.with_locations(make_location("1"), make_location("2", title="Second"))

        result = await sync_business_profiles(db, client, user_id)

        assert result.created == 2
        assert result.updated == 0
        assert result.failed == 0
        assert result.accounts_processed == 1
        assert result.locations_seen == 2
        profiles = (await db.execute(select(BusinessProfile).order_by(BusinessProfile.google_business_id))).scalars().all()
        assert [p.google_business_id for p in profiles] == ["1", "2"]
        assert profiles[0].google_location_name == "accounts/1/locations/1"
        assert all(p.organization_id == org_id for p in profiles)
        assert all(p.status == "ACTIVE" for p in profiles)
        assert all(p.last_sync_at is not None for p in profiles)

    @pytest.mark.asyncio
    async def test_second_run_updates_without_duplicates(self, db, user, settings):
        user_id = user.id
        client = FakeDirectoryClient.with_locations(make_location("1"), make_location("2"))
        first_run, second_run = datetime(2024, 3, 1, 9, 0), datetime(2024, 3, 2, 9, 0)
        await sync_business_profiles(db, client, user_id, now=first_run)

        client.details["locations/1"] = make_location("1", title="Renamed Cafe")
        result = await sync_business_profiles(db, client, user_id, now=second_run)

        assert result.created == 0
        assert result.updated == 2
        assert await count_profiles(db) == 2
        renamed = (await db.execute(
            select(BusinessProfile).where(BusinessProfile.google_business_id == "1")
        )).scalar_one()
        assert renamed.name == "Renamed Cafe"
        profiles = (await db.execute(select(BusinessProfile))).scalars().all()
        assert all(p.last_sync_at.replace(tzinfo=None) == second_run for p in profiles)

    @pytest.mark.asyncio
    async def test_update_keeps_status_and_analytics_selection(self, db, user, make_profile, settings):
        user_id = user.id
        existing = await make_profile(
            name="Old", selected=True, status="SUSPENDED",
            google_business_id="1", google_location_name="accounts/1/locations/1",
        )
        existing_id = existing.id
        client = FakeDirectoryClient.with_locations(make_location("1", title="Fresh"))

        result = await sync_business_profiles(db, client, user_id)

        assert result.updated == 1
        assert result.profile_ids == [existing_id]
        profile = await db.get(BusinessProfile, existing_id)
        await db.refresh(profile)
        assert profile.name == "Fresh"
        assert profile.status == "SUSPENDED"
        assert profile.selected_for_analytics is True

    @pytest.mark.asyncio
    async def test_one_failing_location_does_not_stop_siblings(self, db, user, settings):
        user_id = user.id
        client = FakeDirectoryClient.with_locations(
            make_location("1"), make_location("2"), make_location("3"),
            failures={("get_location", "locations/2"): RemoteUnavailableError("upstream down", remote_status=503)},
        )

        result = await sync_business_profiles(db, client, user_id)

        assert result.created == 2
        assert result.failed == 1
        assert result.errors[0].location == "locations/2"
        assert result.errors[0].error_type == "RemoteUnavailableError"
        ids = (await db.execute(select(BusinessProfile.google_business_id))).scalars().all()
        assert sorted(ids) == ["1", "3"]

    @pytest.mark.asyncio
    async def test_rerun_after_partial_failure_converges(self, db, user, settings):
        user_id = user.id
        failures = {("get_location", "locations/2"): RemoteUnavailableError("upstream down")}
        client = FakeDirectoryClient.with_locations(
            make_location("1"), make_location("2"), make_location("3"), failures=failures,
        )
        await sync_business_profiles(db, client, user_id)

        failures.clear()
        result = await sync_business_profiles(db, client, user_id)

        assert result.created == 1
        assert result.updated == 2
        assert await count_profiles(db) == 3

    @pytest.mark.asyncio
    async def test_failing_account_is_skipped(self, db, user, settings):
        user_id = user.id
        client = FakeDirectoryClient(
            accounts=[{"name": "accounts/1"}, {"name": "accounts/2"}],
            locations={"accounts/2": [{"name": "locations/5"}]},
            details={"locations/5": make_location("5")},
            failures={("list_locations", "accounts/1"): RemotePermissionError("denied", remote_status=403)},
        )

        result = await sync_business_profiles(db, client, user_id)

        assert result.accounts_processed == 1
        assert result.created == 1
        assert result.errors[0].account == "accounts/1"
        assert result.errors[0].error_type == "RemotePermissionError"

    @pytest.mark.asyncio
    async def test_account_listing_failure_propagates(self, db, user, settings):
        client = FakeDirectoryClient(failures={("list_accounts", None): RemoteAuthError("expired", remote_status=401)})
        with pytest.raises(RemoteAuthError):
            await sync_business_profiles(db, client, user.id)

    @pytest.mark.asyncio
    async def test_location_owned_by_other_org_is_not_touched(self, db, user, other_user, make_profile, settings):
        user_id, other_org_id = user.id, other_user.organization_id
        foreign = await make_profile(name="Theirs", organization_id=other_org_id, google_business_id="1")
        foreign_id = foreign.id
        client = FakeDirectoryClient.with_locations(make_location("1", title="Mine now?"), make_location("2"))

        result = await sync_business_profiles(db, client, user_id)

        assert result.failed == 1
        assert result.created == 1
        assert result.errors[0].error_type == "ConflictError"
        profile = await db.get(BusinessProfile, foreign_id)
        await db.refresh(profile)
        assert profile.name == "Theirs"
        assert profile.organization_id == other_org_id

    @pytest.mark.asyncio
    async def test_user_without_organization(self, db, settings):
        loner = User(email="loner@test.example")
        db.add(loner)
        await db.commit()
        with pytest.raises(OrganizationNotFoundError):
            await sync_business_profiles(db, FakeDirectoryClient(), loner.id)

    @pytest.mark.asyncio
    async def test_writes_activity_per_upsert(self, db, user, settings):
        user_id = user.id
        client = FakeDirectoryClient.with_locations(make_location("1"), make_location("2"))
        await sync_business_profiles(db, client, user_id)

        logs = (await db.execute(select(ActivityLog).where(ActivityLog.resource == "business_profile"))).scalars().all()
        assert len(logs) == 2
        assert {log.action for log in logs} == {"CREATE"}
        assert all(log.user_id == user_id for log in logs)

    @pytest.mark.asyncio
    async def test_concurrent_detail_fetches(self, db, user, settings, monkeypatch):
        monkeypatch.setattr(settings, "SYNC_MAX_CONCURRENCY", 3)
        client = FakeDirectoryClient.with_locations(*(make_location(str(i)) for i in range(1, 6)))
        result = await sync_business_profiles(db, client, user.id)
        assert result.created == 5
