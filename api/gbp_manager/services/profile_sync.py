"""
Business profile synchronization.

Walks every account reachable by the user's Google credential, lists its
locations (first page only), fetches each location's details and upserts a
BusinessProfile keyed by the location's external id.

Failure isolation:
- list_accounts failing aborts the run (there is nothing usable to return)
- list_locations failing skips that account
- a fetch, parse or write failure skips that location
Each successful upsert is committed on its own, so a re-run after a partial
failure converges without duplicates.
"""
import asyncio
from datetime import datetime
from typing import Any, Optional
from uuid import UUID

import structlog
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from gbp_manager.clients.google_business import (
    DirectoryClient,
    external_id_from_name,
    location_resource_name,
)
from gbp_manager.config import get_settings
from gbp_manager.exceptions import ConflictError, GBPManagerError, ValidationError
from gbp_manager.models import BusinessProfile
from gbp_manager.schemas import ProfileSyncResult, SyncError
from gbp_manager.services.activity import log_activity
from gbp_manager.services.tenancy import resolve_organization_id

logger = structlog.get_logger()

UNKNOWN_LOCATION_NAME = "Unknown Location"


def profile_fields_from_location(location: dict[str, Any]) -> dict[str, Any]:
    """Map a Business Information location onto BusinessProfile columns."""
    address = location.get("storefrontAddress") or {}
    address_lines = address.get("addressLines") or []
    phones = location.get("phoneNumbers") or {}
    categories = location.get("categories") or {}
    metadata = location.get("metadata") or {}
    profile = location.get("profile") or {}

    category_list = []
    if categories.get("primaryCategory"):
        category_list.append(categories["primaryCategory"])
    category_list.extend(categories.get("additionalCategories") or [])

    return {
        "name": location.get("title") or (address_lines[0] if address_lines else None) or UNKNOWN_LOCATION_NAME,
        "description": profile.get("description"),
        "phone_number": phones.get("primaryPhone"),
        "website": location.get("websiteUri"),
        "address": {
            "addressLines": address_lines,
            "locality": address.get("locality"),
            "administrativeArea": address.get("administrativeArea"),
            "postalCode": address.get("postalCode"),
            "regionCode": address.get("regionCode"),
        },
        "categories": category_list,
        "attributes": {
            "mapsUri": metadata.get("mapsUri"),
            "newReviewUri": metadata.get("newReviewUri"),
            "placeId": metadata.get("placeId"),
        },
        "is_verified": bool(metadata.get("mapsUri")),
    }


async def upsert_profile(
    db: AsyncSession,
    organization_id: UUID,
    external_id: str,
    location_name: str,
    fields: dict[str, Any],
    now: datetime,
) -> tuple[BusinessProfile, bool]:
    """Update or insert one profile. Returns (profile, created). Does not commit."""
    result = await db.execute(
        select(BusinessProfile).where(BusinessProfile.google_business_id == external_id)
    )
    profile = result.scalar_one_or_none()

    if profile is not None:
        if profile.organization_id != organization_id:
            raise ConflictError(
                "Location is already linked to another organization",
                {"google_business_id": external_id},
            )
        # status, external id, organization and analytics opt-in stay as they are
        for key, value in fields.items():
            setattr(profile, key, value)
        profile.google_location_name = location_name
        profile.last_sync_at = now
        return profile, False

    profile = BusinessProfile(
        organization_id=organization_id,
        google_business_id=external_id,
        google_location_name=location_name,
        status="ACTIVE",
        last_sync_at=now,
        **fields,
    )
    db.add(profile)
    return profile, True


async def _fetch_details(
    client: DirectoryClient,
    locations: list[dict[str, Any]],
    concurrency: int,
) -> list[Any]:
    """Location details in input order; failures come back as exception objects."""
    semaphore = asyncio.Semaphore(max(1, concurrency))

    async def fetch(location: dict[str, Any]) -> dict[str, Any]:
        name = location.get("name")
        if not name:
            raise ValidationError("Location has no resource name")
        async with semaphore:
            return await client.get_location(name)

    return await asyncio.gather(*(fetch(loc) for loc in locations), return_exceptions=True)


async def sync_business_profiles(
    db: AsyncSession,
    client: DirectoryClient,
    user_id: UUID,
    now: Optional[datetime] = None,
) -> ProfileSyncResult:
    """Pull every reachable Google location into the user's organization.

    Raises:
        OrganizationNotFoundError: the user has no organization.
        RemoteDirectoryError: the account listing itself failed.
    """
    settings = get_settings()
    organization_id = await resolve_organization_id(db, user_id)
    summary = ProfileSyncResult()

    logger.info("profile_sync: starting", organization_id=str(organization_id))
    accounts = await client.list_accounts()

    for account in accounts:
        account_name = account.get("name", "")
        try:
            locations = await client.list_locations(account_name)
        except GBPManagerError as e:
            logger.error("profile_sync: list locations failed", account=account_name, error=e.message)
            summary.errors.append(SyncError(account=account_name, error_type=type(e).__name__, message=e.message))
            continue
        summary.accounts_processed += 1
        summary.locations_seen += len(locations)

        details = await _fetch_details(client, locations, settings.SYNC_MAX_CONCURRENCY)

        for location, detail in zip(locations, details):
            location_name = location.get("name")
            wrote = False
            try:
                if isinstance(detail, BaseException):
                    raise detail
                external_id = external_id_from_name(detail.get("name") or location_name)
                if not external_id:
                    raise ValidationError("Location has no external id")
                full_name = location_resource_name(account_name, detail.get("name") or location_name)
                wrote = True
                profile, created = await upsert_profile(
                    db, organization_id, external_id, full_name,
                    profile_fields_from_location(detail), now or datetime.utcnow(),
                )
                await db.flush()
                log_activity(
                    db, user_id, "CREATE" if created else "UPDATE", "business_profile", profile.id,
                    description=f"{'Imported' if created else 'Refreshed'} {profile.name} from Google",
                    metadata={"google_business_id": external_id},
                )
                await db.commit()
            except Exception as e:
                if wrote:
                    await db.rollback()
                message = e.message if isinstance(e, GBPManagerError) else str(e)
                logger.error(
                    "profile_sync: location failed",
                    account=account_name, location=location_name, error_type=type(e).__name__, error=message,
                )
                summary.failed += 1
                summary.errors.append(SyncError(
                    account=account_name, location=location_name,
                    error_type=type(e).__name__, message=message,
                ))
                continue

            summary.profile_ids.append(profile.id)
            if created:
                summary.created += 1
            else:
                summary.updated += 1

    logger.info(
        "profile_sync: complete",
        accounts=summary.accounts_processed,
        created=summary.created,
        updated=summary.updated,
        failed=summary.failed,
    )
    return summary
