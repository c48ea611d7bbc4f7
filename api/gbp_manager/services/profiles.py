"""
Manual business profile management.

Creating a profile creates the location on Google first (under the first
account the credential can reach) and only then stores it locally. Edits and
deletions are pushed to Google when a connection is available; a Google
failure there is logged and the local change still goes through. Deleting a
profile removes its insights, posts, reviews and questions with it.
"""
from datetime import datetime
from typing import Any, Optional
from uuid import UUID, uuid4

import structlog
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from gbp_manager.clients.google_business import (
    DirectoryClient,
    external_id_from_name,
    location_resource_name,
)
from gbp_manager.exceptions import ConflictError, RemoteBadRequestError, RemoteDirectoryError, ValidationError
from gbp_manager.models import BusinessProfile
from gbp_manager.schemas import BusinessProfileCreate, BusinessProfileUpdate, ProfileStatus
from gbp_manager.services.activity import log_activity
from gbp_manager.services.tenancy import get_owned_profile, resolve_organization_id

logger = structlog.get_logger()

# Local column -> Business Information field (update mask entry)
REMOTE_FIELDS = {
    "name": "title",
    "description": "profile.description",
    "phone_number": "phoneNumbers",
    "website": "websiteUri",
    "address": "storefrontAddress",
    "categories": "categories",
}


def location_payload(fields: dict[str, Any]) -> dict[str, Any]:
    """Business Information location body for the given profile columns."""
    payload: dict[str, Any] = {}
    if "name" in fields:
        payload["title"] = fields["name"]
    if "description" in fields:
        payload["profile"] = {"description": fields["description"]} if fields["description"] else None
    if "phone_number" in fields:
        payload["phoneNumbers"] = {"primaryPhone": fields["phone_number"]} if fields["phone_number"] else None
    if "website" in fields:
        payload["websiteUri"] = fields["website"]
    if "address" in fields:
        payload["storefrontAddress"] = fields["address"]
    if fields.get("categories"):
        primary, *additional = fields["categories"]
        payload["categories"] = {"primaryCategory": primary, "additionalCategories": additional}
    return {key: value for key, value in payload.items() if value is not None}


def update_mask(fields: dict[str, Any]) -> str:
    return ",".join(REMOTE_FIELDS[key] for key in REMOTE_FIELDS if key in fields)


async def list_profiles(db: AsyncSession, user_id: UUID, include_inactive: bool = False) -> list[BusinessProfile]:
    organization_id = await resolve_organization_id(db, user_id)
    query = select(BusinessProfile).where(BusinessProfile.organization_id == organization_id)
    if not include_inactive:
        query = query.where(BusinessProfile.status == ProfileStatus.ACTIVE.value)
    result = await db.execute(query.order_by(BusinessProfile.name))
    return list(result.scalars().all())


async def get_profile(db: AsyncSession, user_id: UUID, profile_id: UUID) -> BusinessProfile:
    organization_id = await resolve_organization_id(db, user_id)
    return await get_owned_profile(db, organization_id, profile_id)


async def create_profile(
    db: AsyncSession,
    client: DirectoryClient,
    user_id: UUID,
    data: BusinessProfileCreate,
    now: Optional[datetime] = None,
) -> BusinessProfile:
    """Create the location on Google, then store it as an ACTIVE, unverified profile.

    Raises:
        ValidationError: no Google Business account is reachable.
        RemoteDirectoryError: Google rejected the location.
        ConflictError: the returned location is already stored.
    """
    organization_id = await resolve_organization_id(db, user_id)
    fields = data.model_dump()

    accounts = await client.list_accounts()
    account_name = accounts[0].get("name") if accounts else None
    if not account_name:
        raise ValidationError("No Google Business accounts found")

    location = await client.create_location(account_name, location_payload(fields), request_id=str(uuid4()))
    external_id = external_id_from_name(location.get("name"))
    if not external_id:
        raise RemoteBadRequestError("Google did not return a location name", {"account": account_name})

    existing = await db.execute(
        select(BusinessProfile.id).where(BusinessProfile.google_business_id == external_id)
    )
    if existing.scalar_one_or_none() is not None:
        raise ConflictError("Location is already stored", {"google_business_id": external_id})

    profile = BusinessProfile(
        organization_id=organization_id,
        google_business_id=external_id,
        google_location_name=location_resource_name(account_name, location["name"]),
        is_verified=False,
        status=ProfileStatus.ACTIVE.value,
        last_sync_at=now or datetime.utcnow(),
        **fields,
    )
    db.add(profile)
    await db.flush()
    log_activity(db, user_id, "CREATE", "business_profile", profile.id, description=f"Created business profile: {profile.name}")
    await db.commit()
    logger.info("profiles: created", profile_id=str(profile.id), google_business_id=external_id)
    return profile


async def update_profile(
    db: AsyncSession,
    client: Optional[DirectoryClient],
    user_id: UUID,
    profile_id: UUID,
    data: BusinessProfileUpdate,
    now: Optional[datetime] = None,
) -> tuple[BusinessProfile, bool]:
    """Apply the fields that were sent. Returns (profile, pushed_to_google)."""
    profile = await get_profile(db, user_id, profile_id)
    fields = data.model_dump(exclude_unset=True)
    if fields.get("name") is None:
        fields.pop("name", None)

    pushed = False
    remote_fields = {key: value for key, value in fields.items() if key in REMOTE_FIELDS}
    if client is not None and profile.google_location_name and remote_fields:
        try:
            await client.update_location(
                profile.google_location_name, location_payload(remote_fields), update_mask(remote_fields)
            )
            pushed = True
        except RemoteDirectoryError as e:
            logger.warning("profiles: google update failed", profile_id=str(profile.id), error=e.message)

    for key, value in fields.items():
        if value is None and key in ("address", "categories", "attributes"):
            continue
        setattr(profile, key, value)
    if pushed:
        profile.last_sync_at = now or datetime.utcnow()

    log_activity(
        db, user_id, "UPDATE", "business_profile", profile.id,
        description=f"Updated business profile: {profile.name}",
        metadata={"fields": sorted(fields), "pushed_to_google": pushed},
    )
    await db.commit()
    logger.info("profiles: updated", profile_id=str(profile.id), fields=sorted(fields), pushed=pushed)
    return profile, pushed


async def delete_profile(
    db: AsyncSession,
    client: Optional[DirectoryClient],
    user_id: UUID,
    profile_id: UUID,
) -> bool:
    """Delete the profile and everything stored under it. Returns whether Google was updated too."""
    profile = await get_profile(db, user_id, profile_id)
    name = profile.name

    removed_remotely = False
    if client is not None and profile.google_location_name:
        try:
            await client.delete_location(profile.google_location_name)
            removed_remotely = True
        except RemoteDirectoryError as e:
            logger.warning("profiles: google delete failed", profile_id=str(profile_id), error=e.message)

    await db.delete(profile)
    log_activity(
        db, user_id, "DELETE", "business_profile", profile_id,
        description=f"Deleted business profile: {name}",
        metadata={"removed_from_google": removed_remotely},
    )
    await db.commit()
    logger.info("profiles: deleted", profile_id=str(profile_id), removed_from_google=removed_remotely)
    return removed_remotely
