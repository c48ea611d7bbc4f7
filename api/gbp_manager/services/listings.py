"""Listing management: the organization's profiles, analytics opt-in and status toggles."""
from uuid import UUID

import structlog
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from gbp_manager.exceptions import ValidationError
from gbp_manager.models import BusinessProfile
from gbp_manager.schemas import ListingItem, ListingToggleResponse, ProfileStatus, ToggleType
from gbp_manager.services.activity import log_activity
from gbp_manager.services.tenancy import get_owned_profile, resolve_organization_id

logger = structlog.get_logger()

# Status toggle only flips between these two; CLOSED / PENDING_VERIFICATION come from Google
STATUS_TOGGLE = {
    ProfileStatus.ACTIVE.value: ProfileStatus.SUSPENDED.value,
    ProfileStatus.SUSPENDED.value: ProfileStatus.ACTIVE.value,
}


async def list_listings(db: AsyncSession, user_id: UUID) -> list[ListingItem]:
    organization_id = await resolve_organization_id(db, user_id)
    result = await db.execute(
        select(BusinessProfile)
        .where(BusinessProfile.organization_id == organization_id)
        .order_by(BusinessProfile.created_at.desc())
    )
    return [ListingItem.model_validate(profile) for profile in result.scalars().all()]


async def toggle_listing(
    db: AsyncSession,
    user_id: UUID,
    listing_id: UUID,
    toggle_type: ToggleType = ToggleType.analytics,
) -> ListingToggleResponse:
    organization_id = await resolve_organization_id(db, user_id)
    profile = await get_owned_profile(db, organization_id, listing_id)

    if toggle_type == ToggleType.analytics:
        profile.selected_for_analytics = not profile.selected_for_analytics
        verb = "added to" if profile.selected_for_analytics else "removed from"
        message = f"Listing {verb} analytics"
        log_activity(
            db, user_id, "UPDATE", "business_profile", profile.id,
            description=f"{profile.name} {verb} analytics",
            metadata={"toggle": "analytics", "selected": profile.selected_for_analytics},
        )
    else:
        target = STATUS_TOGGLE.get(profile.status)
        if target is None:
            raise ValidationError(
                f"Cannot toggle status of a {profile.status} listing",
                {"status": profile.status},
            )
        previous = profile.status
        profile.status = target
        message = f"Listing status changed to {target}"
        log_activity(
            db, user_id, "UPDATE", "business_profile", profile.id,
            description=f"{profile.name} status {previous} -> {target}",
            metadata={"toggle": "status", "from": previous, "to": target},
        )

    await db.commit()
    logger.info(
        "listings: toggled",
        listing_id=str(profile.id), toggle=toggle_type.value,
        selected=profile.selected_for_analytics, status=profile.status,
    )
    return ListingToggleResponse(
        is_selected=profile.selected_for_analytics,
        status=profile.status,
        message=message,
    )
