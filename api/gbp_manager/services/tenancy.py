"""Organization scoping shared by every user-facing operation."""
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from gbp_manager.exceptions import OrganizationNotFoundError, RecordNotFoundError
from gbp_manager.models import BusinessProfile, User


async def resolve_organization_id(db: AsyncSession, user_id: UUID) -> UUID:
    result = await db.execute(select(User.organization_id).where(User.id == user_id))
    organization_id = result.scalar_one_or_none()
    if organization_id is None:
        raise OrganizationNotFoundError(user_id)
    return organization_id


async def get_owned_profile(db: AsyncSession, organization_id: UUID, profile_id: UUID) -> BusinessProfile:
    """A profile of this organization. Another tenant's profile is reported as missing."""
    result = await db.execute(
        select(BusinessProfile).where(
            BusinessProfile.id == profile_id,
            BusinessProfile.organization_id == organization_id,
        )
    )
    profile = result.scalar_one_or_none()
    if profile is None:
        raise RecordNotFoundError("Business profile", profile_id)
    return profile
