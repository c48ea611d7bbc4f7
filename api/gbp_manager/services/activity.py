"""Activity log writer shared by the sync engine and the user-facing actions."""
from typing import Any, Optional
from uuid import UUID

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from gbp_manager.models import ActivityLog

logger = structlog.get_logger()

ACTIONS = ("CREATE", "READ", "UPDATE", "DELETE")


def log_activity(
    db: AsyncSession,
    user_id: Optional[UUID],
    action: str,
    resource: str,
    resource_id: Any = None,
    description: Optional[str] = None,
    metadata: Optional[dict[str, Any]] = None,
) -> ActivityLog:
    """Stage an ActivityLog row on the session. The caller owns the commit."""
    if action not in ACTIONS:
        raise ValueError(f"Unknown activity action: {action}")
    entry = ActivityLog(
        user_id=user_id,
        action=action,
        resource=resource,
        resource_id=str(resource_id) if resource_id is not None else None,
        description=description,
        metadata_json=metadata,
    )
    db.add(entry)
    logger.debug("activity: staged", action=action, resource=resource, resource_id=entry.resource_id)
    return entry
