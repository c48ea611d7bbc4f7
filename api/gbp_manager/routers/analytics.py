import io
from datetime import date
from typing import Optional
from uuid import UUID

import structlog
from fastapi import APIRouter, Depends, Query
from fastapi.responses import StreamingResponse
from sqlalchemy.ext.asyncio import AsyncSession

from gbp_manager.database import get_db
from gbp_manager.dependencies import get_current_user
from gbp_manager.exceptions import GBPManagerError
from gbp_manager.models import User
from gbp_manager.schemas import AnalyticsExportRequest, AnalyticsResponse, Period
from gbp_manager.services.activity import log_activity
from gbp_manager.services.analytics import export_analytics_data, get_analytics_data
from gbp_manager.services.insights import sync_insights_data

router = APIRouter(prefix="/analytics", tags=["analytics"])
logger = structlog.get_logger()


@router.get("", response_model=AnalyticsResponse)
async def get_analytics(
    period: Period = Period.month,
    sync: bool = False,
    business_profile_id: Optional[UUID] = Query(None, alias="businessProfileId"),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    if sync:
        try:
            await sync_insights_data(db, user.id, business_profile_id)
        except GBPManagerError as e:
            # Serve what is already stored
            await db.rollback()
            logger.warning("analytics: insight sync failed", user_id=str(user.id), error=e.message)

    data = await get_analytics_data(db, user.id, period, business_profile_id)
    return AnalyticsResponse(
        data=data,
        period=period,
        business_profile_id=business_profile_id,
        synced=sync,
    )


@router.post("/export")
async def export_analytics(
    req: AnalyticsExportRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    csv_data = await export_analytics_data(db, user.id, req.period, req.business_profile_id)

    scope = str(req.business_profile_id) if req.business_profile_id else "all"
    log_activity(
        db, user.id, "READ", "analytics", scope,
        description=f"Exported analytics data for period: {req.period.value}",
        metadata={"period": req.period.value, "business_profile_id": str(req.business_profile_id) if req.business_profile_id else None},
    )
    await db.commit()

    filename = f"analytics-{req.period.value}-{scope}-{date.today().isoformat()}.csv"
    return StreamingResponse(
        io.BytesIO(csv_data.encode()),
        media_type="text/csv",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )
