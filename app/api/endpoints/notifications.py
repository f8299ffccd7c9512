# app/api/endpoints/notifications.py
import logging

import asyncpg
from fastapi import APIRouter, Depends, Query, Request

from app.api import deps
from app.core.config import settings
from app.core.rate_limit import limiter
from app.crud import crud_notification
from app.schemas import notification as notification_schemas

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/notifications", tags=["Notifications"])


@router.get("", response_model=notification_schemas.NotificationCounts)
@limiter.limit("60/minute")
async def get_notification_counts(
    request: Request,
    user: asyncpg.Record = Depends(deps.get_current_user_record),
    db: asyncpg.Connection = Depends(deps.get_db),
):
    """Badge counts. `total` is the sum of the four parts."""
    counts = await crud_notification.get_notification_counts(
        db,
        user["id"],
        user["email"] or "",
        settings.RECENT_RESPONSE_WINDOW_DAYS,
    )
    return notification_schemas.NotificationCounts(**counts)


@router.get("/details", response_model=notification_schemas.NotificationDetails)
@limiter.limit("60/minute")
async def get_notification_details(
    request: Request,
    limit: int = Query(settings.NOTIFICATION_DETAIL_LIMIT, ge=1, le=50),
    user: asyncpg.Record = Depends(deps.get_current_user_record),
    db: asyncpg.Connection = Depends(deps.get_db),
):
    details = await crud_notification.get_notification_details(
        db, user["id"], settings.RECENT_RESPONSE_WINDOW_DAYS, limit,
    )
    return notification_schemas.NotificationDetails(
        pending_suggestions=[dict(r) for r in details["pending_suggestions"]],
        recent_responses=[dict(r) for r in details["recent_responses"]],
    )
