# app/api/endpoints/journeys.py
import logging

import asyncpg
from fastapi import APIRouter, Depends, Request, status

from app.api import deps
from app.core.rate_limit import limiter
from app.crud import crud_journey
from app.schemas import journey as journey_schemas
from app.utils.experience_helpers import build_journey

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/journeys", tags=["Journeys"])


@router.post("", response_model=journey_schemas.JourneyOut, status_code=status.HTTP_201_CREATED)
@limiter.limit("10/minute")
async def create_journey(
    request: Request,  # For limiter state
    journey_in: journey_schemas.JourneyCreate,
    current_user_id: int = Depends(deps.get_current_user_id),
    db: asyncpg.Connection = Depends(deps.get_db),
):
    """Create a journey; the caller becomes its single owner."""
    record = await crud_journey.create_journey(db=db, journey_in=journey_in, owner_id=current_user_id)
    return build_journey(record, requester_id=current_user_id)


@router.get("", response_model=journey_schemas.JourneyListResponse)
async def list_journeys(
    current_user_id: int = Depends(deps.get_current_user_id),
    db: asyncpg.Connection = Depends(deps.get_db),
):
    """Journeys the caller owns or collaborates on, with the caller's role on each."""
    records = await crud_journey.get_user_journeys(db=db, user_id=current_user_id)
    return journey_schemas.JourneyListResponse(
        items=[build_journey(r, requester_id=current_user_id) for r in records]
    )
