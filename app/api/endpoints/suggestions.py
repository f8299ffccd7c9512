# app/api/endpoints/suggestions.py
import logging
from typing import List, Optional

import asyncpg
from fastapi import APIRouter, Depends, Path, Query, Request, Response, status

from app.api import deps
from app.core.rate_limit import limiter
from app.schemas import suggestion as suggestion_schemas
from app.schemas.suggestion import ApprovalStatus
from app.services import suggestions
from app.utils.experience_helpers import build_suggestion, build_suggestions

logger = logging.getLogger(__name__)
router = APIRouter()

journey_tags = ["Experiences", "Journeys"]
suggestion_tags = ["Suggestions"]


# === Journey-scoped ===
@router.post(
    "/journeys/{journey_id}/experiences",
    response_model=suggestion_schemas.SuggestionOut,
    status_code=status.HTTP_201_CREATED,
    tags=journey_tags,
)
@limiter.limit("30/minute")
async def propose_experience(
    request: Request,  # For limiter state
    suggestion_in: suggestion_schemas.SuggestionCreate,
    journey_id: int = Path(..., gt=0),
    current_user_id: int = Depends(deps.get_current_user_id),
    db: asyncpg.Connection = Depends(deps.get_db),
):
    """
    Add an experience. Owners' experiences are approved immediately;
    contributors' start out pending review.
    """
    row = await suggestions.propose(
        db, journey_id=journey_id, actor_id=current_user_id, suggestion_in=suggestion_in,
    )
    return build_suggestion(row)


@router.get(
    "/journeys/{journey_id}/experiences",
    response_model=List[suggestion_schemas.SuggestionOut],
    tags=journey_tags,
)
async def list_approved_experiences(
    journey_id: int = Path(..., gt=0),
    current_user_id: int = Depends(deps.get_current_user_id),
    db: asyncpg.Connection = Depends(deps.get_db),
):
    rows = await suggestions.list_approved(db, journey_id=journey_id, actor_id=current_user_id)
    return build_suggestions(rows)


@router.get(
    "/journeys/{journey_id}/suggestions",
    response_model=List[suggestion_schemas.SuggestionOut],
    tags=journey_tags,
)
async def list_pending_suggestions(
    journey_id: int = Path(..., gt=0),
    current_user_id: int = Depends(deps.get_current_user_id),
    db: asyncpg.Connection = Depends(deps.get_db),
):
    """Owner only: the review queue, oldest first."""
    rows = await suggestions.list_pending(db, journey_id=journey_id, actor_id=current_user_id)
    return build_suggestions(rows)


@router.post(
    "/journeys/{journey_id}/suggestions/{suggestion_id}/review",
    response_model=suggestion_schemas.SuggestionOut,
    tags=journey_tags,
)
@limiter.limit("30/minute")
async def review_suggestion(
    request: Request,
    review_in: suggestion_schemas.SuggestionReview,
    journey_id: int = Path(..., gt=0),
    suggestion_id: int = Path(..., gt=0),
    current_user_id: int = Depends(deps.get_current_user_id),
    db: asyncpg.Connection = Depends(deps.get_db),
):
    row = await suggestions.review(
        db,
        journey_id=journey_id,
        suggestion_id=suggestion_id,
        actor_id=current_user_id,
        action=review_in.action,
        notes=review_in.notes,
    )
    return build_suggestion(row)


@router.get(
    "/journeys/{journey_id}/my-suggestions",
    response_model=List[suggestion_schemas.SuggestionOut],
    tags=journey_tags,
)
async def list_my_journey_suggestions(
    journey_id: int = Path(..., gt=0),
    current_user_id: int = Depends(deps.get_current_user_id),
    db: asyncpg.Connection = Depends(deps.get_db),
):
    """The caller's own suggestions on this journey, whatever their status."""
    rows = await suggestions.list_mine(db, actor_id=current_user_id, journey_id=journey_id)
    return build_suggestions(rows)


# === Caller-scoped ===
@router.get(
    "/users/me/suggestions",
    response_model=List[suggestion_schemas.SuggestionOut],
    tags=suggestion_tags,
)
async def list_my_suggestions(
    status_filter: Optional[ApprovalStatus] = Query(None, alias="status"),
    current_user_id: int = Depends(deps.get_current_user_id),
    db: asyncpg.Connection = Depends(deps.get_db),
):
    rows = await suggestions.list_mine(db, actor_id=current_user_id, status=status_filter)
    return build_suggestions(rows)


@router.put(
    "/suggestions/{suggestion_id}",
    response_model=suggestion_schemas.SuggestionOut,
    tags=suggestion_tags,
)
@limiter.limit("30/minute")
async def update_suggestion(
    request: Request,
    suggestion_in: suggestion_schemas.SuggestionUpdate,
    suggestion_id: int = Path(..., gt=0),
    current_user_id: int = Depends(deps.get_current_user_id),
    db: asyncpg.Connection = Depends(deps.get_db),
):
    """Edit one of the caller's own suggestions while it is still pending."""
    row = await suggestions.update_own(
        db, suggestion_id=suggestion_id, actor_id=current_user_id, suggestion_in=suggestion_in,
    )
    return build_suggestion(row)


@router.delete(
    "/suggestions/{suggestion_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    tags=suggestion_tags,
)
@limiter.limit("30/minute")
async def withdraw_suggestion(
    request: Request,
    suggestion_id: int = Path(..., gt=0),
    current_user_id: int = Depends(deps.get_current_user_id),
    db: asyncpg.Connection = Depends(deps.get_db),
):
    await suggestions.withdraw_own(db, suggestion_id=suggestion_id, actor_id=current_user_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
