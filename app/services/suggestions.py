"""
Suggestion review engine.

Owners and contributors create experiences through the same `propose` call;
the caller's role decides the starting status:

    Owner        -> Approved (fast path, never reviewed)
    Contributor  -> Pending --review(approve)--> Approved
                            --review(reject)---> Rejected

Only the owner reviews. Only the suggesting contributor edits or withdraws,
and only while the row is still Pending.
"""
from __future__ import annotations

import logging
from typing import List, Optional

import asyncpg

from app.core.errors import ForbiddenError, InvalidTransitionError, NotFoundError
from app.crud import crud_suggestion
from app.schemas import suggestion as suggestion_schemas
from app.schemas.collaboration import Role
from app.schemas.suggestion import ApprovalStatus, ReviewAction
from app.services import permissions
from app.services.permissions import Capability

logger = logging.getLogger(__name__)

_OWN_PENDING_ONLY = "Can only change your own pending suggestions"


async def propose(
    db: asyncpg.Connection,
    *,
    journey_id: int,
    actor_id: int,
    suggestion_in: suggestion_schemas.SuggestionCreate,
) -> asyncpg.Record:
    role = await permissions.require(db, journey_id=journey_id, user_id=actor_id, capability=Capability.PROPOSE)
    status = ApprovalStatus.APPROVED if role is Role.OWNER else ApprovalStatus.PENDING
    return await crud_suggestion.create_experience(
        db,
        journey_id=journey_id,
        suggestion_in=suggestion_in,
        suggested_by=actor_id,
        approval_status=status,
    )


async def review(
    db: asyncpg.Connection,
    *,
    journey_id: int,
    suggestion_id: int,
    actor_id: int,
    action: ReviewAction,
    notes: Optional[str] = None,
) -> asyncpg.Record:
    await permissions.require(db, journey_id=journey_id, user_id=actor_id, capability=Capability.REVIEW)

    suggestion = await crud_suggestion.get_experience_by_id(db, suggestion_id)
    if suggestion is None or suggestion["journey_id"] != journey_id:
        raise NotFoundError("Suggestion not found")
    if suggestion["approval_status"] != ApprovalStatus.PENDING.value:
        raise InvalidTransitionError(f"Suggestion already {suggestion['approval_status']}")

    updated = await crud_suggestion.set_review_status(
        db,
        journey_id=journey_id,
        experience_id=suggestion_id,
        status=action.resulting_status,
        reviewed_by=actor_id,
        notes=notes,
    )
    if updated is None:
        raise InvalidTransitionError("Suggestion was already processed")

    logger.info("Owner %s %s suggestion %s on journey %s", actor_id, updated["approval_status"], suggestion_id, journey_id)
    return updated


async def _load_own_pending(db: asyncpg.Connection, suggestion_id: int, actor_id: int) -> asyncpg.Record:
    suggestion = await crud_suggestion.get_experience_by_id(db, suggestion_id)
    if suggestion is None:
        raise NotFoundError("Suggestion not found")

    role = await permissions.resolve_role(db, suggestion["journey_id"], actor_id)
    permissions.check(role, Capability.EDIT_OWN_SUGGESTION)
    if (
        suggestion["suggested_by"] != actor_id
        or suggestion["approval_status"] != ApprovalStatus.PENDING.value
    ):
        raise ForbiddenError(_OWN_PENDING_ONLY)
    return suggestion


async def update_own(
    db: asyncpg.Connection,
    *,
    suggestion_id: int,
    actor_id: int,
    suggestion_in: suggestion_schemas.SuggestionUpdate,
) -> asyncpg.Record:
    await _load_own_pending(db, suggestion_id, actor_id)
    updated = await crud_suggestion.update_pending_suggestion(
        db, suggestion_id, suggested_by=actor_id, suggestion_in=suggestion_in,
    )
    if updated is None:
        # reviewed between the check and the update
        raise ForbiddenError(_OWN_PENDING_ONLY)
    return updated


async def withdraw_own(db: asyncpg.Connection, *, suggestion_id: int, actor_id: int) -> asyncpg.Record:
    """Delete the caller's pending suggestion; returns the row as it was."""
    suggestion = await _load_own_pending(db, suggestion_id, actor_id)
    if not await crud_suggestion.delete_pending_suggestion(db, suggestion_id, suggested_by=actor_id):
        raise ForbiddenError(_OWN_PENDING_ONLY)
    logger.info("User %s withdrew suggestion %s", actor_id, suggestion_id)
    return suggestion


async def list_pending(db: asyncpg.Connection, *, journey_id: int, actor_id: int) -> List[asyncpg.Record]:
    """Owner's review queue, oldest first."""
    await permissions.require(
        db, journey_id=journey_id, user_id=actor_id, capability=Capability.VIEW_PENDING_SUGGESTIONS,
    )
    return await crud_suggestion.get_pending_suggestions(db, journey_id)


async def list_approved(db: asyncpg.Connection, *, journey_id: int, actor_id: int) -> List[asyncpg.Record]:
    await permissions.require(db, journey_id=journey_id, user_id=actor_id, capability=Capability.VIEW_JOURNEY)
    return await crud_suggestion.get_approved_experiences(db, journey_id)


async def list_mine(
    db: asyncpg.Connection,
    *,
    actor_id: int,
    journey_id: Optional[int] = None,
    status: Optional[ApprovalStatus] = None,
) -> List[asyncpg.Record]:
    if journey_id is not None:
        await permissions.require(db, journey_id=journey_id, user_id=actor_id, capability=Capability.VIEW_JOURNEY)
    return await crud_suggestion.get_user_suggestions(db, actor_id, journey_id=journey_id, status=status)
