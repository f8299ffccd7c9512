"""
Invitation lifecycle: invite -> (accept | decline), plus owner-side removal.

    Pending --accept--> Accepted
    Pending --decline-> Declined   (terminal; a later invite creates a new row)
"""
from __future__ import annotations

import logging
from typing import List, Mapping, Optional

import asyncpg

from app.core.errors import (
    DuplicateInvitationError,
    ForbiddenError,
    InvalidTransitionError,
    NotFoundError,
)
from app.crud import crud_collaboration, crud_user
from app.schemas.collaboration import CollaboratorStatus, InvitationDecision, Role
from app.services import permissions
from app.services.permissions import Capability

logger = logging.getLogger(__name__)


async def invite(
    db: asyncpg.Connection,
    *,
    journey_id: int,
    actor_id: int,
    email: str,
    message: Optional[str] = None,
) -> asyncpg.Record:
    """Owner invites `email` as a contributor. Fails if an open row already exists for it."""
    await permissions.require(db, journey_id=journey_id, user_id=actor_id, capability=Capability.INVITE)
    email = email.strip().lower()

    existing = await crud_collaboration.find_open_invitation(db, journey_id, email)
    if existing is not None:
        logger.info(
            "Rejecting duplicate invite of %s to journey %s (existing row %s, status=%s)",
            email, journey_id, existing["id"], existing["status"],
        )
        raise DuplicateInvitationError()

    invitee = await crud_user.get_user_by_email(db, email)
    return await crud_collaboration.create_invitation(
        db,
        journey_id=journey_id,
        invitee_email=email,
        invitee_user_id=invitee["id"] if invitee else None,
        invited_by=actor_id,
        message=message,
    )


def _is_invitee(invitation: Mapping, user: Mapping) -> bool:
    if invitation["user_id"] is not None:
        return invitation["user_id"] == user["id"]
    user_email = (user.get("email") or "").lower()
    return bool(user_email) and invitation["invitee_email"] == user_email


async def respond(
    db: asyncpg.Connection,
    *,
    invitation_id: int,
    user: Mapping,
    decision: InvitationDecision,
) -> asyncpg.Record:
    """The invitee accepts or declines a pending invitation."""
    invitation = await crud_collaboration.get_collaborator_by_id(db, invitation_id)
    if invitation is None:
        raise NotFoundError("Invitation not found")
    if not _is_invitee(invitation, user):
        raise ForbiddenError("Only the invitee can respond to this invitation")
    if invitation["status"] != CollaboratorStatus.PENDING.value:
        raise InvalidTransitionError(f"Invitation already {invitation['status']}")

    updated = await crud_collaboration.set_invitation_response(
        db, invitation_id, status=decision.resulting_status, user_id=user["id"],
    )
    if updated is None:
        raise InvalidTransitionError("Invitation was already answered")

    logger.info(
        "User %s %s invitation %s to journey %s",
        user["id"], updated["status"], invitation_id, updated["journey_id"],
    )
    return updated


async def remove(
    db: asyncpg.Connection, *, journey_id: int, collaborator_id: int, actor_id: int
) -> None:
    """Owner removes a collaborator row. The owner's own row cannot be removed."""
    await permissions.require(
        db, journey_id=journey_id, user_id=actor_id, capability=Capability.REMOVE_COLLABORATOR,
    )
    target = await crud_collaboration.get_collaborator_by_id(db, collaborator_id)
    if target is None or target["journey_id"] != journey_id:
        raise NotFoundError("Collaborator not found")
    if target["role"] == Role.OWNER.value:
        raise ForbiddenError("Cannot remove the journey owner")

    if not await crud_collaboration.delete_collaborator(db, journey_id, collaborator_id):
        raise NotFoundError("Collaborator not found")
    logger.info("Owner %s removed collaborator %s from journey %s", actor_id, collaborator_id, journey_id)


async def list_collaborators(
    db: asyncpg.Connection, *, journey_id: int, actor_id: int
) -> List[asyncpg.Record]:
    await permissions.require(
        db, journey_id=journey_id, user_id=actor_id, capability=Capability.VIEW_COLLABORATORS,
    )
    return await crud_collaboration.get_collaborators(db, journey_id)


async def list_pending_invitations(db: asyncpg.Connection, *, user: Mapping) -> List[asyncpg.Record]:
    return await crud_collaboration.get_pending_invitations(db, user["id"], user.get("email") or "")
