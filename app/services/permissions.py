"""
Role resolution and capability checks for journey collaboration.

Every invitation / suggestion operation starts with `require(...)`: the
caller's role on the journey is resolved once and checked against the
capability table below. A user with a pending or declined invitation has no
role at all.
"""
from __future__ import annotations

import logging
from enum import Enum
from typing import Dict, FrozenSet, Optional

import asyncpg

from app.core.errors import ForbiddenError, NotFoundError
from app.crud import crud_collaboration, crud_journey
from app.schemas.collaboration import CollaboratorStatus, Role

logger = logging.getLogger(__name__)


class Capability(str, Enum):
    VIEW_JOURNEY = "view_journey"
    VIEW_COLLABORATORS = "view_collaborators"
    INVITE = "invite"
    REMOVE_COLLABORATOR = "remove_collaborator"
    PROPOSE = "propose"
    VIEW_PENDING_SUGGESTIONS = "view_pending_suggestions"
    REVIEW = "review"
    EDIT_OWN_SUGGESTION = "edit_own_suggestion"


CAPABILITIES: Dict[Role, FrozenSet[Capability]] = {
    Role.OWNER: frozenset({
        Capability.VIEW_JOURNEY,
        Capability.VIEW_COLLABORATORS,
        Capability.INVITE,
        Capability.REMOVE_COLLABORATOR,
        Capability.PROPOSE,
        Capability.VIEW_PENDING_SUGGESTIONS,
        Capability.REVIEW,
    }),
    Role.CONTRIBUTOR: frozenset({
        Capability.VIEW_JOURNEY,
        Capability.VIEW_COLLABORATORS,
        Capability.PROPOSE,
        Capability.EDIT_OWN_SUGGESTION,
    }),
}

_DENIED_MESSAGES = {
    Capability.INVITE: "Only journey owners can invite collaborators",
    Capability.REMOVE_COLLABORATOR: "Only journey owners can remove collaborators",
    Capability.VIEW_PENDING_SUGGESTIONS: "Only journey owners can view suggestions",
    Capability.REVIEW: "Only journey owners can approve/reject suggestions",
    Capability.EDIT_OWN_SUGGESTION: "Only contributors can change their suggestions",
}


async def resolve_role(db: asyncpg.Connection, journey_id: int, user_id: int) -> Optional[Role]:
    """Role of `user_id` on `journey_id`, None if they have no accepted membership."""
    journey = await crud_journey.get_journey_by_id(db, journey_id)
    if journey is None:
        raise NotFoundError("Journey not found")
    if journey["owner_id"] == user_id:
        return Role.OWNER

    membership = await crud_collaboration.get_membership(db, journey_id, user_id)
    if membership is None or membership["status"] != CollaboratorStatus.ACCEPTED.value:
        return None
    return Role(membership["role"])


def check(role: Optional[Role], capability: Capability) -> None:
    """Raise ForbiddenError unless `role` grants `capability`."""
    if role is None:
        raise ForbiddenError("Access denied to this journey")
    if capability not in CAPABILITIES[role]:
        raise ForbiddenError(_DENIED_MESSAGES.get(capability))


async def require(
    db: asyncpg.Connection, *, journey_id: int, user_id: int, capability: Capability
) -> Role:
    role = await resolve_role(db, journey_id, user_id)
    try:
        check(role, capability)
    except ForbiddenError:
        logger.warning(
            "User %s (role=%s) denied %s on journey %s",
            user_id, role.value if role else None, capability.value, journey_id,
        )
        raise
    return role
