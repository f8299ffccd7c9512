"""
CRUD helpers for journey collaborators and invitations.

An invitation *is* a `journey_collaborators` row in status 'pending'. Rows are
addressed by `invitee_email` (lower-cased) so an invitation can exist before
the invitee has an account; `user_id` is bound when they respond.

Every public function:
• takes an `asyncpg.Connection`
• returns plain records / bool or raises a custom error
• never commits/rolls back – the calling layer controls transactions
"""
from __future__ import annotations

import logging
from typing import List, Optional

import asyncpg

from app.core.errors import DuplicateInvitationError
from app.crud.errors import DatabaseInteractionError
from app.schemas.collaboration import CollaboratorStatus, Role

logger = logging.getLogger(__name__)

_COLLABORATOR_COLUMNS = """
    jc.id, jc.journey_id, jc.user_id, jc.invitee_email, jc.role, jc.status,
    jc.message, jc.invited_by, jc.invited_at, jc.responded_at
"""


async def get_membership(
    db: asyncpg.Connection, journey_id: int, user_id: int
) -> Optional[asyncpg.Record]:
    """
    The user's current collaborator row on `journey_id`.

    A user may have declined rows next to a newer one; non-declined rows win,
    then the most recent invitation.
    """
    try:
        return await db.fetchrow(
            f"""
            SELECT {_COLLABORATOR_COLUMNS}
            FROM journey_collaborators jc
            WHERE jc.journey_id = $1 AND jc.user_id = $2
            ORDER BY (jc.status = 'declined'), jc.invited_at DESC, jc.id DESC
            LIMIT 1
            """,
            journey_id,
            user_id,
        )
    except Exception as exc:  # pragma: no cover
        logger.error("Error reading membership of user %s on journey %s: %s", user_id, journey_id, exc, exc_info=True)
        raise DatabaseInteractionError("Database error fetching membership.") from exc


async def get_collaborator_by_id(db: asyncpg.Connection, collaborator_id: int) -> Optional[asyncpg.Record]:
    try:
        return await db.fetchrow(
            f"SELECT {_COLLABORATOR_COLUMNS} FROM journey_collaborators jc WHERE jc.id = $1",
            collaborator_id,
        )
    except Exception as exc:  # pragma: no cover
        logger.error("Error fetching collaborator %s: %s", collaborator_id, exc, exc_info=True)
        raise DatabaseInteractionError("Database error fetching collaborator.") from exc


async def get_collaborators(db: asyncpg.Connection, journey_id: int) -> List[asyncpg.Record]:
    """All collaborator rows of a journey, owner first, then by invitation time."""
    try:
        return await db.fetch(
            f"""
            SELECT {_COLLABORATOR_COLUMNS}, u.username
            FROM journey_collaborators jc
            LEFT JOIN users u ON u.id = jc.user_id
            WHERE jc.journey_id = $1
            ORDER BY (jc.role = 'owner') DESC, jc.invited_at ASC, jc.id ASC
            """,
            journey_id,
        )
    except Exception as exc:  # pragma: no cover
        logger.error("Error listing collaborators of journey %s: %s", journey_id, exc, exc_info=True)
        raise DatabaseInteractionError("Database error fetching collaborators.") from exc


async def find_open_invitation(
    db: asyncpg.Connection, journey_id: int, email: str
) -> Optional[asyncpg.Record]:
    """A pending or accepted row for `email` on `journey_id` (the owner's row included)."""
    try:
        return await db.fetchrow(
            f"""
            SELECT {_COLLABORATOR_COLUMNS}
            FROM journey_collaborators jc
            WHERE jc.journey_id = $1 AND jc.invitee_email = lower($2) AND jc.status <> 'declined'
            LIMIT 1
            """,
            journey_id,
            email,
        )
    except Exception as exc:  # pragma: no cover
        logger.error("Error looking up invitation for %s on journey %s: %s", email, journey_id, exc, exc_info=True)
        raise DatabaseInteractionError("Database error looking up invitation.") from exc


async def create_invitation(
    db: asyncpg.Connection,
    *,
    journey_id: int,
    invitee_email: str,
    invitee_user_id: Optional[int],
    invited_by: int,
    message: Optional[str] = None,
) -> asyncpg.Record:
    """Insert a pending contributor row. Raises DuplicateInvitationError on the open-invite unique index."""
    try:
        rec = await db.fetchrow(
            """
            INSERT INTO journey_collaborators
                (journey_id, user_id, invitee_email, role, status, message, invited_by, invited_at)
            VALUES ($1, $2, lower($3), $4, $5, $6, $7, now())
            RETURNING id, journey_id, user_id, invitee_email, role, status,
                      message, invited_by, invited_at, responded_at
            """,
            journey_id,
            invitee_user_id,
            invitee_email,
            Role.CONTRIBUTOR.value,
            CollaboratorStatus.PENDING.value,
            message,
            invited_by,
        )
        if rec is None:
            raise DatabaseInteractionError("Insert returned no row.")
        logger.info("Invited %s to journey %s (collaborator %s)", invitee_email, journey_id, rec["id"])
        return rec
    except asyncpg.exceptions.UniqueViolationError as exc:
        # Lost a race against a concurrent invite for the same email
        logger.warning("Duplicate invitation for %s on journey %s: %s", invitee_email, journey_id, exc)
        raise DuplicateInvitationError() from exc
    except DatabaseInteractionError:
        raise
    except Exception as exc:  # pragma: no cover
        logger.error("Error creating invitation: %s", exc, exc_info=True)
        raise DatabaseInteractionError("Database error creating invitation.") from exc


async def set_invitation_response(
    db: asyncpg.Connection,
    invitation_id: int,
    *,
    status: CollaboratorStatus,
    user_id: int,
) -> Optional[asyncpg.Record]:
    """
    Move a pending row to `status` and bind the responding user.

    Returns None when the row is no longer pending (someone answered first).
    """
    try:
        return await db.fetchrow(
            """
            UPDATE journey_collaborators
            SET status = $2, user_id = $3, responded_at = now()
            WHERE id = $1 AND status = 'pending'
            RETURNING id, journey_id, user_id, invitee_email, role, status,
                      message, invited_by, invited_at, responded_at
            """,
            invitation_id,
            status.value,
            user_id,
        )
    except Exception as exc:  # pragma: no cover
        logger.error("Error responding to invitation %s: %s", invitation_id, exc, exc_info=True)
        raise DatabaseInteractionError("Database error responding to invitation.") from exc


async def delete_collaborator(db: asyncpg.Connection, journey_id: int, collaborator_id: int) -> bool:
    """Remove a non-owner collaborator row; True if a row was deleted."""
    try:
        status = await db.execute(
            "DELETE FROM journey_collaborators WHERE id = $1 AND journey_id = $2 AND role <> 'owner'",
            collaborator_id,
            journey_id,
        )
        return int(status.split(" ")[1]) > 0
    except Exception as exc:  # pragma: no cover
        logger.error("Error removing collaborator %s: %s", collaborator_id, exc, exc_info=True)
        raise DatabaseInteractionError("Database error removing collaborator.") from exc


async def get_pending_invitations(
    db: asyncpg.Connection, user_id: int, email: str
) -> List[asyncpg.Record]:
    """Pending invitations addressed to the user by id or (pre-signup) by email, newest first."""
    try:
        return await db.fetch(
            """
            SELECT jc.id, jc.journey_id, j.title AS journey_title, jc.role, jc.status,
                   jc.message, jc.invited_by, inviter.username AS invited_by_username, jc.invited_at
            FROM journey_collaborators jc
            JOIN journeys j ON j.id = jc.journey_id
            JOIN users inviter ON inviter.id = jc.invited_by
            WHERE jc.status = 'pending'
              AND (jc.user_id = $1 OR (jc.user_id IS NULL AND jc.invitee_email = lower($2)))
            ORDER BY jc.invited_at DESC, jc.id DESC
            """,
            user_id,
            email,
        )
    except Exception as exc:  # pragma: no cover
        logger.error("Error fetching pending invitations for user %s: %s", user_id, exc, exc_info=True)
        raise DatabaseInteractionError("Database error fetching pending invitations.") from exc
