"""
CRUD helpers for journeys.

A journey's owner is recorded twice: `journeys.owner_id` and a single
`journey_collaborators` row with role='owner'. Both are written together by
`create_journey`; nothing else ever inserts an owner row.
"""
from __future__ import annotations

import logging
from typing import List, Optional

import asyncpg

from app.crud.errors import DatabaseInteractionError
from app.schemas import journey as journey_schemas

logger = logging.getLogger(__name__)


async def create_journey(
    db: asyncpg.Connection, journey_in: journey_schemas.JourneyCreate, owner_id: int
) -> asyncpg.Record:
    """Insert the journey plus its owner collaborator row; returns the journey row."""
    try:
        async with db.transaction():
            rec = await db.fetchrow(
                """
                INSERT INTO journeys (title, description, destination, start_date, end_date, owner_id, created_at)
                VALUES ($1, $2, $3, $4, $5, $6, now())
                RETURNING id, title, description, destination, start_date, end_date, owner_id, created_at
                """,
                journey_in.title,
                journey_in.description,
                journey_in.destination,
                journey_in.start_date,
                journey_in.end_date,
                owner_id,
            )
            if rec is None:
                raise DatabaseInteractionError("Insert returned no row.")

            await db.execute(
                """
                INSERT INTO journey_collaborators
                    (journey_id, user_id, invitee_email, role, status, invited_by, invited_at, responded_at)
                SELECT $1, u.id, lower(u.email), 'owner', 'accepted', u.id, now(), now()
                FROM users u WHERE u.id = $2
                """,
                rec["id"],
                owner_id,
            )

        logger.info("Created journey %s for owner %s", rec["id"], owner_id)
        return rec

    except DatabaseInteractionError:
        raise
    except Exception as exc:  # pragma: no cover
        logger.error("Unexpected error creating journey: %s", exc, exc_info=True)
        raise DatabaseInteractionError("Database error creating journey.") from exc


async def get_journey_by_id(db: asyncpg.Connection, journey_id: int) -> Optional[asyncpg.Record]:
    """Fetch a journey row by primary key; returns `None` if absent."""
    try:
        return await db.fetchrow(
            """
            SELECT id, title, description, destination, start_date, end_date, owner_id, created_at
            FROM journeys WHERE id = $1
            """,
            journey_id,
        )
    except Exception as exc:  # pragma: no cover
        logger.error("Error fetching journey %s: %s", journey_id, exc, exc_info=True)
        raise DatabaseInteractionError("Database error fetching journey by ID.") from exc


async def get_user_journeys(db: asyncpg.Connection, user_id: int) -> List[asyncpg.Record]:
    """Journeys the user owns or has accepted an invitation to, newest first."""
    try:
        return await db.fetch(
            """
            SELECT j.id, j.title, j.description, j.destination, j.start_date, j.end_date,
                   j.owner_id, j.created_at, jc.role
            FROM journeys j
            JOIN journey_collaborators jc ON jc.journey_id = j.id
            WHERE jc.user_id = $1 AND jc.status = 'accepted'
            ORDER BY j.created_at DESC, j.id DESC
            """,
            user_id,
        )
    except Exception as exc:  # pragma: no cover
        logger.error("Error listing journeys for user %s: %s", user_id, exc, exc_info=True)
        raise DatabaseInteractionError("Database error fetching journeys.") from exc
