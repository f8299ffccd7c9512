"""
CRUD helpers for journey experiences and their review metadata.

Owners and contributors share one table: an approved experience and a
suggestion are the same row, told apart only by `approval_status`.
"""
from __future__ import annotations

import json
import logging
from typing import Any, Dict, List, Optional

import asyncpg

from app.crud.errors import DatabaseInteractionError
from app.schemas import suggestion as suggestion_schemas
from app.schemas.suggestion import ApprovalStatus

logger = logging.getLogger(__name__)

_EXPERIENCE_COLUMNS = """
    je.id, je.journey_id, je.day, je.title, je.description, je.type, je.time,
    je.latitude, je.longitude, je.address, je.place_id, je.tags, je.notes,
    je.suggested_by, je.approval_status, je.reviewed_by, je.reviewed_at,
    je.review_notes, je.created_at, je.updated_at
"""

_RETURNING = """
    RETURNING id, journey_id, day, title, description, type, time, latitude, longitude,
              address, place_id, tags, notes, suggested_by, approval_status,
              reviewed_by, reviewed_at, review_notes, created_at, updated_at
"""


def _location_columns(location: Optional[suggestion_schemas.Location]) -> Dict[str, Any]:
    if location is None:
        return {"latitude": None, "longitude": None, "address": None, "place_id": None}
    return {
        "latitude": location.lat,
        "longitude": location.lng,
        "address": location.address,
        "place_id": location.place_id,
    }


async def create_experience(
    db: asyncpg.Connection,
    *,
    journey_id: int,
    suggestion_in: suggestion_schemas.SuggestionCreate,
    suggested_by: int,
    approval_status: ApprovalStatus,
) -> asyncpg.Record:
    """Insert an experience row with the given approval status."""
    loc = _location_columns(suggestion_in.location)
    try:
        rec = await db.fetchrow(
            f"""
            INSERT INTO journey_experiences
                (journey_id, day, title, description, type, time, latitude, longitude,
                 address, place_id, tags, notes, suggested_by, approval_status,
                 created_at, updated_at)
            VALUES ($1, $2, $3, $4, $5, $6, $7, $8, $9, $10, $11, $12, $13, $14, now(), now())
            {_RETURNING}
            """,
            journey_id,
            suggestion_in.day,
            suggestion_in.title,
            suggestion_in.description,
            suggestion_in.type,
            suggestion_in.time,
            loc["latitude"],
            loc["longitude"],
            loc["address"],
            loc["place_id"],
            json.dumps(suggestion_in.tags),
            suggestion_in.notes,
            suggested_by,
            approval_status.value,
        )
        if rec is None:
            raise DatabaseInteractionError("Insert returned no row.")
        logger.info(
            "Created experience %s on journey %s by user %s (%s)",
            rec["id"], journey_id, suggested_by, approval_status.value,
        )
        return rec
    except DatabaseInteractionError:
        raise
    except Exception as exc:  # pragma: no cover
        logger.error("Error creating experience: %s", exc, exc_info=True)
        raise DatabaseInteractionError("Database error creating experience.") from exc


async def get_experience_by_id(db: asyncpg.Connection, experience_id: int) -> Optional[asyncpg.Record]:
    try:
        return await db.fetchrow(
            f"SELECT {_EXPERIENCE_COLUMNS} FROM journey_experiences je WHERE je.id = $1",
            experience_id,
        )
    except Exception as exc:  # pragma: no cover
        logger.error("Error fetching experience %s: %s", experience_id, exc, exc_info=True)
        raise DatabaseInteractionError("Database error fetching experience.") from exc


async def get_approved_experiences(db: asyncpg.Connection, journey_id: int) -> List[asyncpg.Record]:
    """The itinerary: approved rows only, by day then time then creation."""
    try:
        return await db.fetch(
            f"""
            SELECT {_EXPERIENCE_COLUMNS}, u.username AS suggested_by_username
            FROM journey_experiences je
            LEFT JOIN users u ON u.id = je.suggested_by
            WHERE je.journey_id = $1 AND je.approval_status = 'approved'
            ORDER BY je.day ASC, je.time ASC NULLS LAST, je.created_at ASC, je.id ASC
            """,
            journey_id,
        )
    except Exception as exc:  # pragma: no cover
        logger.error("Error fetching approved experiences for journey %s: %s", journey_id, exc, exc_info=True)
        raise DatabaseInteractionError("Database error fetching experiences.") from exc


async def get_pending_suggestions(db: asyncpg.Connection, journey_id: int) -> List[asyncpg.Record]:
    """Review queue: pending rows oldest first."""
    try:
        return await db.fetch(
            f"""
            SELECT {_EXPERIENCE_COLUMNS}, u.username AS suggested_by_username
            FROM journey_experiences je
            JOIN users u ON u.id = je.suggested_by
            WHERE je.journey_id = $1 AND je.approval_status = 'pending'
            ORDER BY je.created_at ASC, je.id ASC
            """,
            journey_id,
        )
    except Exception as exc:  # pragma: no cover
        logger.error("Error fetching pending suggestions for journey %s: %s", journey_id, exc, exc_info=True)
        raise DatabaseInteractionError("Database error fetching suggestions.") from exc


async def get_user_suggestions(
    db: asyncpg.Connection,
    user_id: int,
    *,
    journey_id: Optional[int] = None,
    status: Optional[ApprovalStatus] = None,
) -> List[asyncpg.Record]:
    """The user's own suggestions (any status unless filtered), newest first."""
    try:
        return await db.fetch(
            f"""
            SELECT {_EXPERIENCE_COLUMNS}, u.username AS suggested_by_username
            FROM journey_experiences je
            JOIN users u ON u.id = je.suggested_by
            WHERE je.suggested_by = $1
              AND ($2::int IS NULL OR je.journey_id = $2)
              AND ($3::text IS NULL OR je.approval_status = $3)
            ORDER BY je.created_at DESC, je.id DESC
            """,
            user_id,
            journey_id,
            status.value if status else None,
        )
    except Exception as exc:  # pragma: no cover
        logger.error("Error fetching suggestions of user %s: %s", user_id, exc, exc_info=True)
        raise DatabaseInteractionError("Database error fetching your suggestions.") from exc


async def update_pending_suggestion(
    db: asyncpg.Connection,
    experience_id: int,
    *,
    suggested_by: int,
    suggestion_in: suggestion_schemas.SuggestionUpdate,
) -> Optional[asyncpg.Record]:
    """
    Apply the set fields to a row that is still pending and owned by `suggested_by`.

    Returns None when no such row exists (already reviewed, withdrawn, or not theirs).
    """
    fields = suggestion_in.model_dump(exclude_unset=True)
    if "location" in fields:
        fields.update(_location_columns(suggestion_in.location))
        del fields["location"]
    if "tags" in fields:
        fields["tags"] = json.dumps(fields["tags"] or [])

    if not fields:
        rec = await get_experience_by_id(db, experience_id)
        if rec and rec["suggested_by"] == suggested_by and rec["approval_status"] == ApprovalStatus.PENDING.value:
            return rec
        return None

    sets: list[str] = []
    params: list[Any] = []
    idx = 1
    for column, value in fields.items():
        sets.append(f"{column} = ${idx}")
        params.append(value)
        idx += 1

    params.extend([experience_id, suggested_by])
    try:
        return await db.fetchrow(
            f"""
            UPDATE journey_experiences
            SET {', '.join(sets)}, updated_at = now()
            WHERE id = ${idx} AND suggested_by = ${idx + 1} AND approval_status = 'pending'
            {_RETURNING}
            """,
            *params,
        )
    except Exception as exc:  # pragma: no cover
        logger.error("Error updating suggestion %s: %s", experience_id, exc, exc_info=True)
        raise DatabaseInteractionError("Database error updating suggestion.") from exc


async def delete_pending_suggestion(
    db: asyncpg.Connection, experience_id: int, *, suggested_by: int
) -> bool:
    """True if a pending row owned by `suggested_by` was deleted."""
    try:
        status = await db.execute(
            """
            DELETE FROM journey_experiences
            WHERE id = $1 AND suggested_by = $2 AND approval_status = 'pending'
            """,
            experience_id,
            suggested_by,
        )
        return int(status.split(" ")[1]) > 0
    except Exception as exc:  # pragma: no cover
        logger.error("Error deleting suggestion %s: %s", experience_id, exc, exc_info=True)
        raise DatabaseInteractionError("Database error deleting suggestion.") from exc


async def set_review_status(
    db: asyncpg.Connection,
    *,
    journey_id: int,
    experience_id: int,
    status: ApprovalStatus,
    reviewed_by: int,
    notes: Optional[str] = None,
) -> Optional[asyncpg.Record]:
    """
    Pending -> `status`, recording the reviewer.

    Guarded on approval_status = 'pending' so two owners racing cannot both win.
    """
    try:
        return await db.fetchrow(
            f"""
            UPDATE journey_experiences
            SET approval_status = $3, reviewed_by = $4, review_notes = $5,
                reviewed_at = now(), updated_at = now()
            WHERE id = $1 AND journey_id = $2 AND approval_status = 'pending'
            {_RETURNING}
            """,
            experience_id,
            journey_id,
            status.value,
            reviewed_by,
            notes,
        )
    except Exception as exc:  # pragma: no cover
        logger.error("Error reviewing suggestion %s: %s", experience_id, exc, exc_info=True)
        raise DatabaseInteractionError("Database error reviewing suggestion.") from exc
