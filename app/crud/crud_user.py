# app/crud/crud_user.py
import logging
from typing import Optional

import asyncpg

from app.crud.errors import DatabaseInteractionError

logger = logging.getLogger(__name__)


async def get_user_by_firebase_uid(
    db: asyncpg.Connection,
    firebase_uid: str,
) -> Optional[asyncpg.Record]:
    """Return the user row for a given Firebase UID, or None."""
    logger.debug("Fetching user by Firebase UID: %s", firebase_uid)
    try:
        return await db.fetchrow(
            "SELECT id, email, username, display_name, firebase_uid FROM users WHERE firebase_uid = $1",
            firebase_uid,
        )
    except Exception as e:
        logger.error("Error fetching user by Firebase UID %s: %s", firebase_uid, e, exc_info=True)
        raise DatabaseInteractionError("Database error fetching user by Firebase UID.") from e


async def get_user_by_email(db: asyncpg.Connection, email: str) -> Optional[asyncpg.Record]:
    """Fetches a user record by email (case-insensitive)."""
    logger.debug(f"Fetching user by email: {email}")
    query = "SELECT id, email, username, display_name FROM users WHERE lower(email) = lower($1)"
    try:
        return await db.fetchrow(query, email)
    except Exception as e:
        logger.error(f"Error fetching user by email {email}: {e}", exc_info=True)
        raise DatabaseInteractionError("Database error fetching user by email.") from e
