# app/crud/crud_notification.py
"""Aggregate queries behind GET /notifications and GET /notifications/details."""
import logging
from typing import Any, Dict

import asyncpg

from app.crud.errors import DatabaseInteractionError

logger = logging.getLogger(__name__)


async def get_notification_counts(
    db: asyncpg.Connection, user_id: int, email: str, window_days: int
) -> Dict[str, int]:
    """
    Badge counts for one user.

    Recent approvals/rejections only count rows that went through review, so an
    owner's own fast-pathed experiences never show up.
    """
    try:
        rec = await db.fetchrow(
            """
            SELECT
                (SELECT COUNT(*)
                   FROM journey_experiences je
                   JOIN journeys j ON j.id = je.journey_id
                  WHERE j.owner_id = $1 AND je.approval_status = 'pending') AS pending_suggestions,
                (SELECT COUNT(*)
                   FROM journey_collaborators jc
                  WHERE jc.status = 'pending'
                    AND (jc.user_id = $1 OR (jc.user_id IS NULL AND jc.invitee_email = lower($2)))) AS pending_invitations,
                (SELECT COUNT(*)
                   FROM journey_experiences je
                  WHERE je.suggested_by = $1 AND je.approval_status = 'approved'
                    AND je.reviewed_at >= now() - make_interval(days => $3)) AS recent_approvals,
                (SELECT COUNT(*)
                   FROM journey_experiences je
                  WHERE je.suggested_by = $1 AND je.approval_status = 'rejected'
                    AND je.reviewed_at >= now() - make_interval(days => $3)) AS recent_rejections
            """,
            user_id,
            email,
            window_days,
        )
        counts = {key: int(rec[key] or 0) for key in (
            "pending_suggestions", "pending_invitations", "recent_approvals", "recent_rejections",
        )}
        logger.debug("Notification counts for user %s: %s", user_id, counts)
        return counts
    except Exception as exc:  # pragma: no cover
        logger.error("Error computing notification counts for user %s: %s", user_id, exc, exc_info=True)
        raise DatabaseInteractionError("Database error fetching notifications.") from exc


async def get_notification_details(
    db: asyncpg.Connection, user_id: int, window_days: int, limit: int
) -> Dict[str, Any]:
    """Newest pending suggestions to review plus recent reviews of the user's own suggestions."""
    try:
        pending = await db.fetch(
            """
            SELECT je.id, je.journey_id, j.title AS journey_title, je.title,
                   u.username AS suggested_by_username, je.created_at AS suggested_at
            FROM journey_experiences je
            JOIN journeys j ON j.id = je.journey_id
            JOIN users u ON u.id = je.suggested_by
            WHERE j.owner_id = $1 AND je.approval_status = 'pending'
            ORDER BY je.created_at DESC, je.id DESC
            LIMIT $2
            """,
            user_id,
            limit,
        )
        responses = await db.fetch(
            """
            SELECT je.id, je.journey_id, j.title AS journey_title, je.title,
                   je.approval_status, je.reviewed_at AS responded_at
            FROM journey_experiences je
            JOIN journeys j ON j.id = je.journey_id
            WHERE je.suggested_by = $1
              AND je.approval_status IN ('approved', 'rejected')
              AND je.reviewed_at >= now() - make_interval(days => $2)
            ORDER BY je.reviewed_at DESC, je.id DESC
            LIMIT $3
            """,
            user_id,
            window_days,
            limit,
        )
        return {"pending_suggestions": pending, "recent_responses": responses}
    except Exception as exc:  # pragma: no cover
        logger.error("Error fetching notification details for user %s: %s", user_id, exc, exc_info=True)
        raise DatabaseInteractionError("Database error fetching notification details.") from exc
