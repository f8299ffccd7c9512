# tests/utils.py

import os
from typing import Any, Dict, Optional

import asyncpg

# --- Direct DB Data Creation Helpers (for CRUD tests) ---
# These write through the test's `db_conn`; the fixture's rollback cleans up.


async def create_test_user_direct(
    db_conn: asyncpg.Connection, suffix: str, email: Optional[str] = None, with_email: bool = True
) -> Dict[str, Any]:
    """Insert a user row; `with_email=False` gives an account with no e-mail (phone sign-in)."""
    unique_part = os.urandom(3).hex()
    if with_email:
        email = email or f"test_{suffix}_{unique_part}@example.com"
    else:
        email = None
    rec = await db_conn.fetchrow(
        """
        INSERT INTO users (firebase_uid, email, username, display_name, created_at)
        VALUES ($1, $2, $3, $4, now())
        RETURNING id, firebase_uid, email, username, display_name
        """,
        f"test_fb_uid_{suffix}_{unique_part}",
        email,
        f"testuser_{suffix}_{unique_part}",
        f"Test User {suffix}",
    )
    return dict(rec)
