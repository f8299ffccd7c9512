# app/api/deps.py
import logging
from typing import AsyncGenerator

import asyncpg
from fastapi import Depends, HTTPException, Request, status

# Firebase Admin SDK (initialized in main.py)
from firebase_admin import auth as firebase_auth

from app.core.config import settings
from app.crud import crud_user
from app.db import base as db_base
from app.schemas.token import FirebaseTokenData

logger = logging.getLogger(__name__)

UNAUTH_TEXT = "Could not validate credentials"


class InvalidTokenError(Exception):
    """Raised when a Firebase ID token cannot be verified."""


# --- Database Dependency ---
async def get_db() -> AsyncGenerator[asyncpg.Connection, None]:
    """
    FastAPI dependency that provides an asyncpg connection from the pool.
    Handles acquiring and releasing the connection.
    """
    # Read through the module so a pool created after import is visible
    pool = db_base.db_pool
    if not pool:
        logger.error("Database pool is not available when trying to get connection.")
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Database service is not available.",
        )

    async with pool.acquire() as conn:
        yield conn


# --- Authentication Dependencies ---

def _unauthorized(detail: str = UNAUTH_TEXT) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


async def get_verified_token_data(request: Request) -> FirebaseTokenData:
    auth_header = request.headers.get("Authorization")

    # Header must exist and use the Bearer scheme
    if not auth_header:
        raise _unauthorized()
    try:
        scheme, token = auth_header.split(" ", 1)
    except ValueError:
        raise _unauthorized()
    if scheme.lower() != "bearer" or not token:
        raise _unauthorized()

    # Test runs send the raw Firebase UID instead of a signed JWT
    if settings.ENVIRONMENT == "test" and "." not in token:
        return FirebaseTokenData(uid=token)

    try:
        return await firebase_verify_token(token)
    except InvalidTokenError:
        raise _unauthorized("Invalid Firebase token")


async def get_current_user_record(
    db: asyncpg.Connection = Depends(get_db),
    token_data: FirebaseTokenData = Depends(get_verified_token_data),
) -> asyncpg.Record:
    """
    The `users` row behind the verified token. Pure lookup, no auto-create:
    raises 403 if the account is gone.
    """
    user_record = await crud_user.get_user_by_firebase_uid(db=db, firebase_uid=token_data.uid)
    if user_record is None:
        logger.warning("Token for unknown Firebase uid %s", token_data.uid)
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="User no longer exists",
        )
    return user_record


async def get_current_user_id(
    user_record: asyncpg.Record = Depends(get_current_user_record),
) -> int:
    return user_record["id"]


# ------------------------------------------------------------------
# Helper: verify a Firebase ID-token and return our Pydantic model
# ------------------------------------------------------------------
async def firebase_verify_token(token: str) -> FirebaseTokenData:
    """
    Verifies a Firebase ID token and converts the decoded claims into our
    FirebaseTokenData schema.  Raises InvalidTokenError on any failure so the
    caller can respond with 401.
    """
    try:
        claims = firebase_auth.verify_id_token(token)
    except Exception as exc:          # all errors → InvalidTokenError
        raise InvalidTokenError(str(exc)) from exc

    return FirebaseTokenData(
        uid=claims.get("uid") or claims.get("user_id"),
        email=claims.get("email"),
        name=claims.get("name"),
    )
