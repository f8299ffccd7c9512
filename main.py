# main.py
import os
import uuid  # Request IDs
from contextlib import asynccontextmanager

import asyncpg
import firebase_admin
import sentry_sdk
from fastapi import FastAPI, HTTPException, Request, Response, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from firebase_admin import credentials
from sentry_sdk.integrations.asyncpg import AsyncPGIntegration
from sentry_sdk.integrations.fastapi import FastApiIntegration
from sentry_sdk.integrations.starlette import StarletteIntegration
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from app.core.rate_limit import limiter

# --- Core App Imports ---
from app.core.config import settings, BASE_DIR  # Centralized settings
# Import the logging setup module early to configure logging before other imports
import app.core.logging

logger = app.core.logging.get_logger(__name__)

from app.core.errors import CollaborationError
from app.crud.errors import DatabaseInteractionError
from app.db.base import close_db_pool, init_db_pool  # DB Pool management
# --- API Router Imports ---
from app.api.endpoints import collaborators as collaborators_router
from app.api.endpoints import invitations as invitations_router
from app.api.endpoints import journeys as journeys_router
from app.api.endpoints import notifications as notifications_router
from app.api.endpoints import suggestions as suggestions_router

logger.info(f"Starting application in {settings.ENVIRONMENT} mode...")

# --- Sentry Initialization ---
if settings.SENTRY_DSN and settings.ENVIRONMENT not in ("development", "test"):
    try:
        logger.info("Initializing Sentry...")
        sentry_sdk.init(
            dsn=settings.SENTRY_DSN,
            traces_sample_rate=0.2,  # Sample 20% of transactions in production
            profiles_sample_rate=0.1,
            environment=settings.ENVIRONMENT,
            integrations=[
                StarletteIntegration(),
                FastApiIntegration(),
                AsyncPGIntegration(),
            ],
            send_default_pii=False,
        )
        logger.info(f"Sentry initialized successfully for environment: {settings.ENVIRONMENT}")
    except Exception as e:
        logger.error(f"Failed to initialize Sentry: {e}", exc_info=True)
else:
    logger.warning("Sentry DSN not found or ENVIRONMENT is development/test, Sentry integration disabled.")

# --- Firebase Admin SDK Initialization ---
try:
    # Tests authenticate with raw UIDs (see app.api.deps); the real SDK is not needed.
    if settings.ENVIRONMENT == "test":
        logger.warning("Skipping Firebase Admin SDK initialization in 'test' environment. Auth will be mocked.")
    elif not firebase_admin._apps:
        cred_path = os.path.join(BASE_DIR, settings.FIREBASE_SERVICE_ACCOUNT_KEY_PATH)
        logger.info(f"Attempting to load Firebase credentials from: {cred_path}")

        if not os.path.exists(cred_path):
            logger.critical(f"Firebase service account key not found at: {cred_path}")
            raise FileNotFoundError(f"Service account key not found: {cred_path}")

        firebase_admin.initialize_app(credentials.Certificate(cred_path))
        logger.info("Firebase Admin SDK initialized successfully.")
    else:
        logger.info("Firebase Admin SDK already initialized.")
except Exception as e:
    logger.critical(f"CRITICAL: Failed during Firebase Admin SDK setup: {e}", exc_info=True)
    raise RuntimeError("Could not initialize Firebase Admin SDK.") from e


# --- Lifespan Manager (Handles DB Pool) ---
@asynccontextmanager
async def lifespan(app: FastAPI):
    """Handles application startup and shutdown events."""
    # Tests swap the CRUD layer for in-memory fakes; no pool is opened.
    if settings.ENVIRONMENT == "test":
        logger.warning("Test environment detected. Skipping lifespan DB pool management.")
        yield
        return

    logger.info("Application startup sequence initiated...")
    try:
        await init_db_pool()
    except Exception as e:
        logger.critical(f"Failed to initialize DB pool during startup: {e}", exc_info=True)
        raise

    logger.info("Application startup complete.")
    yield  # Application runs here
    logger.info("Application shutdown sequence initiated...")
    await close_db_pool()
    logger.info("Application shutdown complete.")


# --- FastAPI App Instance ---
app = FastAPI(
    title="Journey Collaboration API",
    version="1.0.0",
    lifespan=lifespan,
)

# --- Rate Limiting ---
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)


# --- Middleware ---
@app.middleware("http")
async def log_request_middleware(request: Request, call_next):
    """Logs basic request and response info and adds/uses a request ID."""
    request_id = request.headers.get("x-request-id", str(uuid.uuid4()))
    request.state.request_id = request_id

    logger.info(f"RID:{request_id} START Request: {request.method} {request.url.path}")
    response: Response = await call_next(request)
    response.headers["X-Request-ID"] = request_id
    logger.info(f"RID:{request_id} END Request: {request.method} {request.url.path} Status: {response.status_code}")
    return response


@app.middleware("http")
async def add_security_headers(request: Request, call_next):
    """Adds basic security headers to responses."""
    response: Response = await call_next(request)
    response.headers["X-Content-Type-Options"] = "nosniff"
    response.headers["X-Frame-Options"] = "DENY"
    return response


# --- Global Exception Handlers ---
@app.exception_handler(CollaborationError)
async def collaboration_exception_handler(request: Request, exc: CollaborationError):
    """Domain errors carry their own status and a machine-readable code the client maps back."""
    request_id = getattr(request.state, "request_id", "N/A")
    logger.warning(
        f"RID:{request_id} {type(exc).__name__}: Status={exc.status_code}, Detail={exc.detail} "
        f"for {request.method} {request.url.path}"
    )
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.detail, "code": exc.code},
    )


@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException):
    """Custom handler for HTTPExceptions to ensure consistent JSON format."""
    request_id = getattr(request.state, "request_id", "N/A")
    logger.warning(f"RID:{request_id} HTTPException: Status={exc.status_code}, Detail={exc.detail} for {request.method} {request.url.path}")
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.detail},
        headers=exc.headers,
    )


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    request_id = getattr(request.state, "request_id", "N/A")
    errors = jsonable_encoder(exc.errors())
    logger.error(
        f"RID:{request_id} Validation error for request {request.method} {request.url}: {errors}",
        exc_info=False,
    )
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={"detail": "Validation Error", "errors": errors},
    )


@app.exception_handler(DatabaseInteractionError)
async def db_interaction_exception_handler(request: Request, exc: DatabaseInteractionError):
    request_id = getattr(request.state, "request_id", "N/A")
    logger.error(f"RID:{request_id} Database interaction error for {request.method} {request.url}: {exc}", exc_info=True)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": str(exc) or "A database error occurred processing your request."},
    )


@app.exception_handler(asyncpg.PostgresError)
async def db_exception_handler(request: Request, exc: asyncpg.PostgresError):
    """Handles database errors, logging details and returning a generic 500."""
    request_id = getattr(request.state, "request_id", "N/A")
    logger.error(f"RID:{request_id} Database error during request {request.method} {request.url}: SQLSTATE={exc.sqlstate} - {exc}", exc_info=True)
    if isinstance(exc, asyncpg.exceptions.UniqueViolationError):
        return JSONResponse(status_code=status.HTTP_409_CONFLICT, content={"detail": "A related resource already exists or there is a conflict."})
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": "A database error occurred processing your request."},
    )


@app.exception_handler(Exception)
async def generic_exception_handler(request: Request, exc: Exception):
    """Handles any other unexpected errors."""
    request_id = getattr(request.state, "request_id", "N/A")
    logger.error(f"RID:{request_id} Unhandled exception during request {request.method} {request.url}: {type(exc).__name__} - {exc}", exc_info=True)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": "An internal server error occurred."},
    )


# --- Include API Routers ---
app.include_router(journeys_router.router, prefix=settings.API_V1_STR)
app.include_router(collaborators_router.router, prefix=settings.API_V1_STR)
app.include_router(invitations_router.router, prefix=settings.API_V1_STR)
app.include_router(suggestions_router.router, prefix=settings.API_V1_STR)
app.include_router(notifications_router.router, prefix=settings.API_V1_STR)


# --- Root Endpoint ---
@app.get("/", include_in_schema=False)
async def read_root():
    """Provides a simple welcome message at the root."""
    return {"message": f"Welcome to the {app.title}!"}

# Run with: uvicorn main:app --reload --host 0.0.0.0 --port 8000
