# main.py
import os
import uuid
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

from app.core.config import settings, BASE_DIR
# Configure logging before the rest of the app is imported
import app.core.logging
from app.core.rate_limit import limiter

logger = app.core.logging.get_logger(__name__)

from app.db.base import PoolExhaustedError, close_db_pool, init_db_pool
from app.api.endpoints import contributors as contributors_router
from app.api.endpoints import lists as lists_router

logger.info("Starting application in %s mode...", settings.ENVIRONMENT)

# --- Sentry Initialization ---
if settings.SENTRY_DSN and settings.ENVIRONMENT != "development":
    try:
        sentry_sdk.init(
            dsn=settings.SENTRY_DSN,
            traces_sample_rate=0.2,
            profiles_sample_rate=0.1,
            environment=settings.ENVIRONMENT,
            integrations=[
                StarletteIntegration(),
                FastApiIntegration(),
                AsyncPGIntegration(),
            ],
            send_default_pii=False,
        )
        logger.info("Sentry initialized for environment: %s", settings.ENVIRONMENT)
    except Exception as e:
        logger.error("Failed to initialize Sentry: %s", e, exc_info=True)
else:
    logger.warning("Sentry DSN not found or ENVIRONMENT is development, Sentry integration disabled.")

# --- Firebase Admin SDK Initialization ---
if settings.ENVIRONMENT == "test":
    logger.warning("Skipping Firebase Admin SDK initialization in 'test' environment.")
elif not firebase_admin._apps:
    cred_path = os.path.join(BASE_DIR, settings.FIREBASE_SERVICE_ACCOUNT_KEY_PATH)
    logger.info("Loading Firebase credentials from: %s", cred_path)
    if not os.path.exists(cred_path):
        logger.critical("Firebase service account key not found at: %s", cred_path)
        raise RuntimeError(f"Could not initialize Firebase Admin SDK: {cred_path} is missing.")
    firebase_admin.initialize_app(credentials.Certificate(cred_path))
    logger.info("Firebase Admin SDK initialized successfully.")


# --- Lifespan Manager (Handles DB Pool) ---
@asynccontextmanager
async def lifespan(app: FastAPI):
    """Opens the DB pool on startup and closes it on shutdown."""
    # Tests override the DB dependencies instead
    if settings.ENVIRONMENT == "test":
        logger.warning("Test environment detected. Skipping lifespan DB pool management.")
        yield
        return

    logger.info("Application startup sequence initiated...")
    await init_db_pool()
    logger.info("Application startup complete.")
    yield
    logger.info("Application shutdown sequence initiated...")
    await close_db_pool()
    logger.info("Application shutdown complete.")


app = FastAPI(
    title="User Lists API",
    version="1.0.0",
    lifespan=lifespan,
)

# --- Rate Limiting ---
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)


# --- Middleware ---
@app.middleware("http")
async def log_request_middleware(request: Request, call_next):
    """Logs request start/end and tags both request and response with an ID."""
    request_id = request.headers.get("x-request-id", str(uuid.uuid4()))
    request.state.request_id = request_id

    logger.info("RID:%s START Request: %s %s", request_id, request.method, request.url.path)
    try:
        response: Response = await call_next(request)
    except Exception as e:
        logger.error("RID:%s Error during request %s: %s", request_id, request.url.path, e, exc_info=True)
        raise
    response.headers["X-Request-ID"] = request_id
    logger.info(
        "RID:%s END Request: %s %s Status: %s",
        request_id, request.method, request.url.path, response.status_code,
    )
    return response


@app.middleware("http")
async def add_security_headers(request: Request, call_next):
    """Adds basic security headers to responses."""
    response: Response = await call_next(request)
    response.headers["X-Content-Type-Options"] = "nosniff"
    response.headers["X-Frame-Options"] = "DENY"
    return response


# --- Global Exception Handlers ---
@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException):
    """Consistent JSON body for every HTTPException."""
    request_id = getattr(request.state, "request_id", "N/A")
    logger.warning(
        "RID:%s HTTPException: Status=%s, Detail=%s for %s %s",
        request_id, exc.status_code, exc.detail, request.method, request.url.path,
    )
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.detail},
        headers=exc.headers,
    )


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Malformed ids, bodies and pagination bounds are all reported as 400."""
    request_id = getattr(request.state, "request_id", "N/A")
    errors = jsonable_encoder(exc.errors())
    logger.warning("RID:%s Validation error for request %s %s: %s", request_id, request.method, request.url, errors)
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"detail": "Validation Error", "errors": errors},
    )


@app.exception_handler(asyncpg.PostgresError)
async def db_exception_handler(request: Request, exc: asyncpg.PostgresError):
    """Database errors that escaped the CRUD layer; never leak details."""
    request_id = getattr(request.state, "request_id", "N/A")
    logger.error(
        "RID:%s Database error during request %s %s: SQLSTATE=%s - %s",
        request_id, request.method, request.url, exc.sqlstate, exc,
        exc_info=True,
    )
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": "A database error occurred processing your request."},
    )


@app.exception_handler(PoolExhaustedError)
async def pool_exhausted_handler(request: Request, exc: PoolExhaustedError):
    """Every pooled connection stayed busy past DB_ACQUIRE_TIMEOUT."""
    request_id = getattr(request.state, "request_id", "N/A")
    logger.error("RID:%s %s for %s %s", request_id, exc, request.method, request.url.path)
    return JSONResponse(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        content={"detail": "Database service is busy, try again later."},
    )


@app.exception_handler(Exception)
async def generic_exception_handler(request: Request, exc: Exception):
    """Handles any other unexpected errors."""
    request_id = getattr(request.state, "request_id", "N/A")
    logger.error(
        "RID:%s Unhandled exception during request %s %s: %s - %s",
        request_id, request.method, request.url, type(exc).__name__, exc,
        exc_info=True,
    )
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": "An internal server error occurred."},
    )


# --- Include API Routers ---
# Contributors first: GET /lists/contributors must win over GET /lists/{list_id}
app.include_router(contributors_router.router, prefix=f"{settings.API_V1_STR}/lists")
app.include_router(lists_router.router, prefix=f"{settings.API_V1_STR}/lists")

# Run with: uvicorn main:app --reload --host 0.0.0.0 --port 8000
