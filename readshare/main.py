"""Main FastAPI application."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from readshare.api.friend_routes import router as friends_router
from readshare.api.profile_routes import router as profiles_router
from readshare.api.quote_routes import router as quotes_router
from readshare.api.review_routes import router as reviews_router
from readshare.api.routes import router as reading_records_router
from readshare.api.schemas import ErrorResponse
from readshare.core.config import settings
from readshare.domain.commands import format_validation_error
from readshare.domain.errors import AuthError, ReadShareError
from readshare.infrastructure.database.connection import init_db

# Configure logging
logging.basicConfig(
    level=settings.log_level,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan events."""
    logger.info("Starting ReadShare application (store: %s)", settings.store_backend)
    if settings.store_backend == "postgres":
        await init_db()
        logger.info("Database initialized")
    yield
    logger.info("Shutting down ReadShare application")


app = FastAPI(
    title="ReadShare",
    description="Social reading ledger: reading logs shared with friends",
    version="1.0.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ---------------------------------------------------------------------------
# Error envelope
# ---------------------------------------------------------------------------
def _error(status_code: int, message: str, headers=None) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=ErrorResponse(error=message).model_dump(),
        headers=headers,
    )


@app.exception_handler(ReadShareError)
async def readshare_error_handler(request: Request, exc: ReadShareError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    headers = {"WWW-Authenticate": "Bearer"} if isinstance(exc, AuthError) else None
    return _error(exc.status_code, exc.message, headers=headers)


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    return _error(400, format_validation_error(exc))


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    return _error(exc.status_code, str(exc.detail), headers=getattr(exc, "headers", None))


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error(f"Unhandled error on {request.method} {request.url.path}: {exc}", exc_info=True)
    return _error(500, "Internal server error")


app.include_router(reading_records_router)
app.include_router(friends_router)
app.include_router(quotes_router)
app.include_router(reviews_router)
app.include_router(profiles_router)


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "healthy"}
