"""
FastAPI application entry point.
"""

import logging
import uuid
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from teamchat.db import close_db, init_db
from teamchat.errors import ChatError, ConfigurationError
from teamchat.routers import auth, channels, messages, organizations, realtime, workspaces
from teamchat.settings import settings

# Configure logging
logging.basicConfig(
    level=getattr(logging, settings.log_level.upper()),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s" if settings.log_format == "text" else None,
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan events."""
    logger.info(f"Starting {settings.app_name}...")
    if not settings.jwt_secret:
        logger.error("JWT_SECRET is not set; authenticated endpoints will fail")
    await init_db()
    yield
    logger.info(f"Shutting down {settings.app_name}...")
    await close_db()


# Create FastAPI app
app = FastAPI(
    title=settings.app_name,
    version=settings.app_version,
    debug=settings.debug,
    lifespan=lifespan,
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# Request ID middleware
@app.middleware("http")
async def add_request_id(request: Request, call_next):
    """Add request ID to all requests for logging."""
    request_id = request.headers.get("X-Request-ID", str(uuid.uuid4()))
    request.state.request_id = request_id
    response = await call_next(request)
    response.headers["X-Request-ID"] = request_id
    return response


# Health check endpoint
@app.get("/health", tags=["health"])
async def health():
    """Health check endpoint for load balancers."""
    return {"success": True, "status": "healthy", "version": settings.app_version}


# Include routers
app.include_router(auth.router)
app.include_router(organizations.router)
app.include_router(workspaces.router)
app.include_router(channels.router)
app.include_router(messages.router)
app.include_router(realtime.router)


def error_response(message: str, status_code: int) -> JSONResponse:
    return JSONResponse({"success": False, "error": message}, status_code=status_code)


@app.exception_handler(ChatError)
async def chat_error_handler(request: Request, exc: ChatError):
    """Render domain errors as the JSON error envelope."""
    if isinstance(exc, ConfigurationError):
        logger.error(f"Configuration error on {request.method} {request.url.path}: {exc.message}")
    elif exc.status_code >= 500:
        logger.error(f"{type(exc).__name__} on {request.method} {request.url.path}: {exc.message}")
    else:
        logger.info(f"{exc.status_code} on {request.method} {request.url.path}: {exc.message}")
    return error_response(exc.message, exc.status_code)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Report malformed input as a 400 naming the first offending field."""
    errors = exc.errors()
    if not errors:
        return error_response("Invalid request", 400)
    first = errors[0]
    field = ".".join(str(part) for part in first.get("loc", ()) if part not in ("body", "query", "path"))
    message = f"Invalid {field}: {first.get('msg')}" if field else f"Invalid request: {first.get('msg')}"
    return error_response(message, 400)


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    return error_response(str(exc.detail), exc.status_code)


# Generic exception handler for unhandled errors
@app.exception_handler(Exception)
async def generic_exception_handler(request: Request, exc: Exception):
    logger.exception(f"Unhandled exception on {request.method} {request.url.path}: {exc}")
    return error_response("Internal Server Error", 500)
