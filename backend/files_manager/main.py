"""FastAPI application entry point."""

import logging
from contextlib import asynccontextmanager
from typing import Annotated

from fastapi import Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from sqlalchemy.ext.asyncio import AsyncSession

from files_manager.auth.dependencies import get_session_store
from files_manager.auth.sessions import SessionStore
from files_manager.config import get_settings
from files_manager.db import session as db
from files_manager.db.redis import close_redis
from files_manager.errors import FilesManagerError
from files_manager.files.dependencies import get_registry
from files_manager.files.registry import FileRegistry
from files_manager.files.routes import router as files_router
from files_manager.limiter import limiter
from files_manager.logging_setup import setup_logging
from files_manager.users.routes import router as users_router
from files_manager.users.service import count_users

log = logging.getLogger(__name__)

setup_logging("api")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Create tables on startup; close the Redis client on shutdown."""
    log.info("Startup: initializing database")
    await db.init_db()
    log.info("Startup complete")
    yield
    await close_redis()
    log.info("Shutdown")


app = FastAPI(title="Files Manager API", version="0.1.0", lifespan=lifespan)

settings = get_settings()
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT"],
    allow_headers=["*"],
)


@app.middleware("http")
async def add_security_headers(request: Request, call_next):
    """Add security headers to all responses."""
    response = await call_next(request)
    response.headers["X-Content-Type-Options"] = "nosniff"
    response.headers["X-Frame-Options"] = "DENY"
    return response


@app.exception_handler(FilesManagerError)
async def files_manager_error_handler(request: Request, exc: FilesManagerError):
    """Known errors carry their own status and client-safe message."""
    if exc.status_code >= 500:
        log.error("%s on %s %s: %r", type(exc).__name__, request.method, request.url.path, exc.__cause__)
    return JSONResponse(status_code=exc.status_code, content={"error": exc.message})


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    """Malformed bodies are a plain 400, not FastAPI's 422 detail list."""
    log.debug("Invalid request on %s: %s", request.url.path, exc.errors())
    return JSONResponse(status_code=400, content={"error": "Invalid request"})


@app.exception_handler(Exception)
async def generic_exception_handler(request: Request, exc: Exception):
    """Return generic 500 without leaking stack trace or internals."""
    log.exception("Unhandled exception: %s", exc)
    return JSONResponse(status_code=500, content={"error": "Server error"})


app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

app.include_router(users_router)
app.include_router(files_router)


@app.get("/status")
async def status(store: Annotated[SessionStore, Depends(get_session_store)]) -> dict:
    """Reachability of the session store and the document store."""
    return {"redis": await store.ping(), "db": await db.is_alive()}


@app.get("/stats")
async def stats(
    registry: Annotated[FileRegistry, Depends(get_registry)],
    session: Annotated[AsyncSession, Depends(db.get_db)],
) -> dict:
    """Number of users and files."""
    return {"users": await count_users(session), "files": await registry.count()}
