"""FastAPI dependencies for session auth."""

import logging
from typing import Annotated, Optional

from fastapi import Depends
from fastapi.security import APIKeyHeader
from sqlalchemy.ext.asyncio import AsyncSession

from files_manager.auth.authenticator import SessionAuthenticator
from files_manager.auth.sessions import RedisSessionStore, SessionStore
from files_manager.config import get_settings
from files_manager.db.redis import get_redis
from files_manager.db.session import get_db
from files_manager.errors import AuthError
from files_manager.users.models import User

token_header = APIKeyHeader(name="X-Token", auto_error=False)
log = logging.getLogger(__name__)


def get_session_store() -> SessionStore:
    """Session store backed by the shared Redis client."""
    return RedisSessionStore(get_redis())


def get_authenticator(
    store: Annotated[SessionStore, Depends(get_session_store)],
    session: Annotated[AsyncSession, Depends(get_db)],
) -> SessionAuthenticator:
    return SessionAuthenticator(store, session, get_settings().session_ttl_seconds)


async def get_optional_user(
    token: Annotated[Optional[str], Depends(token_header)],
    authenticator: Annotated[SessionAuthenticator, Depends(get_authenticator)],
) -> Optional[User]:
    """User for X-Token if it is valid; None when absent or invalid."""
    return await authenticator.verify_token(token)


async def get_current_user(
    token: Annotated[Optional[str], Depends(token_header)],
    authenticator: Annotated[SessionAuthenticator, Depends(get_authenticator)],
) -> User:
    """Resolve X-Token to current user; raise 401 if invalid or missing."""
    if not token:
        log.debug("Request missing X-Token")
        raise AuthError()
    user = await authenticator.verify_token(token)
    if not user:
        log.debug("Invalid or expired session token")
        raise AuthError()
    return user
