"""Session authentication: Basic credentials in, opaque session token out."""

import base64
import binascii
import logging
import re
import secrets
from typing import Optional, Tuple

from sqlalchemy.ext.asyncio import AsyncSession

from files_manager.auth.passwords import verify_password
from files_manager.auth.sessions import SessionStore
from files_manager.errors import AuthError
from files_manager.users.models import User
from files_manager.users.service import get_user_by_email, get_user_by_id

log = logging.getLogger(__name__)

SESSION_TTL_SECONDS = 24 * 60 * 60
_BASIC_PREFIX = "Basic "
_BASE64_STANDARD = re.compile(r"^[A-Za-z0-9+/=]+$")


def _session_key(token: str) -> str:
    return f"auth_{token}"


def parse_basic_credentials(header: Optional[str]) -> Tuple[str, str]:
    """
    Return (email, password) from a Basic Authorization header.
    Every malformed header raises AuthError, never a validation error.
    """
    if not header or not header.startswith(_BASIC_PREFIX):
        raise AuthError()
    encoded = header[len(_BASIC_PREFIX):].strip()
    if not _BASE64_STANDARD.match(encoded) or len(encoded) % 4 != 0:
        raise AuthError()
    try:
        decoded = base64.b64decode(encoded, validate=True).decode("utf-8")
    except (binascii.Error, UnicodeDecodeError):
        raise AuthError() from None
    email, sep, password = decoded.partition(":")
    if not sep or not email:
        raise AuthError()
    return email, password


class SessionAuthenticator:
    """Issues, verifies and revokes session tokens for registered users."""

    def __init__(
        self,
        store: SessionStore,
        session: AsyncSession,
        ttl_seconds: int = SESSION_TTL_SECONDS,
    ):
        self._store = store
        self._session = session
        self._ttl = ttl_seconds

    async def issue_token(self, credential_header: Optional[str]) -> str:
        """Check Basic credentials and return a fresh token valid for the TTL."""
        email, password = parse_basic_credentials(credential_header)
        user = await get_user_by_email(self._session, email)
        # Same error for unknown email and wrong password
        if not user or not verify_password(password, user.password_hash):
            log.warning("Connect failed for email=%s", email)
            raise AuthError()
        token = secrets.token_hex(16)
        await self._store.set(_session_key(token), str(user.id), self._ttl)
        log.info("Issued session token for user id=%s", user.id)
        return token

    async def verify_token(self, token: Optional[str]) -> Optional[User]:
        """Return the token's user, or None for a missing, unknown or expired token."""
        if not token:
            return None
        user_id = await self._store.get(_session_key(token))
        if not user_id:
            return None
        try:
            return await get_user_by_id(self._session, int(user_id))
        except ValueError:
            log.warning("Session value is not a user id: %r", user_id)
            return None

    async def revoke_token(self, token: str) -> None:
        """Delete the token. Revoking an absent token is a no-op."""
        await self._store.delete(_session_key(token))
