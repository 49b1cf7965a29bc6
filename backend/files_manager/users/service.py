"""User service: registration and lookups."""

import logging
from typing import Optional

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from files_manager.auth.passwords import hash_password
from files_manager.errors import ValidationError
from files_manager.users.models import User, UserCreate

log = logging.getLogger(__name__)


async def get_user_by_email(session: AsyncSession, email: str) -> Optional[User]:
    """Return user by email or None."""
    result = await session.execute(select(User).where(User.email == email))
    return result.scalar_one_or_none()


async def get_user_by_id(session: AsyncSession, user_id: int) -> Optional[User]:
    """Return user by id or None."""
    return await session.get(User, user_id)


async def create_user(session: AsyncSession, payload: UserCreate) -> User:
    """
    Register a new user with a hashed password.
    Raises ValidationError for a missing field or an email already in use.
    Caller must commit session.
    """
    if not payload.email:
        raise ValidationError("Missing email")
    if not payload.password:
        raise ValidationError("Missing password")
    existing = await get_user_by_email(session, payload.email)
    if existing:
        log.info("Registration rejected, email in use: %s", payload.email)
        raise ValidationError("Already exist")
    user = User(email=payload.email, password_hash=hash_password(payload.password))
    session.add(user)
    await session.flush()
    log.info("Registered user id=%s email=%s", user.id, user.email)
    return user


async def count_users(session: AsyncSession) -> int:
    """Number of registered users."""
    result = await session.execute(select(func.count()).select_from(User))
    return result.scalar_one()
