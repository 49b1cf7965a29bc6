"""User routes: register, connect, disconnect, me."""

import logging
from typing import Annotated, Optional

from fastapi import APIRouter, Depends, Header, Request, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from files_manager.auth.authenticator import SessionAuthenticator
from files_manager.auth.dependencies import get_authenticator, get_current_user, token_header
from files_manager.config import get_settings
from files_manager.db.session import get_db
from files_manager.errors import AuthError
from files_manager.limiter import limiter
from files_manager.users.models import TokenResponse, User, UserCreate, UserResponse
from files_manager.users.service import create_user

router = APIRouter(tags=["users"])
log = logging.getLogger(__name__)


@router.post("/users", status_code=status.HTTP_201_CREATED, response_model=UserResponse)
async def register(
    payload: UserCreate,
    session: Annotated[AsyncSession, Depends(get_db)],
) -> UserResponse:
    """Register with email and password."""
    user = await create_user(session, payload)
    await session.commit()
    return UserResponse.model_validate(user)


@router.get("/connect", response_model=TokenResponse)
@limiter.limit(get_settings().connect_rate_limit)
async def connect(
    request: Request,
    authenticator: Annotated[SessionAuthenticator, Depends(get_authenticator)],
    authorization: Annotated[Optional[str], Header()] = None,
) -> TokenResponse:
    """Exchange Basic credentials for a session token valid 24 hours."""
    token = await authenticator.issue_token(authorization)
    return TokenResponse(token=token)


@router.get("/disconnect", status_code=status.HTTP_204_NO_CONTENT)
async def disconnect(
    token: Annotated[Optional[str], Depends(token_header)],
    authenticator: Annotated[SessionAuthenticator, Depends(get_authenticator)],
) -> Response:
    """Revoke the X-Token session. Unknown tokens are 401."""
    user = await authenticator.verify_token(token)
    if not user:
        raise AuthError()
    await authenticator.revoke_token(token)
    log.info("Session revoked for user id=%s", user.id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/users/me", response_model=UserResponse)
async def me(
    current_user: Annotated[User, Depends(get_current_user)],
) -> UserResponse:
    """Return current authenticated user."""
    return UserResponse.model_validate(current_user)
