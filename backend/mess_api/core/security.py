"""
Password hashing, access tokens and the principal resolver.

``get_current_user`` turns the bearer credential into a User row. Every
failure mode (no header, bad signature, expired token, unknown or inactive
user) collapses into the same 401 so callers cannot tell them apart.
"""

from datetime import datetime, timedelta, timezone
from typing import Callable, Optional

import bcrypt
import jwt
from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from mess_api.core.config import get_settings
from mess_api.core.exceptions import ForbiddenError, UnauthorizedError
from mess_api.core.logging import get_logger
from mess_api.db.session import get_db
from mess_api.models.user import User

logger = get_logger(__name__)

bearer_scheme = HTTPBearer(auto_error=False)


def hash_password(password: str) -> str:
    salt = bcrypt.gensalt(rounds=get_settings().BCRYPT_ROUNDS)
    return bcrypt.hashpw(password.encode("utf-8"), salt).decode("utf-8")


def verify_password(plain_password: str, hashed_password: str) -> bool:
    try:
        return bcrypt.checkpw(plain_password.encode("utf-8"), hashed_password.encode("utf-8"))
    except ValueError:
        # Not a bcrypt hash
        return False


def create_access_token(data: dict, expires_delta: Optional[timedelta] = None) -> str:
    settings = get_settings()
    expire = datetime.now(timezone.utc) + (
        expires_delta or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    )
    payload = {**data, "exp": expire}
    return jwt.encode(payload, settings.SECRET_KEY, algorithm=settings.ALGORITHM)


def decode_access_token(token: str) -> Optional[str]:
    """Return the subject (user id) of a valid token, or None."""
    settings = get_settings()
    try:
        payload = jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
    except jwt.PyJWTError as e:
        logger.info("token_rejected", reason=type(e).__name__)
        return None
    subject = payload.get("sub")
    return subject if isinstance(subject, str) else None


async def authenticate(db: AsyncSession, token: Optional[str]) -> Optional[User]:
    if not token:
        return None
    user_id = decode_access_token(token)
    if user_id is None:
        return None
    result = await db.execute(
        select(User)
        .where(User.id == user_id)
        .execution_options(populate_existing=True)
    )
    user = result.scalar_one_or_none()
    if user is None or not user.is_active:
        return None
    return user


async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    db: AsyncSession = Depends(get_db),
) -> User:
    token = credentials.credentials if credentials else None
    user = await authenticate(db, token)
    if user is None:
        raise UnauthorizedError()
    return user


def require_roles(*roles: str) -> Callable:
    """Dependency factory restricting a route to the given roles."""

    async def _checker(user: User = Depends(get_current_user)) -> User:
        if user.role not in roles:
            raise ForbiddenError(roles, user_id=user.id, role=user.role)
        return user

    return _checker
