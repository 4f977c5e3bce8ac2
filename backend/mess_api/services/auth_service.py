"""
Authentication service handling user registration and login.
"""

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from mess_api.core.config import get_settings
from mess_api.core.constants import ROLE_STUDENT
from mess_api.core.exceptions import ConflictError, ForbiddenError, UnauthorizedError
from mess_api.core.logging import get_logger
from mess_api.core.security import hash_password, verify_password, create_access_token
from mess_api.models.user import User
from mess_api.schemas.user import UserCreate, UserLogin

logger = get_logger(__name__)


async def register_user(db: AsyncSession, user_data: UserCreate) -> User:
    """
    Register a new user with hashed password.
    Raises 409 if the email is already registered.
    """
    if user_data.role != ROLE_STUDENT and not get_settings().ALLOW_PRIVILEGED_SIGNUP:
        raise ForbiddenError((ROLE_STUDENT,), requested_role=user_data.role)

    result = await db.execute(select(User).where(User.email == user_data.email))
    if result.scalar_one_or_none():
        raise ConflictError("User already exists", reason="email_exists", email=user_data.email)

    user = User(
        name=user_data.name,
        email=user_data.email,
        hashed_password=hash_password(user_data.password),
        role=user_data.role,
        points=0,
        streak=0,
    )
    db.add(user)
    try:
        await db.flush()
    except IntegrityError:
        await db.rollback()
        raise ConflictError("User already exists", reason="email_race", email=user_data.email)
    await db.refresh(user)

    logger.info("user_registered", user_id=user.id, email=user.email, role=user.role)
    return user


async def authenticate_user(db: AsyncSession, login_data: UserLogin) -> tuple[str, User]:
    """
    Authenticate user and return a JWT access token with the user.
    Raises 401 if credentials are invalid.
    """
    result = await db.execute(select(User).where(User.email == login_data.email))
    user = result.scalar_one_or_none()

    if not user or not verify_password(login_data.password, user.hashed_password):
        raise UnauthorizedError("Invalid credentials", email=login_data.email)

    if not user.is_active:
        raise UnauthorizedError("Account is deactivated", user_id=user.id)

    token = create_access_token(data={"sub": user.id})
    logger.info("user_logged_in", user_id=user.id)
    return token, user
