"""
Authentication endpoints: register, login, current user.
"""

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from mess_api.db.session import get_db
from mess_api.core.security import get_current_user
from mess_api.models.user import User
from mess_api.schemas.user import UserCreate, UserResponse, UserLogin, Token
from mess_api.services.auth_service import register_user, authenticate_user

router = APIRouter(prefix="/auth", tags=["Authentication"])


@router.post("/register", response_model=UserResponse, status_code=status.HTTP_201_CREATED)
async def register(user_data: UserCreate, db: AsyncSession = Depends(get_db)):
    """Register a new student account."""
    user = await register_user(db, user_data)
    await db.commit()
    return user


@router.post("/login", response_model=Token)
async def login(login_data: UserLogin, db: AsyncSession = Depends(get_db)):
    """Authenticate and receive a JWT access token."""
    token, user = await authenticate_user(db, login_data)
    return Token(access_token=token, user=UserResponse.model_validate(user))


@router.get("/me", response_model=UserResponse)
async def me(user: User = Depends(get_current_user)):
    """The authenticated user with points, level and streak."""
    return user
