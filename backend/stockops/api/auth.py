"""User registration, login and the current-user lookup."""

import logging
from datetime import datetime

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, ConfigDict, Field
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from stockops.api.deps import get_current_user
from stockops.core.database import get_db
from stockops.core.exceptions import ConflictError
from stockops.core.security import create_access_token, hash_password, verify_password
from stockops.models.user import User

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["auth"])


class RegisterRequest(BaseModel):
    username: str = Field(min_length=1, max_length=50)
    password: str = Field(min_length=6)
    email: str | None = None


class LoginRequest(BaseModel):
    username: str
    password: str


class TokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"


class UserResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    username: str
    email: str | None
    created_at: datetime


async def _find_user(db: AsyncSession, username: str) -> User | None:
    result = await db.execute(select(User).where(User.username == username))
    return result.scalar_one_or_none()


@router.post("/register", response_model=TokenResponse)
async def register(req: RegisterRequest, db: AsyncSession = Depends(get_db)):
    if await _find_user(db, req.username) is not None:
        raise ConflictError(f"Username {req.username} already exists")

    db.add(User(username=req.username, password_hash=hash_password(req.password), email=req.email))
    await db.commit()
    logger.info(f"Registered user {req.username}")
    return TokenResponse(access_token=create_access_token(req.username))


@router.post("/login", response_model=TokenResponse)
async def login(req: LoginRequest, db: AsyncSession = Depends(get_db)):
    user = await _find_user(db, req.username)
    # same answer for unknown user, disabled user and wrong password
    if user is None or not user.is_active or not verify_password(req.password, user.password_hash):
        logger.warning(f"Failed login for {req.username}")
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid credentials")
    return TokenResponse(access_token=create_access_token(user.username))


@router.get("/me", response_model=UserResponse)
async def read_current_user(current_user: User = Depends(get_current_user)):
    return current_user
