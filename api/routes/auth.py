"""
Authentication API Endpoints

- POST /api/auth/register - Create an API user
- POST /api/auth/login - Exchange credentials for an access token
"""

import logging

from fastapi import APIRouter, HTTPException, status
from pydantic import BaseModel, Field, field_validator
from sqlalchemy import select

from api.auth import create_access_token, hash_password, verify_password
from api.deps import SessionDep, commit_or_raise
from database.models import User

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/auth", tags=["auth"])


class RegisterRequest(BaseModel):
    username: str = Field(..., min_length=1, max_length=100)
    password: str = Field(..., min_length=6, max_length=128)

    @field_validator("username")
    @classmethod
    def strip_username(cls, v):
        v = v.strip()
        if not v:
            raise ValueError("Username is required")
        return v


class LoginRequest(BaseModel):
    username: str
    password: str


class LoginResponse(BaseModel):
    token: str
    token_type: str = "bearer"
    expires_in: int
    user: dict


@router.post("/register", status_code=status.HTTP_201_CREATED)
async def register(request: RegisterRequest, session: SessionDep):
    """Create a user. Duplicate usernames are rejected with 409."""
    user = User(username=request.username, password_hash=hash_password(request.password))
    session.add(user)
    await commit_or_raise(session, "user registration")
    await session.refresh(user)

    logger.info(f"User registered: {user.username}")
    return {
        "id": str(user.id),
        "username": user.username,
        "created_at": user.created_at.isoformat(),
    }


@router.post("/login", response_model=LoginResponse)
async def login(request: LoginRequest, session: SessionDep):
    """Authenticate a user and return an access token."""
    result = await session.execute(select(User).where(User.username == request.username))
    user = result.scalar_one_or_none()

    if user is None or not verify_password(request.password, user.password_hash):
        logger.warning(f"Failed login attempt for username: {request.username}")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid credentials",
        )

    token, expires_in = create_access_token(user.username, str(user.id))
    logger.info(f"User logged in: {user.username}")
    return LoginResponse(
        token=token,
        expires_in=expires_in,
        user={"id": str(user.id), "username": user.username},
    )
