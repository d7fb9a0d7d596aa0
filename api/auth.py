"""
Authentication helpers.

- bcrypt password hashing (passlib)
- HS256 access tokens (python-jose) carrying the username and user id
- ``get_current_user`` dependency for protected routes
"""

import logging
import time
from typing import Annotated, Any
from uuid import uuid4

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt
from passlib.hash import bcrypt

from shared.config import get_settings

logger = logging.getLogger(__name__)

# =============================================================================
# Security
# =============================================================================

security = HTTPBearer(auto_error=False)

JWT_ALGORITHM = "HS256"
TOKEN_TYPE = "access"


def hash_password(password: str) -> str:
    return bcrypt.hash(password)


def verify_password(password: str, password_hash: str) -> bool:
    """Verify a password against its bcrypt hash; malformed hashes never match."""
    try:
        return bcrypt.verify(password, password_hash)
    except (ValueError, TypeError) as e:
        logger.error(f"bcrypt verification failed: {e}")
        return False


def create_access_token(username: str, user_id: str) -> tuple[str, int]:
    """
    Create a signed access token.

    Returns:
        Tuple of (encoded_token, expires_in_seconds)
    """
    settings = get_settings()
    now = int(time.time())
    expires_in = settings.JWT_EXPIRATION_HOURS * 3600

    payload = {
        "sub": username,
        "uid": user_id,
        "iat": now,
        "exp": now + expires_in,
        "jti": str(uuid4()),
        "type": TOKEN_TYPE,
    }
    token = jwt.encode(payload, settings.JWT_SECRET, algorithm=JWT_ALGORITHM)
    return token, expires_in


def verify_token(token: str) -> dict[str, Any]:
    """Decode and verify a token. Raises HTTPException(401) when invalid or expired."""
    try:
        payload = jwt.decode(token, get_settings().JWT_SECRET, algorithms=[JWT_ALGORITHM])
    except JWTError as e:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=f"Invalid token: {str(e)}",
            headers={"WWW-Authenticate": "Bearer"},
        )
    if payload.get("type") != TOKEN_TYPE:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token type",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return payload


async def get_current_user(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(security)] = None,
) -> dict[str, Any]:
    """Dependency returning the verified token payload of the caller."""
    if credentials is None or not credentials.credentials:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return verify_token(credentials.credentials)


CurrentUser = Annotated[dict, Depends(get_current_user)]
