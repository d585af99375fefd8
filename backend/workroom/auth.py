"""Bearer token issuing and request authentication."""
import logging
import time
from typing import Optional
from uuid import UUID

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt

from .config import settings
from .database import get_store
from .models import User
from .store import DirectoryStore

logger = logging.getLogger(__name__)

# Bearer token scheme
security = HTTPBearer()


def _unauthorized(detail: str = "Could not validate credentials") -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


def create_access_token(user: User, expires_minutes: Optional[int] = None) -> str:
    """Create JWT access token carrying the user and tenant ids."""
    now = int(time.time())
    minutes = expires_minutes or settings.JWT_ACCESS_TOKEN_EXPIRE_MINUTES
    to_encode = {
        "sub": str(user.id),
        "tid": str(user.tenant_id),
        "iat": now,
        "exp": now + int(minutes) * 60,
        "type": "access",
    }
    return jwt.encode(to_encode, settings.JWT_SECRET_KEY, algorithm=settings.JWT_ALGORITHM)


def decode_token(token: str) -> dict:
    """Decode JWT token."""
    try:
        payload = jwt.decode(token, settings.JWT_SECRET_KEY, algorithms=[settings.JWT_ALGORITHM])
    except JWTError:
        raise _unauthorized()
    if payload.get("type") != "access":
        raise _unauthorized("Invalid token type")
    return payload


def _parse_uuid_claim(payload: dict, claim: str) -> UUID:
    value = payload.get(claim)
    if not value:
        raise _unauthorized()
    try:
        return UUID(str(value))
    except ValueError:
        raise _unauthorized()


def get_current_user(
    credentials: HTTPAuthorizationCredentials = Depends(security),
    store: DirectoryStore = Depends(get_store),
) -> User:
    """Get current authenticated user."""
    payload = decode_token(credentials.credentials)
    user_id = _parse_uuid_claim(payload, "sub")
    tenant_id = _parse_uuid_claim(payload, "tid")

    workspace = store.snapshot(tenant_id)
    if workspace is None:
        raise _unauthorized("Invalid tenant association.")
    user = workspace.user_by_id(user_id)
    if user is None or not user.is_active:
        raise _unauthorized("User not found or inactive")
    return user
