"""
Request identity for the API boundary.

Tokens are issued by the identity provider (login lives outside this
service) and carry the user id in `sub` plus the numeric `role` claim.
Routes turn them into an AuthContext and check capabilities here, so the
checkout core only ever sees an explicit caller identity.
"""

import enum
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt

from startickets.core.config import get_settings
from startickets.core.logging import get_logger

logger = get_logger(__name__)
settings = get_settings()

bearer_scheme = HTTPBearer(auto_error=False)


class UserRole(enum.IntEnum):
    ADMIN = 1
    EVENT_ORGANIZER = 2
    CUSTOMER = 3


@dataclass(frozen=True)
class AuthContext:
    """Authenticated caller: who they are and what they may do."""

    user_id: int
    role: UserRole

    @property
    def is_customer(self) -> bool:
        return self.role == UserRole.CUSTOMER


def create_access_token(data: dict, expires_delta: Optional[timedelta] = None) -> str:
    to_encode = data.copy()
    expire = datetime.now(timezone.utc) + (
        expires_delta or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    )
    to_encode["exp"] = expire
    return jwt.encode(to_encode, settings.SECRET_KEY, algorithm=settings.ALGORITHM)


def decode_access_token(token: str) -> AuthContext:
    """Decode a bearer token. Raises 401 on any malformed or expired token."""
    credentials_error = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )
    try:
        payload = jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
        user_id = int(payload["sub"])
        role = UserRole(int(payload.get("role", UserRole.CUSTOMER)))
    except (JWTError, KeyError, TypeError, ValueError) as exc:
        logger.warning("token_rejected", error=str(exc))
        raise credentials_error from exc
    return AuthContext(user_id=user_id, role=role)


async def get_auth_context(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
) -> AuthContext:
    if credentials is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return decode_access_token(credentials.credentials)


async def require_customer(auth: AuthContext = Depends(get_auth_context)) -> AuthContext:
    """Only customers may purchase or manage their bookings."""
    if not auth.is_customer:
        logger.warning("capability_denied", user_id=auth.user_id, role=auth.role.name)
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Customer account required",
        )
    return auth
