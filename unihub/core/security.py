"""
Password hashing, JWT issuing/decoding and the request identity dependency.

The boundary only authenticates: it turns a bearer token into an Identity
(user id + role). Whether that identity may do something is decided by
unihub.core.permissions.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional

import bcrypt
import jwt
import structlog
from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from unihub.core.config import get_settings
from unihub.core.exceptions import AuthenticationRequired
from unihub.models.user import Role

settings = get_settings()

bearer_scheme = HTTPBearer(auto_error=False)


@dataclass(frozen=True)
class Identity:
    user_id: int
    role: Role


def hash_password(password: str) -> str:
    hashed = bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt())
    return hashed.decode("utf-8")


def verify_password(password: str, hashed_password: str) -> bool:
    try:
        return bcrypt.checkpw(password.encode("utf-8"), hashed_password.encode("utf-8"))
    except ValueError:
        # Malformed stored hash
        return False


def create_access_token(data: dict, expires_delta: Optional[timedelta] = None) -> str:
    to_encode = data.copy()
    expire = datetime.now(timezone.utc) + (
        expires_delta or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    )
    to_encode["exp"] = expire
    return jwt.encode(to_encode, settings.SECRET_KEY, algorithm=settings.ALGORITHM)


def create_token_for(user_id: int, role: str) -> str:
    return create_access_token({"sub": str(user_id), "role": role})


def decode_access_token(token: str) -> Identity:
    try:
        payload = jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
        return Identity(user_id=int(payload["sub"]), role=Role(payload.get("role", Role.STUDENT.value)))
    except (jwt.PyJWTError, KeyError, ValueError) as e:
        raise AuthenticationRequired("Invalid or expired token") from e


async def get_optional_identity(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
) -> Optional[Identity]:
    """Anonymous requests resolve to None."""
    if credentials is None:
        return None
    return decode_access_token(credentials.credentials)


async def get_current_identity(
    identity: Optional[Identity] = Depends(get_optional_identity),
) -> Identity:
    if identity is None:
        raise AuthenticationRequired("Not authenticated")
    structlog.contextvars.bind_contextvars(user_id=identity.user_id)
    return identity


async def get_current_user_id(identity: Identity = Depends(get_current_identity)) -> int:
    return identity.user_id
