from datetime import datetime, timedelta, timezone
from typing import Any
from uuid import UUID

from jose import jwt, JWTError
from passlib.context import CryptContext

from dcpayroll.core.config import settings

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

# Only admins lock periods; see api/deps.py
ROLES = ("admin", "manager", "supervisor")
PAYROLL_ROLES = ("admin", "manager")


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    return pwd_context.verify(plain_password, hashed_password)


def _encode(subject: str | UUID, token_type: str, lifetime: timedelta, **claims: Any) -> str:
    payload: dict[str, Any] = {
        "sub": str(subject),
        "exp": datetime.now(timezone.utc) + lifetime,
        "type": token_type,
        **claims,
    }
    return jwt.encode(payload, settings.SECRET_KEY, algorithm=settings.ALGORITHM)


def create_access_token(
    subject: str | UUID,
    role: str,
    expires_delta: timedelta | None = None,
) -> str:
    if role not in ROLES:
        raise ValueError(f"Unknown role {role!r}")
    if expires_delta is None:
        expires_delta = timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    return _encode(subject, "access", expires_delta, role=role)


def create_refresh_token(subject: str | UUID) -> str:
    return _encode(subject, "refresh", timedelta(days=settings.REFRESH_TOKEN_EXPIRE_DAYS))


def token_pair(subject: str | UUID, role: str) -> tuple[str, str]:
    """Access and refresh token for a user; the role is re-read from the user on every refresh."""
    return create_access_token(subject, role), create_refresh_token(subject)


def decode_token(token: str, expected_type: str | None = None) -> dict[str, Any]:
    try:
        payload = jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
    except JWTError as e:
        raise ValueError(f"Invalid token: {e}")
    if expected_type is not None and payload.get("type") != expected_type:
        raise ValueError(f"Expected a {expected_type} token")
    return payload
