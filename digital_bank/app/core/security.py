"""Password hashing and JWT helpers."""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta, UTC
from uuid import uuid4

import bcrypt
from jose import JWTError, jwt

from .config import Settings
from .errors import AuthenticationError

ACCESS = "access"
REFRESH = "refresh"


@dataclass(frozen=True)
class TokenData:
    user_id: str
    role: str
    session_id: str
    token_type: str
    jti: str


def hash_password(password: str) -> str:
    """Hash plain text password using bcrypt."""
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt()).decode("utf-8")


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Verify a plain text password against a stored bcrypt hash."""
    try:
        return bcrypt.checkpw(plain_password.encode("utf-8"), hashed_password.encode("utf-8"))
    except ValueError:
        return False


def create_token(
    settings: Settings,
    *,
    user_id: str,
    role: str,
    session_id: str,
    token_type: str,
    expires_delta: timedelta,
    jti: str | None = None,
) -> str:
    payload = {
        "sub": user_id,
        "role": role,
        "sid": session_id,
        "type": token_type,
        "jti": jti or str(uuid4()),
        "exp": datetime.now(UTC) + expires_delta,
    }
    return jwt.encode(payload, settings.secret_key, algorithm=settings.jwt_algorithm)


def decode_token(settings: Settings, token: str, expected_type: str) -> TokenData:
    try:
        payload = jwt.decode(token, settings.secret_key, algorithms=[settings.jwt_algorithm])
    except JWTError as exc:
        raise AuthenticationError("Invalid or expired token") from exc

    claims = [payload.get(key) for key in ("sub", "role", "sid", "type", "jti")]
    if not all(claims):
        raise AuthenticationError("Invalid or expired token")
    user_id, role, session_id, token_type, jti = claims
    if token_type != expected_type:
        raise AuthenticationError(f"Expected a {expected_type} token")
    return TokenData(
        user_id=user_id,
        role=role,
        session_id=session_id,
        token_type=token_type,
        jti=jti,
    )
