# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""Password hashing, session tokens, and the per-request authorization context."""
import logging
import secrets
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

from jose import JWTError, jwt
from passlib.context import CryptContext

from coldcall.core.config import settings

logging.getLogger("passlib").setLevel(logging.ERROR)
pwd_context = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")


@dataclass(frozen=True)
class AuthContext:
    """Caller identity handed to every service operation.

    ``owner_filter`` is the user id the repositories restrict classes to, or
    None when ownership scoping is switched off and every class is visible.
    """

    user_id: str
    email: str
    scoped: bool = True

    @property
    def owner_filter(self) -> Optional[str]:
        return self.user_id if self.scoped else None


def hash_secret(plain: str) -> str:
    return pwd_context.hash(plain)


def verify_secret(plain: str, hashed: str) -> bool:
    try:
        return pwd_context.verify(plain, hashed)
    except (ValueError, TypeError):
        return False


def new_reset_token() -> str:
    return secrets.token_hex(32)


def create_session_token(user_id: str, email: str, expires_delta: Optional[timedelta] = None) -> str:
    expire = datetime.now(timezone.utc) + (expires_delta or timedelta(days=settings.SESSION_TTL_DAYS))
    payload = {"sub": user_id, "email": email, "exp": expire}
    return jwt.encode(payload, settings.SESSION_SECRET, algorithm=settings.JWT_ALGORITHM)


def decode_session_token(token: str) -> Optional[Dict[str, Any]]:
    """Return the token claims, or None for anything invalid or expired."""
    try:
        payload = jwt.decode(token, settings.SESSION_SECRET, algorithms=[settings.JWT_ALGORITHM])
    except JWTError:
        return None
    if not payload.get("sub") or not payload.get("email"):
        return None
    return payload
