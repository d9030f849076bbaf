# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""Authentication service: accounts, sessions, and password resets."""
from datetime import timedelta
from typing import Any, Dict, Optional
from urllib.parse import quote

from fastapi import HTTPException

from coldcall.core.config import settings
from coldcall.core.errors import DuplicateEmail
from coldcall.core.logging import get_logger
from coldcall.core.security import (
    AuthContext,
    create_session_token,
    decode_session_token,
    hash_secret,
    new_reset_token,
    verify_secret,
)
from coldcall.metrics import AUTH_EVENTS
from coldcall.repositories.base import utcnow
from coldcall.repositories.user_repository import UserRepository
from coldcall.services.reset_mailer import ResetMailer

logger = get_logger(__name__)


def _public(user: Dict[str, Any]) -> Dict[str, Any]:
    return {k: user[k] for k in ("id", "email", "first_name", "last_name", "role", "created_at")}


class AuthService:
    def __init__(self, user_repo: UserRepository, mailer: ResetMailer):
        self._users = user_repo
        self._mailer = mailer

    def _session(self, user: Dict[str, Any]) -> Dict[str, Any]:
        return {
            "access_token": create_session_token(user["id"], user["email"]),
            "token_type": "bearer",
            "user": _public(user),
        }

    # ── Accounts & sessions ──

    def signup(self, email: str, password: str, first_name: Optional[str] = None,
               last_name: Optional[str] = None, role: Optional[str] = None) -> Dict[str, Any]:
        conflict = HTTPException(status_code=409, detail="An account with this email already exists")
        if self._users.get_by_email(email):
            AUTH_EVENTS.labels(event="signup", outcome="conflict").inc()
            raise conflict
        try:
            user = self._users.create_user(email, hash_secret(password), first_name, last_name, role)
        except DuplicateEmail:
            # lost a race with a concurrent signup for the same address
            AUTH_EVENTS.labels(event="signup", outcome="conflict").inc()
            raise conflict
        AUTH_EVENTS.labels(event="signup", outcome="success").inc()
        logger.info("User signed up: id=%s", user["id"])
        return self._session(user)

    def login(self, email: str, password: str) -> Dict[str, Any]:
        user = self._users.get_by_email(email)
        if user is None or not verify_secret(password, user["password_hash"]):
            AUTH_EVENTS.labels(event="login", outcome="failure").inc()
            logger.warning("Login failed for %s", email)
            raise HTTPException(status_code=401, detail="Invalid email or password")
        AUTH_EVENTS.labels(event="login", outcome="success").inc()
        return self._session(user)

    def authenticate_token(self, token: Optional[str]) -> Optional[AuthContext]:
        """Resolve a session token to a context; None if invalid or the user is gone."""
        if not token:
            return None
        claims = decode_session_token(token)
        if claims is None:
            return None
        user = self._users.get_by_id(claims["sub"])
        if user is None:
            return None
        return AuthContext(user_id=user["id"], email=user["email"], scoped=settings.OWNERSHIP_SCOPED)

    def get_profile(self, ctx: AuthContext) -> Dict[str, Any]:
        user = self._users.get_by_id(ctx.user_id)
        if user is None:
            raise HTTPException(status_code=401, detail="Not authenticated")
        return _public(user)

    def change_password(self, ctx: AuthContext, current_password: str, new_password: str) -> None:
        user = self._users.get_by_id(ctx.user_id)
        if user is None or not verify_secret(current_password, user["password_hash"]):
            AUTH_EVENTS.labels(event="change_password", outcome="failure").inc()
            raise HTTPException(status_code=400, detail="Current password is incorrect")
        self._users.update_password(user["id"], hash_secret(new_password))
        AUTH_EVENTS.labels(event="change_password", outcome="success").inc()
        logger.info("Password changed: user=%s", user["id"])

    # ── Password reset ──

    def forgot_password(self, email: str) -> Dict[str, Any]:
        """Same answer for known and unknown addresses."""
        user = self._users.get_by_email(email)
        if user is not None:
            raw_token = new_reset_token()
            expires_at = utcnow() + timedelta(minutes=settings.RESET_TOKEN_TTL_MINUTES)
            self._users.create_reset_token(user["id"], hash_secret(raw_token), expires_at)
            reset_url = (
                f"{settings.APP_BASE_URL}/reset-password"
                f"?token={raw_token}&email={quote(email, safe='')}"
            )
            self._mailer.send(email, reset_url)
            AUTH_EVENTS.labels(event="forgot_password", outcome="token_issued").inc()
        else:
            AUTH_EVENTS.labels(event="forgot_password", outcome="unknown_email").inc()
        return {"ok": True, "dev_mode": self._mailer.dev_mode}

    def reset_password(self, email: str, raw_token: str, new_password: str) -> None:
        user = self._users.get_by_email(email)
        match = None
        if user is not None:
            for token in self._users.list_live_reset_tokens(user["id"]):
                if verify_secret(raw_token, token["token_hash"]):
                    match = token
                    break
        if match is None:
            AUTH_EVENTS.labels(event="reset_password", outcome="failure").inc()
            raise HTTPException(status_code=400, detail="Invalid or expired reset token")

        self._users.update_password(user["id"], hash_secret(new_password))
        self._users.mark_reset_token_used(match["id"])
        AUTH_EVENTS.labels(event="reset_password", outcome="success").inc()
        logger.info("Password reset completed: user=%s", user["id"])

    def purge_expired_tokens(self) -> int:
        removed = self._users.purge_expired_reset_tokens()
        if removed:
            logger.info("Purged %d expired reset tokens", removed)
        return removed
