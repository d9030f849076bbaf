# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""Data-access layer for users and password-reset tokens."""
from datetime import datetime
from typing import Any, Dict, List, Optional

from sqlalchemy import delete, insert, select, update
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError

from coldcall.core.errors import DuplicateEmail
from coldcall.core.logging import get_logger
from coldcall.models.tables import password_reset_tokens, users
from coldcall.repositories.base import as_utc, iso, new_id, utcnow

logger = get_logger(__name__)

USER_COLS = (
    users.c.id, users.c.email, users.c.password_hash, users.c.first_name,
    users.c.last_name, users.c.role, users.c.created_at, users.c.updated_at,
)


def _row_to_dict(row) -> Dict[str, Any]:
    return {
        "id": row.id,
        "email": row.email,
        "password_hash": row.password_hash,
        "first_name": row.first_name,
        "last_name": row.last_name,
        "role": row.role,
        "created_at": iso(row.created_at),
        "updated_at": iso(row.updated_at),
    }


class UserRepository:
    def __init__(self, engine: Engine):
        self._engine = engine

    # ── Users ──────────────────────────────────────────────────────────

    def create_user(self, email: str, password_hash: str, first_name: Optional[str] = None,
                    last_name: Optional[str] = None, role: Optional[str] = None) -> Dict[str, Any]:
        user_id = new_id()
        now = utcnow()
        try:
            with self._engine.begin() as conn:
                conn.execute(insert(users).values(
                    id=user_id, email=email, password_hash=password_hash,
                    first_name=first_name, last_name=last_name, role=role,
                    created_at=now, updated_at=now,
                ))
                row = conn.execute(select(*USER_COLS).where(users.c.id == user_id)).fetchone()
        except IntegrityError as exc:
            logger.warning("User insert rejected: %s", exc.orig)
            raise DuplicateEmail(email) from exc
        return _row_to_dict(row)

    def get_by_email(self, email: str) -> Optional[Dict[str, Any]]:
        with self._engine.connect() as conn:
            row = conn.execute(select(*USER_COLS).where(users.c.email == email)).fetchone()
        return _row_to_dict(row) if row else None

    def get_by_id(self, user_id: str) -> Optional[Dict[str, Any]]:
        with self._engine.connect() as conn:
            row = conn.execute(select(*USER_COLS).where(users.c.id == user_id)).fetchone()
        return _row_to_dict(row) if row else None

    def update_password(self, user_id: str, password_hash: str) -> None:
        with self._engine.begin() as conn:
            conn.execute(
                update(users)
                .where(users.c.id == user_id)
                .values(password_hash=password_hash, updated_at=utcnow())
            )

    # ── Reset tokens ───────────────────────────────────────────────────

    def create_reset_token(self, user_id: str, token_hash: str, expires_at: datetime) -> str:
        token_id = new_id()
        with self._engine.begin() as conn:
            conn.execute(insert(password_reset_tokens).values(
                id=token_id, user_id=user_id, token_hash=token_hash,
                expires_at=expires_at, created_at=utcnow(),
            ))
        return token_id

    def list_live_reset_tokens(self, user_id: str) -> List[Dict[str, Any]]:
        """Unused tokens whose expiry is still in the future."""
        now = utcnow()
        with self._engine.connect() as conn:
            rows = conn.execute(
                select(password_reset_tokens.c.id, password_reset_tokens.c.token_hash,
                       password_reset_tokens.c.expires_at)
                .where(password_reset_tokens.c.user_id == user_id)
                .where(password_reset_tokens.c.used_at.is_(None))
            ).fetchall()
        # expiry compared in Python: SQLite keeps timestamps as naive strings
        return [
            {"id": r.id, "token_hash": r.token_hash}
            for r in rows
            if as_utc(r.expires_at) > now
        ]

    def mark_reset_token_used(self, token_id: str) -> None:
        with self._engine.begin() as conn:
            conn.execute(
                update(password_reset_tokens)
                .where(password_reset_tokens.c.id == token_id)
                .values(used_at=utcnow())
            )

    def purge_expired_reset_tokens(self) -> int:
        now = utcnow()
        with self._engine.begin() as conn:
            rows = conn.execute(
                select(password_reset_tokens.c.id, password_reset_tokens.c.expires_at)
            ).fetchall()
            expired = [r.id for r in rows if as_utc(r.expires_at) <= now]
            if expired:
                conn.execute(delete(password_reset_tokens).where(password_reset_tokens.c.id.in_(expired)))
        return len(expired)
