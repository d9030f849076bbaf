# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
FastAPI dependency injection: wire repositories and services.
"""

from typing import Optional

from fastapi import Depends, HTTPException, Request
from fastapi.security import OAuth2PasswordBearer

from coldcall.core.config import settings
from coldcall.core.database import engine
from coldcall.core.security import AuthContext
from coldcall.repositories import ClassRepository, ColdCallRepository, StudentRepository, UserRepository
from coldcall.services.auth_service import AuthService
from coldcall.services.class_service import ClassService
from coldcall.services.reset_mailer import ResetMailer
from coldcall.services.score_service import ScoreService
from coldcall.services.selection_service import SelectionService

# ── Singleton repository instances ──
_user_repo = UserRepository(engine)
_class_repo = ClassRepository(engine)
_student_repo = StudentRepository(engine)
_cold_call_repo = ColdCallRepository(engine)
_mailer = ResetMailer()

# ── Service instances (with injected dependencies) ──
_auth_service = AuthService(_user_repo, _mailer)
_class_service = ClassService(_class_repo, _student_repo, _cold_call_repo)
_selection_service = SelectionService(_class_repo, _student_repo, _cold_call_repo)
_score_service = ScoreService(_class_repo, _cold_call_repo)

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/v1/auth/login", auto_error=False)


# ── FastAPI dependency functions ──
def get_auth_service() -> AuthService:
    return _auth_service


def get_class_service() -> ClassService:
    return _class_service


def get_selection_service() -> SelectionService:
    return _selection_service


def get_score_service() -> ScoreService:
    return _score_service


def get_class_repo() -> ClassRepository:
    return _class_repo


def get_current_context(
    request: Request,
    bearer: Optional[str] = Depends(oauth2_scheme),
    auth: AuthService = Depends(get_auth_service),
) -> AuthContext:
    """Bearer header first, then the session cookie set at login."""
    token = bearer or request.cookies.get(settings.SESSION_COOKIE_NAME)
    ctx = auth.authenticate_token(token)
    if ctx is None:
        raise HTTPException(
            status_code=401,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return ctx
