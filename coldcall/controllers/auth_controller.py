# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""Controller: Authentication. Signup, login, logout, password management."""
from fastapi import APIRouter, Depends, Response

from coldcall.core.config import settings
from coldcall.core.dependencies import get_auth_service, get_current_context
from coldcall.core.security import AuthContext
from coldcall.schemas import (
    ChangePasswordRequest,
    ForgotPasswordRequest,
    LoginRequest,
    MessageOut,
    ResetPasswordRequest,
    SessionOut,
    SignupRequest,
    UserOut,
)
from coldcall.services.auth_service import AuthService

router = APIRouter(prefix="/api/v1/auth", tags=["Auth"])


def _set_session_cookie(response: Response, token: str) -> None:
    response.set_cookie(
        settings.SESSION_COOKIE_NAME,
        token,
        httponly=True,
        secure=settings.SESSION_COOKIE_SECURE,
        samesite="lax",
        max_age=settings.SESSION_TTL_DAYS * 24 * 60 * 60,
        path="/",
    )


@router.post("/signup", status_code=201, response_model=SessionOut)
def signup(body: SignupRequest, response: Response,
           auth: AuthService = Depends(get_auth_service)):
    session = auth.signup(body.email, body.password, body.first_name, body.last_name, body.role)
    _set_session_cookie(response, session["access_token"])
    return session


@router.post("/login", response_model=SessionOut)
def login(body: LoginRequest, response: Response,
          auth: AuthService = Depends(get_auth_service)):
    session = auth.login(body.email, body.password)
    _set_session_cookie(response, session["access_token"])
    return session


@router.post("/logout", response_model=MessageOut)
def logout(response: Response):
    response.delete_cookie(settings.SESSION_COOKIE_NAME, path="/")
    return MessageOut(message="Logged out")


@router.get("/me", response_model=UserOut)
def me(ctx: AuthContext = Depends(get_current_context),
       auth: AuthService = Depends(get_auth_service)):
    return auth.get_profile(ctx)


@router.post("/change-password", response_model=MessageOut)
def change_password(body: ChangePasswordRequest,
                    ctx: AuthContext = Depends(get_current_context),
                    auth: AuthService = Depends(get_auth_service)):
    auth.change_password(ctx, body.current_password, body.new_password)
    return MessageOut(message="Password updated")


@router.post("/forgot-password")
def forgot_password(body: ForgotPasswordRequest,
                    auth: AuthService = Depends(get_auth_service)):
    result = auth.forgot_password(body.email)
    return {
        "ok": True,
        "message": "If an account exists for that email, a reset link has been sent",
        "dev_mode": result["dev_mode"],
    }


@router.post("/reset-password", response_model=MessageOut)
def reset_password(body: ResetPasswordRequest,
                   auth: AuthService = Depends(get_auth_service)):
    auth.reset_password(body.email, body.token, body.password)
    return MessageOut(message="Password has been reset")
