from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from gamefinder.api.deps import get_notifier, get_token_service
from gamefinder.core.config import Settings, get_settings
from gamefinder.core.database import get_db
from gamefinder.core.security import TokenService
from gamefinder.schemas.account import MessageOut
from gamefinder.schemas.password_reset import (
    PasswordForgotIn,
    PasswordForgotOut,
    PasswordResetIn,
    ResetCodeVerifyIn,
    ResetCodeVerifyOut,
)
from gamefinder.services import password_reset_service
from gamefinder.services.email_service import Notifier

router = APIRouter(prefix="/api/auth", tags=["auth"])


@router.post("/forgot", response_model=PasswordForgotOut)
def forgot_password(
    payload: PasswordForgotIn,
    db: Session = Depends(get_db),
    notifier: Notifier = Depends(get_notifier),
    settings: Settings = Depends(get_settings),
):
    result = password_reset_service.request_code(
        db,
        payload.email,
        notifier,
        ttl_seconds=settings.reset_code_ttl_seconds,
    )
    return PasswordForgotOut(expires_in=result.expires_in)


@router.post("/forgot/verify", response_model=ResetCodeVerifyOut)
def verify_reset_code(
    payload: ResetCodeVerifyIn,
    db: Session = Depends(get_db),
    tokens: TokenService = Depends(get_token_service),
):
    reset_token = password_reset_service.verify_code(
        db, payload.email, payload.code, tokens
    )
    return ResetCodeVerifyOut(reset_token=reset_token)


@router.post("/reset", response_model=MessageOut)
def reset_password(
    payload: PasswordResetIn,
    db: Session = Depends(get_db),
    tokens: TokenService = Depends(get_token_service),
):
    password_reset_service.reset_password(
        db,
        payload.reset_token.get_secret_value(),
        payload.new_password.get_secret_value(),
        tokens,
    )
    return MessageOut(message="Password updated")
