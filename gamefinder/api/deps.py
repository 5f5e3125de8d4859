from fastapi import Depends, Request
from sqlalchemy.orm import Session

from gamefinder.core.config import Settings, get_settings
from gamefinder.core.database import get_db
from gamefinder.core.errors import NotFound, Unauthorized
from gamefinder.core.security import TokenService
from gamefinder.models.users import User
from gamefinder.services import directory
from gamefinder.services.email_service import Notifier, send_reset_code_via_smtp
from gamefinder.services.federated_service import (
    AssertionVerifier,
    verify_google_id_token,
)


def get_token_service(request: Request) -> TokenService:
    token_service = getattr(request.app.state, "token_service", None)
    if token_service is None:
        raise RuntimeError("Token service is not configured on application state")
    return token_service


def get_notifier() -> Notifier:
    return send_reset_code_via_smtp


def get_assertion_verifier(
    settings: Settings = Depends(get_settings),
) -> AssertionVerifier:
    def _verify(raw_token: str):
        return verify_google_id_token(raw_token, settings)

    return _verify


def get_current_account_id(request: Request) -> int:
    account_id = getattr(request.state, "account_id", None)
    if account_id is None:
        raise Unauthorized()
    return account_id


def get_current_user(
    account_id: int = Depends(get_current_account_id),
    db: Session = Depends(get_db),
) -> User:
    user = directory.get_user(db, account_id)
    if not user:
        raise NotFound("User not found")
    return user
