import logging

from fastapi import APIRouter, Depends
from pydantic import EmailStr, TypeAdapter, ValidationError
from sqlalchemy.orm import Session

from gamefinder.api.deps import get_current_user
from gamefinder.core.database import get_db
from gamefinder.core.errors import Conflict, CredentialMismatch, ValidationFailed
from gamefinder.core.security import hash_password, verify_password
from gamefinder.models.users import (
    EMAIL_MAX_LENGTH,
    NICKNAME_MAX_LENGTH,
    LocalPassword,
    User,
)
from gamefinder.schemas.account import (
    AccountUpdateIn,
    MessageOut,
    PasswordChangeIn,
    VerifyCurrentIn,
)
from gamefinder.schemas.users import UserOut
from gamefinder.services import directory
from gamefinder.services.password_reset_service import ensure_password_strength

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/account", tags=["account"])

_email_adapter = TypeAdapter(EmailStr)

NO_LOCAL_PASSWORD = (
    'This account has no local password set. Use "Forgot password" to create one.'
)


def _require_local_password(user: User) -> LocalPassword:
    credential = user.credential
    if not isinstance(credential, LocalPassword):
        raise ValidationFailed(NO_LOCAL_PASSWORD, code="NO_LOCAL_PASSWORD")
    return credential


@router.get("/me", response_model=UserOut)
def me(user: User = Depends(get_current_user)):
    return UserOut.model_validate(user)


@router.post("/email/verify-current", response_model=MessageOut)
def verify_current_credentials(
    payload: VerifyCurrentIn,
    user: User = Depends(get_current_user),
):
    email = directory.normalize_email(payload.email)
    password = payload.password.get_secret_value()
    if not email or not password:
        raise ValidationFailed("Email and password are required")

    if user.email.lower() != email:
        raise CredentialMismatch()
    credential = _require_local_password(user)
    if not verify_password(password, credential.password_hash):
        raise CredentialMismatch()

    return MessageOut(message="ok")


@router.patch("", response_model=UserOut)
def update_account(
    payload: AccountUpdateIn,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    if payload.nickname is None and payload.email is None:
        raise ValidationFailed("Nothing to update", code="NOTHING_TO_UPDATE")

    if payload.nickname is not None:
        nickname = payload.nickname.strip()
        if not nickname:
            raise ValidationFailed("Nickname required", code="NICKNAME_REQUIRED")
        if len(nickname) > NICKNAME_MAX_LENGTH:
            raise ValidationFailed("Nickname is too long", code="NICKNAME_TOO_LONG")
        if directory.nickname_exists(db, nickname, exclude_id=user.id):
            raise Conflict("Nickname already in use", code="NICKNAME_TAKEN")
        user.nickname = nickname

    if payload.email is not None:
        email = directory.normalize_email(payload.email)
        if not email:
            raise ValidationFailed("Email required", code="EMAIL_REQUIRED")
        if len(email) > EMAIL_MAX_LENGTH:
            raise ValidationFailed("Email is too long", code="EMAIL_TOO_LONG")
        try:
            _email_adapter.validate_python(email)
        except ValidationError as exc:
            raise ValidationFailed("Invalid email", code="EMAIL_INVALID") from exc
        if directory.email_exists(db, email, exclude_id=user.id):
            raise Conflict("Email already in use", code="EMAIL_TAKEN")
        user.email = email

    db.add(user)
    db.commit()
    db.refresh(user)
    return UserOut.model_validate(user)


@router.patch("/password", response_model=MessageOut)
def change_password(
    payload: PasswordChangeIn,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    current = payload.current_password.get_secret_value() if payload.current_password else ""
    new = payload.new_password.get_secret_value() if payload.new_password else ""

    if not current:
        raise ValidationFailed("Current password is required", code="CURRENT_REQUIRED")
    ensure_password_strength(new, code="NEW_WEAK")

    credential = _require_local_password(user)
    if not verify_password(current, credential.password_hash):
        raise CredentialMismatch(
            "Current password is incorrect", code="CURRENT_INCORRECT"
        )

    directory.set_password_hash(db, user, hash_password(new))
    db.commit()
    logger.info("Password changed for account %s", user.id)
    return MessageOut(message="Password updated")
