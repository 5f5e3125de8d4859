import logging

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from gamefinder.api.deps import get_assertion_verifier, get_token_service
from gamefinder.core.database import get_db
from gamefinder.core.errors import Conflict, InvalidCredentials, ValidationFailed
from gamefinder.core.security import TokenService, hash_password, verify_password
from gamefinder.models.users import EMAIL_MAX_LENGTH, LocalPassword
from gamefinder.schemas.users import AuthOut, GoogleLoginIn, LoginIn, SignupIn, UserOut
from gamefinder.services import directory, federated_service, nickname_service
from gamefinder.services.federated_service import AssertionVerifier
from gamefinder.services.password_reset_service import ensure_password_strength

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["auth"])


def _auth_response(user, tokens: TokenService) -> AuthOut:
    return AuthOut(
        user=UserOut.model_validate(user),
        token=tokens.mint_session(user.id),
    )


@router.post("/signup", response_model=AuthOut, status_code=status.HTTP_201_CREATED)
def signup(
    payload: SignupIn,
    db: Session = Depends(get_db),
    tokens: TokenService = Depends(get_token_service),
):
    email = directory.normalize_email(payload.email)
    if len(email) > EMAIL_MAX_LENGTH:
        raise ValidationFailed("Email is too long", code="EMAIL_TOO_LONG")
    nickname = payload.nickname.strip()
    if not nickname:
        raise ValidationFailed("Nickname required", code="NICKNAME_REQUIRED")
    ensure_password_strength(payload.password)

    if directory.email_exists(db, email):
        raise Conflict("Email already in use", code="EMAIL_TAKEN")

    try:
        user = nickname_service.create_account(
            db,
            nickname_base=nickname,
            email=email,
            password_hash=hash_password(payload.password),
            as_entered=True,
        )
    except directory.EmailTaken as exc:
        raise Conflict("Email already in use", code="EMAIL_TAKEN") from exc
    db.commit()
    db.refresh(user)
    logger.info("Signed up account %s", user.id)
    return _auth_response(user, tokens)


@router.post("/login", response_model=AuthOut)
def login(
    payload: LoginIn,
    db: Session = Depends(get_db),
    tokens: TokenService = Depends(get_token_service),
):
    user = directory.find_user_by_email(db, payload.email)
    credential = user.credential if user else None
    if not isinstance(credential, LocalPassword) or not verify_password(
        payload.password, credential.password_hash
    ):
        raise InvalidCredentials()

    return _auth_response(user, tokens)


@router.post("/auth/google", response_model=AuthOut)
def google_login(
    payload: GoogleLoginIn,
    db: Session = Depends(get_db),
    tokens: TokenService = Depends(get_token_service),
    verify_assertion: AssertionVerifier = Depends(get_assertion_verifier),
):
    assertion = verify_assertion(payload.id_token)
    user = federated_service.link_or_create(db, assertion)
    return _auth_response(user, tokens)
