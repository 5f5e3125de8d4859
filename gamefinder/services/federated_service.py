import logging
from collections.abc import Callable
from dataclasses import dataclass

import google.auth.exceptions
import google.auth.transport.requests
import google.oauth2.id_token
import requests
from sqlalchemy.orm import Session

from gamefinder.core.config import Settings
from gamefinder.core.errors import InvalidAssertion, NotConfigured
from gamefinder.models.users import User
from gamefinder.services import directory, nickname_service

logger = logging.getLogger(__name__)

_http = requests.Session()


@dataclass(frozen=True)
class FederatedAssertion:
    subject_id: str
    email: str | None
    display_name: str | None = None


AssertionVerifier = Callable[[str], FederatedAssertion]


def verify_google_id_token(raw_token: str, settings: Settings) -> FederatedAssertion:
    """Check a Firebase-issued Google ID token and extract the identity claims."""
    project_id = settings.firebase_project_id
    if not project_id:
        raise NotConfigured(
            "Google login is not configured", code="FEDERATED_NOT_CONFIGURED"
        )

    request = google.auth.transport.requests.Request(session=_http)
    try:
        claims = google.oauth2.id_token.verify_firebase_token(
            raw_token, request, audience=project_id
        )
    except (ValueError, google.auth.exceptions.GoogleAuthError) as exc:
        logger.info("Rejected Google ID token: %s", exc)
        raise InvalidAssertion() from exc

    subject_id = claims.get("sub")
    if not subject_id:
        raise InvalidAssertion()

    return FederatedAssertion(
        subject_id=str(subject_id),
        email=claims.get("email"),
        display_name=claims.get("name"),
    )


def _nickname_base(assertion: FederatedAssertion) -> str:
    if assertion.display_name and assertion.display_name.strip():
        return assertion.display_name
    local_part = (assertion.email or "").split("@")[0]
    return local_part or "user"


def link_or_create(db: Session, assertion: FederatedAssertion) -> User:
    if not assertion.email:
        raise InvalidAssertion("Google account has no email")

    user = directory.find_user_by_google_uid_or_email(
        db, assertion.subject_id, assertion.email
    )

    if user is None:
        try:
            user = nickname_service.create_account(
                db,
                nickname_base=_nickname_base(assertion),
                email=assertion.email,
                password_hash=None,
                google_uid=assertion.subject_id,
            )
        except (directory.EmailTaken, directory.GoogleUidTaken):
            # A concurrent login inserted the same identity first.
            user = directory.find_user_by_google_uid_or_email(
                db, assertion.subject_id, assertion.email
            )
            if user is None:
                raise
        else:
            db.commit()
            db.refresh(user)
            logger.info("Created account %s from Google identity", user.id)
            return user

    if user.google_uid is None:
        if directory.link_google_uid(db, user, assertion.subject_id):
            logger.info("Linked Google identity to account %s", user.id)
        db.commit()

    return user
