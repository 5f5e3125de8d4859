import logging
import math
import smtplib
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta

from sqlalchemy.orm import Session

from gamefinder.core.errors import (
    CodeAlreadyUsed,
    CodeExpired,
    InvalidCode,
    InvalidResetToken,
    UpstreamFailure,
    ValidationFailed,
)
from gamefinder.core.security import (
    MIN_PASSWORD_LENGTH,
    InvalidToken,
    TokenService,
    generate_reset_code,
    hash_password,
    verify_password,
)
from gamefinder.services import directory
from gamefinder.services.email_service import Notifier

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ResetCodeRequested:
    expires_in: int


def _as_utc(value: datetime) -> datetime:
    # SQLite hands back naive datetimes even for timezone-aware columns.
    if value.tzinfo is None or value.tzinfo.utcoffset(value) is None:
        return value.replace(tzinfo=UTC)
    return value


def ensure_password_strength(password: str | None, code: str = "PASSWORD_WEAK") -> str:
    if not password or len(password) < MIN_PASSWORD_LENGTH:
        raise ValidationFailed(
            f"Password must be at least {MIN_PASSWORD_LENGTH} characters", code=code
        )
    return password


def request_code(
    db: Session,
    email: str,
    notifier: Notifier,
    ttl_seconds: int,
) -> ResetCodeRequested:
    """Issue a reset code for ``email`` and hand it to ``notifier``.

    Unknown addresses get the same answer as known ones. The code row is
    committed before the notifier runs, so a delivery failure leaves it in
    place and surfaces as :class:`UpstreamFailure`.
    """
    acknowledgement = ResetCodeRequested(expires_in=ttl_seconds)

    user = directory.find_user_by_email(db, email)
    code = generate_reset_code()
    if not user:
        # Pay the hashing cost for unknown addresses too. Delivery time still
        # differs, since only known addresses reach the notifier.
        hash_password(code)
        return acknowledgement

    now = datetime.now(UTC)
    directory.insert_reset_code(
        db,
        user,
        code_hash=hash_password(code),
        expires_at=now + timedelta(seconds=ttl_seconds),
    )
    db.commit()

    try:
        notifier(user.email, code, max(1, math.ceil(ttl_seconds / 60)))
    except (smtplib.SMTPException, OSError) as exc:
        logger.exception("Failed to deliver reset code for account %s", user.id)
        raise UpstreamFailure(
            "Could not send the reset code, try again later",
            code="NOTIFIER_UNAVAILABLE",
        ) from exc

    logger.info("Issued reset code for account %s", user.id)
    return acknowledgement


def verify_code(db: Session, email: str, code: str, tokens: TokenService) -> str:
    """Spend the latest reset code of ``email`` and return a reset token."""
    user = directory.find_user_by_email(db, email)
    if not user:
        raise InvalidCode()

    row = directory.latest_reset_code(db, user.id)
    if not row:
        raise InvalidCode()
    if row.used_at is not None:
        raise CodeAlreadyUsed()

    now = datetime.now(UTC)
    if _as_utc(row.expires_at) <= now:
        raise CodeExpired()
    if not verify_password(code.strip(), row.code_hash):
        raise InvalidCode()

    if not directory.mark_reset_code_used(db, row, now):
        raise CodeAlreadyUsed()
    db.commit()

    return tokens.mint_reset(user.id, row.id)


def reset_password(
    db: Session, reset_token: str, new_password: str, tokens: TokenService
) -> None:
    ensure_password_strength(new_password)

    try:
        claims = tokens.verify_reset(reset_token)
    except InvalidToken as exc:
        raise InvalidResetToken() from exc

    row = directory.get_reset_code(db, claims.code_id)
    user = directory.get_user(db, claims.account_id)
    if not row or not user or row.user_id != user.id:
        raise InvalidResetToken()

    if not directory.mark_reset_token_consumed(db, row, datetime.now(UTC)):
        raise InvalidResetToken()

    directory.set_password_hash(db, user, hash_password(new_password))
    db.commit()
    logger.info("Password reset for account %s", user.id)
