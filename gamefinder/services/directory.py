"""Narrow read/write contract over the account and reset-code tables.

Every write here is a single statement. Callers own the transaction and decide
when to commit.
"""

import datetime

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from gamefinder.models.users import PasswordResetCode, User


class NicknameTaken(Exception):
    pass


class EmailTaken(Exception):
    pass


class GoogleUidTaken(Exception):
    pass


def normalize_email(value: str) -> str:
    return value.strip().lower()


def get_user(db: Session, user_id: int) -> User | None:
    return db.get(User, user_id)


def find_user_by_email(db: Session, email: str) -> User | None:
    return db.execute(
        select(User).where(User.email == normalize_email(email))
    ).scalar_one_or_none()


def find_user_by_google_uid_or_email(
    db: Session, google_uid: str, email: str
) -> User | None:
    by_uid = db.execute(
        select(User).where(User.google_uid == google_uid)
    ).scalar_one_or_none()
    if by_uid:
        return by_uid
    return find_user_by_email(db, email)


def nickname_exists(db: Session, nickname: str, exclude_id: int | None = None) -> bool:
    stmt = select(User.id).where(User.nickname == nickname)
    if exclude_id is not None:
        stmt = stmt.where(User.id != exclude_id)
    return db.execute(stmt.limit(1)).first() is not None


def email_exists(db: Session, email: str, exclude_id: int | None = None) -> bool:
    stmt = select(User.id).where(User.email == normalize_email(email))
    if exclude_id is not None:
        stmt = stmt.where(User.id != exclude_id)
    return db.execute(stmt.limit(1)).first() is not None


def _violated_column(exc: IntegrityError) -> str | None:
    # SQLite reports "users.<column>", PostgreSQL the constraint name.
    message = str(exc.orig).lower()
    for column in ("nickname", "email", "google_uid"):
        if f"users.{column}" in message or f"uq_users_{column}" in message:
            return column
    return None


def insert_user(
    db: Session,
    *,
    nickname: str,
    email: str,
    password_hash: str | None,
    google_uid: str | None = None,
) -> User:
    """Insert an account inside a SAVEPOINT.

    A uniqueness violation rolls back only the savepoint and is re-raised as
    :class:`NicknameTaken`, :class:`EmailTaken` or :class:`GoogleUidTaken`,
    leaving the session usable.
    """
    user = User(
        nickname=nickname,
        email=normalize_email(email),
        password_hash=password_hash,
        google_uid=google_uid,
    )
    try:
        with db.begin_nested():
            db.add(user)
            db.flush()
    except IntegrityError as exc:
        column = _violated_column(exc)
        if column == "nickname":
            raise NicknameTaken(nickname) from exc
        if column == "email":
            raise EmailTaken(email) from exc
        if column == "google_uid":
            raise GoogleUidTaken(google_uid) from exc
        raise
    return user


def link_google_uid(db: Session, user: User, google_uid: str) -> bool:
    """Attach ``google_uid`` unless the account is already linked."""
    result = db.execute(
        update(User)
        .where(User.id == user.id, User.google_uid.is_(None))
        .values(google_uid=google_uid)
    )
    db.refresh(user)
    return result.rowcount == 1


def set_password_hash(db: Session, user: User, password_hash: str) -> None:
    user.password_hash = password_hash
    db.add(user)
    db.flush()


def insert_reset_code(
    db: Session,
    user: User,
    code_hash: str,
    expires_at: datetime.datetime,
) -> PasswordResetCode:
    row = PasswordResetCode(user_id=user.id, code_hash=code_hash, expires_at=expires_at)
    db.add(row)
    db.flush()
    return row


def latest_reset_code(db: Session, user_id: int) -> PasswordResetCode | None:
    return db.execute(
        select(PasswordResetCode)
        .where(PasswordResetCode.user_id == user_id)
        .order_by(PasswordResetCode.created_at.desc(), PasswordResetCode.id.desc())
        .limit(1)
    ).scalar_one_or_none()


def get_reset_code(db: Session, code_id: int) -> PasswordResetCode | None:
    return db.get(PasswordResetCode, code_id)


def mark_reset_code_used(
    db: Session, code: PasswordResetCode, when: datetime.datetime
) -> bool:
    """Spend ``code``. False when a concurrent request already spent it."""
    result = db.execute(
        update(PasswordResetCode)
        .where(PasswordResetCode.id == code.id, PasswordResetCode.used_at.is_(None))
        .values(used_at=when)
    )
    db.refresh(code)
    return result.rowcount == 1


def mark_reset_token_consumed(
    db: Session, code: PasswordResetCode, when: datetime.datetime
) -> bool:
    result = db.execute(
        update(PasswordResetCode)
        .where(
            PasswordResetCode.id == code.id,
            PasswordResetCode.token_consumed_at.is_(None),
        )
        .values(token_consumed_at=when)
    )
    db.refresh(code)
    return result.rowcount == 1
