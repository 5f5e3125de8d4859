import datetime
from dataclasses import dataclass

from sqlalchemy import DateTime, ForeignKey, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from gamefinder.core.database import Base

NICKNAME_MAX_LENGTH = 50
EMAIL_MAX_LENGTH = 100

# Rows imported from the legacy store marked Google-only accounts this way.
LEGACY_FEDERATED_SENTINEL = "<google-oauth>"


def utcnow() -> datetime.datetime:
    return datetime.datetime.now(datetime.UTC)


@dataclass(frozen=True)
class LocalPassword:
    password_hash: str


@dataclass(frozen=True)
class FederatedOnly:
    pass


Credential = LocalPassword | FederatedOnly


class User(Base):
    __tablename__ = "users"

    id: Mapped[int] = mapped_column(primary_key=True, init=False)
    nickname: Mapped[str] = mapped_column(String(NICKNAME_MAX_LENGTH))
    email: Mapped[str] = mapped_column(String(EMAIL_MAX_LENGTH))
    password_hash: Mapped[str | None] = mapped_column(default=None, repr=False)
    google_uid: Mapped[str | None] = mapped_column(String(128), default=None)
    created_at: Mapped[datetime.datetime] = mapped_column(
        DateTime(timezone=True),
        default_factory=utcnow,
    )
    reset_codes: Mapped[list["PasswordResetCode"]] = relationship(
        back_populates="user",
        init=False,
    )

    __table_args__ = (
        UniqueConstraint("nickname", name="uq_users_nickname"),
        UniqueConstraint("email", name="uq_users_email"),
        UniqueConstraint("google_uid", name="uq_users_google_uid"),
    )

    @property
    def credential(self) -> Credential:
        if not self.password_hash or self.password_hash == LEGACY_FEDERATED_SENTINEL:
            return FederatedOnly()
        return LocalPassword(self.password_hash)


class PasswordResetCode(Base):
    __tablename__ = "password_reset_codes"

    id: Mapped[int] = mapped_column(primary_key=True, init=False)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id"), index=True)
    code_hash: Mapped[str] = mapped_column(repr=False)
    expires_at: Mapped[datetime.datetime] = mapped_column(DateTime(timezone=True))
    created_at: Mapped[datetime.datetime] = mapped_column(
        DateTime(timezone=True),
        default_factory=utcnow,
    )
    used_at: Mapped[datetime.datetime | None] = mapped_column(
        DateTime(timezone=True), default=None
    )
    token_consumed_at: Mapped[datetime.datetime | None] = mapped_column(
        DateTime(timezone=True), default=None
    )
    user: Mapped[User] = relationship(back_populates="reset_codes", init=False)
