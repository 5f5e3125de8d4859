import secrets
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta

import jwt
from argon2 import PasswordHasher
from argon2.exceptions import InvalidHashError, VerificationError

from gamefinder.core.config import Settings

ph = PasswordHasher(time_cost=3, memory_cost=64 * 1024, parallelism=2)

MIN_PASSWORD_LENGTH = 6

SESSION_TOKEN_TYPE = "session"
RESET_TOKEN_TYPE = "pwd_reset"


def hash_password(plain: str) -> str:
    return ph.hash(plain)


def verify_password(plain: str, hashed: str) -> bool:
    try:
        return ph.verify(hashed, plain)
    except (VerificationError, InvalidHashError):
        return False


def generate_reset_code() -> str:
    """Uniform 4-digit code in the range 1000-9999."""
    return str(1000 + secrets.randbelow(9000))


class InvalidToken(Exception):
    """Token failed signature, expiry or purpose checks."""


@dataclass(frozen=True)
class ResetClaims:
    account_id: int
    code_id: int


class TokenService:
    """Mints and verifies the signed bearer tokens handed out by the API.

    Session tokens prove a login; reset tokens prove a reset code was verified
    for one account. Each carries a ``typ`` claim and is rejected wherever the
    other kind is expected. Expired, tampered and mistyped tokens all surface
    as :class:`InvalidToken`.
    """

    def __init__(
        self,
        secret: str,
        algorithm: str = "HS256",
        session_ttl: timedelta = timedelta(days=7),
        reset_ttl: timedelta = timedelta(minutes=15),
    ) -> None:
        if not secret:
            raise ValueError("JWT secret must not be empty")
        self._secret = secret
        self._algorithm = algorithm
        self.session_ttl = session_ttl
        self.reset_ttl = reset_ttl

    @classmethod
    def from_settings(cls, settings: Settings) -> "TokenService":
        return cls(
            settings.jwt_secret,
            algorithm=settings.jwt_algo,
            session_ttl=timedelta(days=settings.session_days),
            reset_ttl=timedelta(minutes=settings.reset_token_min),
        )

    def _encode(self, sub: int, typ: str, ttl: timedelta, **extra) -> str:
        now = datetime.now(UTC)
        payload = {
            "sub": str(sub),
            "typ": typ,
            "iat": int(now.timestamp()),
            "exp": int((now + ttl).timestamp()),
            **extra,
        }
        return jwt.encode(payload, self._secret, algorithm=self._algorithm)

    def _decode(self, token: str, typ: str) -> tuple[int, dict]:
        try:
            payload = jwt.decode(
                token,
                self._secret,
                algorithms=[self._algorithm],
                options={"require": ["sub", "exp"]},
            )
        except jwt.InvalidTokenError as exc:
            raise InvalidToken("Invalid token") from exc

        if payload.get("typ") != typ:
            raise InvalidToken("Invalid token")
        try:
            account_id = int(payload["sub"])
        except (TypeError, ValueError) as exc:
            raise InvalidToken("Invalid token") from exc
        return account_id, payload

    def mint_session(self, account_id: int) -> str:
        return self._encode(account_id, SESSION_TOKEN_TYPE, self.session_ttl)

    def mint_reset(self, account_id: int, code_id: int) -> str:
        return self._encode(account_id, RESET_TOKEN_TYPE, self.reset_ttl, rc=code_id)

    def verify_session(self, token: str) -> int:
        account_id, _ = self._decode(token, SESSION_TOKEN_TYPE)
        return account_id

    def verify_reset(self, token: str) -> ResetClaims:
        account_id, payload = self._decode(token, RESET_TOKEN_TYPE)
        code_id = payload.get("rc")
        if not isinstance(code_id, int):
            raise InvalidToken("Invalid token")
        return ResetClaims(account_id=account_id, code_id=code_id)
