import logging
import re
import time
from collections.abc import Iterator

from sqlalchemy.orm import Session

from gamefinder.core.errors import Conflict
from gamefinder.models.users import NICKNAME_MAX_LENGTH, User
from gamefinder.services import directory

logger = logging.getLogger(__name__)

BASE_MAX_LENGTH = 30
SUFFIX_ROOM = 2
MAX_PROBES = 1000
MAX_INSERT_ATTEMPTS = 5

_WHITESPACE_RE = re.compile(r"\s+")


def normalize_nickname_base(candidate: str | None) -> str:
    clean = _WHITESPACE_RE.sub("_", (candidate or "").strip())
    return clean or "user"


def nickname_candidates(base: str, limit: int = BASE_MAX_LENGTH) -> Iterator[str]:
    yield base[:limit]
    for i in range(1, MAX_PROBES):
        suffix = str(i)
        keep = min(limit - SUFFIX_ROOM, NICKNAME_MAX_LENGTH - len(suffix))
        yield f"{base[:keep]}{suffix}"


def allocate_nickname(
    db: Session, candidate: str | None, *, as_entered: bool = False
) -> str:
    """Return the first free nickname derived from ``candidate``.

    Free means absent from the directory at the moment of the probe. Derived
    bases (display names, email local parts) are normalized and cut to
    ``BASE_MAX_LENGTH``; with ``as_entered`` a chosen nickname is probed
    unchanged and only shortened to make room for a suffix. Once all
    candidates are taken the base gets a millisecond timestamp suffix, which is
    returned unchecked.
    """
    if as_entered:
        base = (candidate or "").strip() or "user"
        limit = NICKNAME_MAX_LENGTH
    else:
        base = normalize_nickname_base(candidate)
        limit = BASE_MAX_LENGTH
    for nickname in nickname_candidates(base, limit):
        if not directory.nickname_exists(db, nickname):
            return nickname
    return f"{base}_{int(time.time() * 1000)}"


def create_account(
    db: Session,
    *,
    nickname_base: str | None,
    email: str,
    password_hash: str | None,
    google_uid: str | None = None,
    as_entered: bool = False,
) -> User:
    """Insert a new account under a freshly allocated nickname.

    A concurrent signup can claim the allocated nickname between the probe and
    the insert; the unique constraint rejects the loser, which allocates again
    and retries. Email and Google id violations are not retried and propagate
    as :class:`directory.EmailTaken` and :class:`directory.GoogleUidTaken`.
    """
    for attempt in range(1, MAX_INSERT_ATTEMPTS + 1):
        nickname = allocate_nickname(db, nickname_base, as_entered=as_entered)
        try:
            return directory.insert_user(
                db,
                nickname=nickname,
                email=email,
                password_hash=password_hash,
                google_uid=google_uid,
            )
        except directory.NicknameTaken:
            logger.info(
                "Nickname %r claimed concurrently (attempt %d), retrying",
                nickname,
                attempt,
            )

    raise Conflict("Could not allocate a nickname", code="NICKNAME_TAKEN")
