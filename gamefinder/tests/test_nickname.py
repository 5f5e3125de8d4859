import pytest

from gamefinder.core.errors import Conflict
from gamefinder.services import directory, nickname_service


def test_normalize_nickname_base():
    assert nickname_service.normalize_nickname_base("  Pro   Gamer \t X ") == "Pro_Gamer_X"
    assert nickname_service.normalize_nickname_base("") == "user"
    assert nickname_service.normalize_nickname_base("   ") == "user"
    assert nickname_service.normalize_nickname_base(None) == "user"


def test_candidates_truncate_base():
    base = "a" * 40
    candidates = nickname_service.nickname_candidates(base)

    assert next(candidates) == "a" * 30
    assert next(candidates) == "a" * 28 + "1"
    assert next(candidates) == "a" * 28 + "2"


def test_allocate_returns_base_when_free(db_session):
    assert nickname_service.allocate_nickname(db_session, "Ana") == "Ana"


def test_allocate_skips_taken_nicknames(db_session, make_user):
    make_user(nickname="Ana", email="a1@example.com")
    make_user(nickname="Ana1", email="a2@example.com")

    assert nickname_service.allocate_nickname(db_session, "Ana") == "Ana2"


def test_allocate_falls_back_to_timestamp(db_session, monkeypatch):
    monkeypatch.setattr(directory, "nickname_exists", lambda db, nickname: True)
    monkeypatch.setattr(nickname_service.time, "time", lambda: 1700000000.5)

    assert nickname_service.allocate_nickname(db_session, "Ana") == "Ana_1700000000500"


def test_create_account_retries_when_nickname_is_claimed_concurrently(
    db_session, make_user, monkeypatch
):
    make_user(nickname="Ana", email="first@example.com")

    # Simulate a competing signup that inserted "Ana" after our probe saw it free.
    real_exists = directory.nickname_exists
    probes = []

    def stale_first_probe(db, nickname):
        probes.append(nickname)
        if len(probes) == 1:
            return False
        return real_exists(db, nickname)

    monkeypatch.setattr(directory, "nickname_exists", stale_first_probe)

    user = nickname_service.create_account(
        db_session,
        nickname_base="Ana",
        email="second@example.com",
        password_hash=None,
    )
    db_session.commit()

    assert user.id is not None
    assert user.nickname == "Ana1"
    assert probes[:3] == ["Ana", "Ana", "Ana1"]


def test_create_account_gives_up_after_repeated_collisions(db_session, make_user, monkeypatch):
    make_user(nickname="Ana", email="first@example.com")
    monkeypatch.setattr(nickname_service, "allocate_nickname", lambda db, base, as_entered=False: "Ana")

    with pytest.raises(Conflict):
        nickname_service.create_account(
            db_session,
            nickname_base="Ana",
            email="second@example.com",
            password_hash=None,
        )


def test_create_account_does_not_retry_email_conflicts(db_session, make_user):
    make_user(nickname="Ana", email="ana@example.com")

    with pytest.raises(directory.EmailTaken):
        nickname_service.create_account(
            db_session,
            nickname_base="Other",
            email="ANA@example.com",
            password_hash=None,
        )


def test_allocate_as_entered_keeps_chosen_nickname(db_session):
    chosen = "Ana Maria " + "x" * 35

    assert nickname_service.allocate_nickname(db_session, "  Ana Maria ", as_entered=True) == "Ana Maria"
    assert nickname_service.allocate_nickname(db_session, chosen, as_entered=True) == chosen


def test_allocate_as_entered_suffix_fits_column(db_session, make_user):
    chosen = "n" * 50
    make_user(nickname=chosen, email="long@example.com")

    allocated = nickname_service.allocate_nickname(db_session, chosen, as_entered=True)

    assert allocated == "n" * 48 + "1"
