import os
from collections.abc import Generator

os.environ.setdefault("JWT_SECRET", "test-secret-with-enough-length-for-hs256")
os.environ.setdefault("DATABASE_URL", "sqlite+pysqlite:///:memory:")
os.environ.setdefault("FIREBASE_PROJECT_ID", "gamefinder-test")

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy import StaticPool, create_engine  # noqa: E402
from sqlalchemy.orm import Session, sessionmaker  # noqa: E402

from gamefinder.api.deps import get_assertion_verifier, get_notifier  # noqa: E402
from gamefinder.core.database import Base, enable_sqlite_savepoints, get_db  # noqa: E402
from gamefinder.core.errors import InvalidAssertion  # noqa: E402
from gamefinder.core.security import TokenService, hash_password  # noqa: E402
from gamefinder.main import app  # noqa: E402
from gamefinder.models.users import User  # noqa: E402
from gamefinder.services.federated_service import FederatedAssertion  # noqa: E402


@pytest.fixture(scope="session")
def engine():
    engine = create_engine(
        "sqlite+pysqlite:///:memory:",
        future=True,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    enable_sqlite_savepoints(engine)
    Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def db_session(engine) -> Generator[Session]:
    connection = engine.connect()
    trans = connection.begin()

    TestingSessionLocal = sessionmaker(
        bind=connection, autoflush=False, expire_on_commit=False, future=True
    )
    session = TestingSessionLocal()

    try:
        yield session
    finally:
        session.close()
        trans.rollback()
        connection.close()


class RecordingNotifier:
    def __init__(self, error: Exception | None = None):
        self.sent: list[tuple[str, str, int]] = []
        self.error = error

    def __call__(self, to_email: str, code: str, validity_minutes: int) -> None:
        if self.error:
            raise self.error
        self.sent.append((to_email, code, validity_minutes))

    @property
    def last_code(self) -> str:
        return self.sent[-1][1]


class FakeGoogleVerifier:
    """Maps raw ID tokens to assertions; unknown tokens are rejected."""

    def __init__(self):
        self.assertions: dict[str, FederatedAssertion] = {}

    def __call__(self, raw_token: str) -> FederatedAssertion:
        try:
            return self.assertions[raw_token]
        except KeyError:
            raise InvalidAssertion() from None


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture
def google_verifier() -> FakeGoogleVerifier:
    return FakeGoogleVerifier()


@pytest.fixture
def client(db_session, notifier, google_verifier) -> Generator[TestClient]:
    # Override FastAPI's get_db to use our testing session
    def _override_get_db():
        try:
            yield db_session
        finally:
            pass

    app.dependency_overrides[get_db] = _override_get_db
    app.dependency_overrides[get_notifier] = lambda: notifier
    app.dependency_overrides[get_assertion_verifier] = lambda: google_verifier
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


@pytest.fixture
def token_service() -> TokenService:
    return app.state.token_service


@pytest.fixture
def make_user(db_session):
    def _make(**kwargs) -> User:
        return create_test_user(db_session, **kwargs)

    return _make


@pytest.fixture
def test_user(db_session) -> User:
    return create_test_user(db_session)


@pytest.fixture
def auth_client(client, test_user, token_service) -> tuple[TestClient, User]:
    token = token_service.mint_session(test_user.id)
    client.headers["Authorization"] = f"Bearer {token}"
    return client, test_user


def create_test_user(
    db,
    nickname: str = "tester",
    email: str = "test@example.com",
    password: str | None = "secret1",
    google_uid: str | None = None,
) -> User:
    user = User(
        nickname=nickname,
        email=email,
        password_hash=hash_password(password) if password else None,
        google_uid=google_uid,
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    return user
