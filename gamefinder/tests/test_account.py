from gamefinder.core.security import verify_password
from gamefinder.models.users import User


def test_me_returns_profile(auth_client):
    client, user = auth_client

    response = client.get("/api/account/me")

    assert response.status_code == 200
    assert response.json() == {"id": user.id, "nickname": "tester", "email": "test@example.com"}


def test_me_reports_vanished_account(client, token_service):
    token = token_service.mint_session(987654)

    response = client.get(
        "/api/account/me", headers={"Authorization": f"Bearer {token}"}
    )

    assert response.status_code == 404
    assert response.json() == {"detail": "User not found", "code": "NOT_FOUND"}


def test_verify_current_credentials(auth_client):
    client, _ = auth_client

    ok = client.post(
        "/api/account/email/verify-current",
        json={"email": "TEST@example.com", "password": "secret1"},
    )
    wrong_password = client.post(
        "/api/account/email/verify-current",
        json={"email": "test@example.com", "password": "nope"},
    )
    wrong_email = client.post(
        "/api/account/email/verify-current",
        json={"email": "other@example.com", "password": "secret1"},
    )

    assert ok.status_code == 200
    assert ok.json() == {"message": "ok"}
    assert wrong_password.status_code == wrong_email.status_code == 400
    assert wrong_password.json() == wrong_email.json()


def test_verify_current_without_local_password(client, make_user, token_service):
    user = make_user(nickname="fed", email="fed@example.com", password=None, google_uid="g")
    client.headers["Authorization"] = f"Bearer {token_service.mint_session(user.id)}"

    response = client.post(
        "/api/account/email/verify-current",
        json={"email": "fed@example.com", "password": "whatever"},
    )

    assert response.status_code == 400
    assert response.json()["code"] == "NO_LOCAL_PASSWORD"


def test_change_password(auth_client, db_session):
    client, user = auth_client

    response = client.patch(
        "/api/account/password",
        json={"current_password": "secret1", "new_password": "better1"},
    )

    assert response.status_code == 200
    db_session.refresh(user)
    assert verify_password("better1", user.password_hash)


def test_change_password_errors(auth_client):
    client, _ = auth_client

    def change(body):
        return client.patch("/api/account/password", json=body).json()["code"]

    assert change({"new_password": "better1"}) == "CURRENT_REQUIRED"
    assert change({"current_password": "secret1", "new_password": "123"}) == "NEW_WEAK"
    assert (
        change({"current_password": "wrong-one", "new_password": "better1"})
        == "CURRENT_INCORRECT"
    )


def test_change_password_without_local_password(client, make_user, token_service):
    user = make_user(nickname="fed", email="fed@example.com", password=None, google_uid="g")
    client.headers["Authorization"] = f"Bearer {token_service.mint_session(user.id)}"

    response = client.patch(
        "/api/account/password",
        json={"current_password": "anything", "new_password": "better1"},
    )

    assert response.status_code == 400
    assert response.json()["code"] == "NO_LOCAL_PASSWORD"


def test_update_nickname_and_email(auth_client, db_session):
    client, user = auth_client

    response = client.patch(
        "/api/account",
        json={"nickname": "  New Name ", "email": " New@Example.com "},
    )

    assert response.status_code == 200
    assert response.json() == {"id": user.id, "nickname": "New Name", "email": "new@example.com"}
    stored = db_session.get(User, user.id)
    assert stored.email == "new@example.com"


def test_update_rejects_taken_values(auth_client, make_user):
    client, _ = auth_client
    make_user(nickname="taken", email="taken@example.com")

    nickname = client.patch("/api/account", json={"nickname": "taken"})
    email = client.patch("/api/account", json={"email": "taken@example.com"})

    assert nickname.status_code == email.status_code == 409
    assert nickname.json()["code"] == "NICKNAME_TAKEN"
    assert email.json()["code"] == "EMAIL_TAKEN"


def test_update_validation(auth_client):
    client, _ = auth_client

    def update(body):
        response = client.patch("/api/account", json=body)
        assert response.status_code == 400
        return response.json()["code"]

    assert update({}) == "NOTHING_TO_UPDATE"
    assert update({"nickname": "   "}) == "NICKNAME_REQUIRED"
    assert update({"nickname": "x" * 51}) == "NICKNAME_TOO_LONG"
    assert update({"email": "not-an-email"}) == "EMAIL_INVALID"
    assert update({"email": "a" * 95 + "@x.com"}) == "EMAIL_TOO_LONG"


def test_update_rejects_malformed_email_and_keeps_old_one(auth_client, db_session):
    client, user = auth_client

    response = client.patch("/api/account", json={"email": "a..b@example.com"})

    assert response.status_code == 400
    assert response.json()["code"] == "EMAIL_INVALID"
    db_session.refresh(user)
    assert user.email == "test@example.com"
    assert client.get("/api/account/me").status_code == 200


def test_keeping_own_nickname_is_allowed(auth_client):
    client, _ = auth_client

    response = client.patch("/api/account", json={"nickname": "tester"})

    assert response.status_code == 200
