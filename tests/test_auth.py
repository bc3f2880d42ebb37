from datetime import timedelta

from teamdesk.models import Role
from teamdesk.utils.security import create_access_token, create_reset_token

from .conftest import PASSWORD


def test_register_creates_plain_user(client):
    response = client.post("/api/auth/register", json={
        "name": "New Person",
        "email": "New.Person@Example.com",
        "password": "pw123456",
        "confirm_password": "pw123456",
    })

    assert response.status_code == 201
    body = response.json()
    assert body["token_type"] == "bearer"
    assert body["access_token"]
    assert body["user"]["email"] == "new.person@example.com"
    assert body["user"]["role"] == "user"
    assert body["user"]["can_manage_tasks"] is False


def test_register_rejects_mismatched_passwords(client):
    response = client.post("/api/auth/register", json={
        "name": "X", "email": "x@example.com", "password": "a", "confirm_password": "b",
    })
    assert response.status_code == 400


def test_register_rejects_invalid_body(client):
    response = client.post("/api/auth/register", json={"name": "X", "email": "not-an-email"})
    assert response.status_code == 400
    assert response.json()["detail"] == "Validation error"


def test_register_duplicate_email_conflicts(client, make_user):
    make_user(email="taken@example.com")
    response = client.post("/api/auth/register", json={
        "name": "Again", "email": "taken@example.com", "password": "pw",
    })
    assert response.status_code == 409


def test_login_returns_token_usable_on_protected_routes(client, make_user):
    user = make_user(role=Role.TEAM_MEMBER, email="member@example.com")

    response = client.post("/api/auth/login", json={"email": "member@example.com", "password": PASSWORD})
    assert response.status_code == 200
    token = response.json()["access_token"]

    me = client.get("/api/users/me", headers={"Authorization": f"Bearer {token}"})
    assert me.status_code == 200
    assert me.json()["id"] == user.id


def test_login_rejects_wrong_password_and_deleted_users(client, make_user):
    make_user(email="live@example.com")
    make_user(email="gone@example.com", is_deleted=True)

    wrong = client.post("/api/auth/login", json={"email": "live@example.com", "password": "nope"})
    deleted = client.post("/api/auth/login", json={"email": "gone@example.com", "password": PASSWORD})

    assert wrong.status_code == 401
    assert deleted.status_code == 401


def test_missing_invalid_and_expired_tokens_are_401(client, make_user):
    user = make_user()
    expired = create_access_token({"sub": user.email}, expires_delta=timedelta(minutes=-5))

    assert client.get("/api/users/").status_code == 401
    assert client.get("/api/users/", headers={"Authorization": "Bearer garbage"}).status_code == 401
    assert client.get("/api/users/", headers={"Authorization": f"Bearer {expired}"}).status_code == 401


def test_token_of_soft_deleted_user_is_rejected(client, make_user, headers):
    user = make_user(is_deleted=True)
    response = client.get("/api/users/me", headers=headers(user))
    assert response.status_code == 401


def test_unauthenticated_is_401_and_unauthorized_is_403(client, make_user, headers):
    member = make_user(role=Role.TEAM_MEMBER)

    assert client.get("/api/users/all").status_code == 401
    assert client.get("/api/users/all", headers=headers(member)).status_code == 403


def test_verify_never_fails(client, make_user, headers):
    user = make_user()

    assert client.get("/api/auth/verify").json() == {"valid": False, "user": None}
    assert client.get("/api/auth/verify", headers={"Authorization": "Bearer junk"}).json()["valid"] is False

    body = client.get("/api/auth/verify", headers=headers(user)).json()
    assert body["valid"] is True
    assert body["user"]["id"] == user.id


def test_reset_password_requires_current_password(client, make_user, headers):
    user = make_user(email="reset@example.com")

    bad = client.post("/api/auth/reset-password", headers=headers(user),
                      json={"current_password": "wrong", "new_password": "fresh-pass"})
    assert bad.status_code == 400

    good = client.post("/api/auth/reset-password", headers=headers(user),
                       json={"current_password": PASSWORD, "new_password": "fresh-pass"})
    assert good.status_code == 200

    login = client.post("/api/auth/login", json={"email": "reset@example.com", "password": "fresh-pass"})
    assert login.status_code == 200


def test_forgot_password_flow(client, make_user):
    make_user(email="forgetful@example.com")

    unknown = client.post("/api/auth/forgot-password", json={"email": "nobody@example.com"})
    assert unknown.status_code == 200
    assert unknown.json().get("reset_token") is None

    known = client.post("/api/auth/forgot-password", json={"email": "forgetful@example.com"})
    assert known.json()["message"] == unknown.json()["message"]
    token = known.json()["reset_token"]

    done = client.post("/api/auth/complete-reset", json={"token": token, "new_password": "brand-new"})
    assert done.status_code == 200

    login = client.post("/api/auth/login", json={"email": "forgetful@example.com", "password": "brand-new"})
    assert login.status_code == 200


def test_complete_reset_rejects_access_tokens(client, make_user):
    user = make_user()
    access_token = create_access_token({"sub": user.email})

    response = client.post("/api/auth/complete-reset", json={"token": access_token, "new_password": "x"})
    assert response.status_code == 400


def test_reset_token_cannot_authenticate(client, make_user):
    user = make_user()
    reset_token = create_reset_token(user.id)

    response = client.get("/api/users/me", headers={"Authorization": f"Bearer {reset_token}"})
    assert response.status_code == 401
