from datetime import timedelta

from app.core.errors import StoreError
from app.core.security import create_access_token, decode_access_token
from app.db.dynamo import UserStore


def test_signup_missing_fields(client):
    res = client.post("/api/auth/signup", json={})
    assert res.status_code == 400
    assert res.json()["message"] == "Missing Required Fields"


def test_signup_blank_email_is_missing(client):
    res = client.post("/api/auth/signup", json={"name": "John", "email": "", "password": "pw"})
    assert res.status_code == 400
    assert res.json()["message"] == "Missing Required Fields"


def test_signup_invalid_email(client):
    res = client.post("/api/auth/signup", json={"name": "John", "email": "not-an-email", "password": "pw"})
    assert res.status_code == 400
    assert res.json()["message"] == "Invalid Request"


def test_signup_returns_user_and_token(client, settings):
    res = client.post(
        "/api/auth/signup",
        json={
            "name": "John",
            "email": "john@example.com",
            "password": "pw123456",
            "profileImageUrl": "http://example.com/profile.jpg",
        },
    )
    assert res.status_code == 201
    body = res.json()
    assert body["user"]["email"] == "john@example.com"
    assert body["user"]["profileImageUrl"] == "http://example.com/profile.jpg"
    assert "password" not in body["user"]
    assert "passwordHash" not in body["user"]
    assert decode_access_token(body["token"], settings) == body["id"]


def test_signup_duplicate_email(client, sign_up):
    sign_up()
    res = client.post(
        "/api/auth/signup",
        json={"name": "Someone Else", "email": "John@Example.com", "password": "different"},
    )
    assert res.status_code == 400
    assert res.json()["message"] == "User With This Email Already Exists"


def test_signup_store_failure(client, monkeypatch):
    def fail(self, user):
        raise StoreError("Simulated signup error")

    monkeypatch.setattr(UserStore, "create", fail)
    res = client.post("/api/auth/signup", json={"name": "John", "email": "john@example.com", "password": "pw"})
    assert res.status_code == 500
    assert res.json() == {"message": "Server Error", "error": "Simulated signup error"}


def test_signin_missing_fields(client):
    res = client.post("/api/auth/signin", json={})
    assert res.status_code == 400
    assert res.json()["message"] == "Missing Required Fields"


def test_signin_blank_email_is_missing(client):
    res = client.post("/api/auth/signin", json={"email": "  ", "password": "pw123456"})
    assert res.status_code == 400
    assert res.json()["message"] == "Missing Required Fields"


def test_signin_unknown_email(client, sign_up):
    sign_up()
    res = client.post("/api/auth/signin", json={"email": "nouser@example.com", "password": "pw123456"})
    assert res.status_code == 400
    assert res.json()["message"] == "No User Found"


def test_signin_wrong_password(client, sign_up):
    sign_up()
    res = client.post("/api/auth/signin", json={"email": "john@example.com", "password": "wrongpassword"})
    assert res.status_code == 401
    assert res.json()["message"] == "Invalid Credentials"


def test_signin_success(client, sign_up):
    created = sign_up()
    res = client.post("/api/auth/signin", json={"email": "john@example.com", "password": "pw123456"})
    assert res.status_code == 200
    body = res.json()
    assert body["id"] == created["id"]
    assert body["user"]["email"] == "john@example.com"
    assert body["token"]


def test_me_requires_token(client):
    res = client.get("/api/auth/me")
    assert res.status_code == 401
    assert res.json()["message"] == "Not authorized, no token"


def test_me_rejects_garbage_token(client):
    res = client.get("/api/auth/me", headers={"Authorization": "Bearer invalidtoken"})
    assert res.status_code == 401
    assert res.json()["message"] == "Not authorized, token failed"


def test_me_rejects_expired_token(client, settings, sign_up):
    user_id = sign_up()["id"]
    token = create_access_token(user_id, settings, expires_delta=timedelta(minutes=-1))
    res = client.get("/api/auth/me", headers={"Authorization": f"Bearer {token}"})
    assert res.status_code == 401


def test_me_rejects_token_of_missing_user(client, settings):
    token = create_access_token("no-such-user", settings)
    res = client.get("/api/auth/me", headers={"Authorization": f"Bearer {token}"})
    assert res.status_code == 404
    assert res.json()["message"] == "User Not Found"


def test_me_returns_profile(client, auth_headers):
    res = client.get("/api/auth/me", headers=auth_headers)
    assert res.status_code == 200
    body = res.json()
    assert body["email"] == "john@example.com"
    assert body["name"] == "John"
    assert "passwordHash" not in body


def test_update_profile(client, auth_headers, settings):
    res = client.put(
        "/api/auth/me",
        headers=auth_headers,
        json={"name": "Johnny", "email": "johnny@example.com", "password": "newpass99"},
    )
    assert res.status_code == 200
    body = res.json()
    assert body["user"]["name"] == "Johnny"
    assert body["user"]["email"] == "johnny@example.com"
    assert decode_access_token(body["token"], settings) == body["id"]

    # New credentials work, old email is released
    res = client.post("/api/auth/signin", json={"email": "johnny@example.com", "password": "newpass99"})
    assert res.status_code == 200
    res = client.post("/api/auth/signin", json={"email": "john@example.com", "password": "newpass99"})
    assert res.status_code == 400
    res = client.post("/api/auth/signup", json={"name": "New John", "email": "john@example.com", "password": "x"})
    assert res.status_code == 201


def test_update_to_taken_email(client, auth_headers, sign_up):
    sign_up(email="jane@example.com", name="Jane")
    res = client.put("/api/auth/me", headers=auth_headers, json={"email": "jane@example.com"})
    assert res.status_code == 400
    assert res.json()["message"] == "User With This Email Already Exists"

    # Nothing changed
    res = client.get("/api/auth/me", headers=auth_headers)
    assert res.json()["email"] == "john@example.com"


def test_update_keeping_own_email(client, auth_headers):
    res = client.put("/api/auth/me", headers=auth_headers, json={"email": "john@example.com", "name": "J"})
    assert res.status_code == 200
    assert res.json()["user"]["name"] == "J"
