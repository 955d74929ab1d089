"""Account registration, sign-in and profile tests."""

import uuid

from agromart.core.security import decode_access_token


def _email(prefix):
    return f"{prefix}_{uuid.uuid4().hex[:8]}@test.com"


def test_register_and_login_as_farmer(client):
    """Register -> login -> /me works, and the token names the account."""
    email = _email("grower")
    reg = client.post(
        "/auth/register",
        json={"email": email, "password": "secret123", "full_name": "Ada Grower", "role": "farmer"},
    )
    assert reg.status_code == 200
    data = reg.json()
    assert data["email"] == email
    assert (data["role"], data["status"], data["farm_verified"], data["strikes_count"]) == ("farmer", "active", False, 0)

    login = client.post("/auth/login", json={"email": email, "password": "secret123"})
    assert login.status_code == 200
    token = login.json()["access_token"]
    claims = decode_access_token(token)
    assert (claims["sub"], claims["role"]) == (email, "farmer")

    me = client.get("/auth/me", headers={"Authorization": f"Bearer {token}"})
    assert me.status_code == 200
    assert me.json()["email"] == email


def test_email_is_case_insensitive(client):
    email = _email("mixed")
    client.post("/auth/register", json={"email": email.upper(), "password": "pw1234", "full_name": "Mixed"})
    login = client.post("/auth/login", json={"email": email.title(), "password": "pw1234"})
    assert login.status_code == 200
    dup = client.post("/auth/register", json={"email": email, "password": "pw1234", "full_name": "Again"})
    assert dup.status_code == 400


def test_cannot_self_register_as_admin(client):
    r = client.post(
        "/auth/register",
        json={"email": _email("boss"), "password": "pw1234", "full_name": "Boss", "role": "admin"},
    )
    assert r.status_code == 422


def test_wrong_password_fails(client):
    email = _email("fail")
    client.post("/auth/register", json={"email": email, "password": "right", "full_name": "Fail User"})
    assert client.post("/auth/login", json={"email": email, "password": "wrong"}).status_code == 401


def test_me_requires_auth(client):
    assert client.get("/auth/me").status_code == 401
    assert client.get("/auth/me", headers={"Authorization": "Bearer not-a-token"}).status_code == 401


def test_update_profile(client, make_user):
    user = make_user("renamer")
    other = make_user("taken")
    r = client.put("/auth/me", json={"full_name": "New Name"}, headers=user.headers)
    assert r.status_code == 200
    assert r.json()["full_name"] == "New Name"
    assert client.put("/auth/me", json={"username": other.username}, headers=user.headers).status_code == 400
