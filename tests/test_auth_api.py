import pytest

from app.utils.settings import OTP_MAX_ATTEMPTS

REGISTER = {
    "email": "ann@example.com",
    "password": "secret123",
    "first_name": "Ann",
    "last_name": "Smith",
    "phone": "+919876543210",
}


def test_register_login_me(client):
    r = client.post("/auth/register", json=REGISTER)
    assert r.status_code == 201
    body = r.json()
    assert body["user"]["name"] == "Ann Smith"
    assert body["user"]["role"] == "user"

    r = client.post("/auth/login", json={"email": REGISTER["email"], "password": REGISTER["password"]})
    assert r.status_code == 200
    token = r.json()["token"]

    r = client.get("/auth/me", headers={"Authorization": f"Bearer {token}"})
    assert r.status_code == 200
    assert r.json()["user"]["email"] == REGISTER["email"]


def test_register_duplicate_email(client):
    assert client.post("/auth/register", json=REGISTER).status_code == 201
    r = client.post("/auth/register", json={**REGISTER, "phone": "+919800000000"})
    assert r.status_code == 409
    assert r.json() == {"success": False, "message": "User with this email already exists"}


def test_login_wrong_password(client, make_user):
    user = make_user()
    r = client.post("/auth/login", json={"email": user.email, "password": "nope-nope"})
    assert r.status_code == 401
    assert r.json()["message"] == "Invalid email or password"


def test_login_inactive_user(client, make_user):
    user = make_user(status="inactive")
    r = client.post("/auth/login", json={"email": user.email, "password": "secret123"})
    assert r.status_code == 403


def test_me_requires_token(client):
    r = client.get("/auth/me")
    assert r.status_code == 401
    assert r.json()["message"] == "Not authenticated"


def test_garbage_token(client):
    r = client.get("/auth/me", headers={"Authorization": "Bearer not-a-jwt"})
    assert r.status_code == 401
    assert r.json()["message"] == "Invalid token"


def test_logout_revokes_token(client, make_user, auth_headers, fake_redis):
    headers = auth_headers(make_user())

    r = client.post("/auth/logout", headers=headers)
    assert r.status_code == 200
    assert any(key.startswith("blacklist:") for key in fake_redis.store)

    r = client.get("/auth/me", headers=headers)
    assert r.status_code == 401
    assert r.json()["message"] == "Token revoked"


@pytest.fixture
def fixed_otp(monkeypatch):
    monkeypatch.setattr("app.services.otp_service.generate_otp", lambda: "123456")
    return "123456"


def test_otp_login_creates_phone_user(client, fixed_otp, fake_redis):
    phone = "+919811111111"
    r = client.post("/auth/otp/request", json={"phone": phone})
    assert r.status_code == 200
    assert f"otp:{phone}" in fake_redis.store
    # only the hash is stored
    assert fake_redis.store[f"otp:{phone}"] != fixed_otp

    r = client.post("/auth/otp/verify", json={"phone": phone, "otp": fixed_otp})
    assert r.status_code == 200
    user = r.json()["user"]
    assert user["phone"] == phone
    assert user["is_phone_verified"] is True

    # single use
    r = client.post("/auth/otp/verify", json={"phone": phone, "otp": fixed_otp})
    assert r.status_code == 401


def test_otp_marks_existing_user_verified(client, fixed_otp, make_user):
    user = make_user(phone="+919822222222")
    client.post("/auth/otp/request", json={"phone": user.phone})

    r = client.post("/auth/otp/verify", json={"phone": user.phone, "otp": fixed_otp})

    assert r.status_code == 200
    assert r.json()["user"]["id"] == user.id
    assert r.json()["user"]["is_phone_verified"] is True


def test_otp_wrong_code_then_lockout(client, fixed_otp):
    phone = "+919833333333"
    client.post("/auth/otp/request", json={"phone": phone})

    for _ in range(OTP_MAX_ATTEMPTS):
        r = client.post("/auth/otp/verify", json={"phone": phone, "otp": "000000"})
        assert r.status_code == 401
        assert r.json()["message"] == "Invalid OTP"

    # even the right code is refused once attempts are spent
    r = client.post("/auth/otp/verify", json={"phone": phone, "otp": fixed_otp})
    assert r.status_code == 429


def test_otp_not_requested(client):
    r = client.post("/auth/otp/verify", json={"phone": "+919844444444", "otp": "123456"})
    assert r.status_code == 401
    assert r.json()["message"] == "OTP expired or not requested"


def test_google_creates_user(client, google):
    google.tokens["tok-1"] = {"google_id": "g-1", "email": "gina@example.com", "name": "Gina"}

    r = client.post("/auth/google", json={"id_token": "tok-1"})

    assert r.status_code == 200
    assert r.json()["user"]["email"] == "gina@example.com"
    assert r.json()["user"]["is_email_verified"] is True

    # second login finds the same account
    again = client.post("/auth/google", json={"id_token": "tok-1"})
    assert again.json()["user"]["id"] == r.json()["user"]["id"]


def test_google_links_existing_email(client, google, make_user, db):
    user = make_user(email="link@example.com")
    google.tokens["tok-2"] = {"google_id": "g-2", "email": "link@example.com", "name": "Link"}

    r = client.post("/auth/google", json={"id_token": "tok-2"})

    assert r.json()["user"]["id"] == user.id
    db.refresh(user)
    assert user.google_id == "g-2"


def test_google_bad_token(client):
    r = client.post("/auth/google", json={"id_token": "forged"})
    assert r.status_code == 401


def test_admin_routes_need_admin(client, make_user, auth_headers):
    headers = auth_headers(make_user())
    r = client.post("/admin/categories", json={"name": "Nope"}, headers=headers)
    assert r.status_code == 403
    assert r.json()["message"] == "Admin access required"

    admin_headers = auth_headers(make_user(role="admin"))
    r = client.post("/admin/categories", json={"name": "Yes"}, headers=admin_headers)
    assert r.status_code == 201
