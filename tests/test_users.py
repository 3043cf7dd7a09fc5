from datetime import datetime, timedelta, timezone

from conftest import auth_headers, make_user, submit_kyc
from handyhive.models.revoked_token_model import RevokedToken


def register(client, email, is_provider=False):
    return client.post(
        "/api/auth/register",
        json={
            "email": email,
            "full_name": "Priya Nair",
            "mobile": "+919800000000",
            "password": "password123",
            "is_provider": is_provider,
        },
    )


def login(client, email):
    return client.post("/api/auth/login", json={"email": email, "password": "password123"})


def test_register_and_login(client):
    created = register(client, "priya@example.com", is_provider=True)
    assert created.status_code == 201
    assert created.json()["is_provider"] is True
    assert created.json()["is_admin"] is False

    session = login(client, "priya@example.com")
    assert session.status_code == 200
    tokens = session.json()
    assert tokens["token_type"] == "bearer"

    me = client.get("/api/me", headers={"Authorization": f"Bearer {tokens['access_token']}"})
    assert me.json()["email"] == "priya@example.com"


def test_registration_cannot_grant_admin(client, db):
    response = client.post(
        "/api/auth/register",
        json={"email": "sneaky@example.com", "full_name": "Sneaky", "password": "password123", "is_admin": True},
    )
    assert response.status_code == 201
    assert response.json()["is_admin"] is False


def test_duplicate_email_is_rejected(client):
    register(client, "dup@example.com")
    assert register(client, "dup@example.com").status_code == 400


def test_wrong_password(client):
    register(client, "priya@example.com")
    response = client.post("/api/auth/login", json={"email": "priya@example.com", "password": "wrong-password"})
    assert response.status_code == 401


def test_oauth2_token_endpoint(client):
    register(client, "priya@example.com")
    response = client.post("/api/token", data={"username": "priya@example.com", "password": "password123"})
    assert response.status_code == 200
    assert response.json()["access_token"]


def test_logout_revokes_tokens(client):
    register(client, "priya@example.com")
    tokens = login(client, "priya@example.com").json()
    headers = {"Authorization": f"Bearer {tokens['access_token']}"}

    response = client.post("/api/auth/logout", json={"refresh_token": tokens["refresh_token"]}, headers=headers)
    assert response.status_code == 200

    assert client.get("/api/me", headers=headers).status_code == 401
    assert client.post("/api/auth/refresh", json={"refresh_token": tokens["refresh_token"]}).status_code == 401

    # signing in again starts a fresh session
    fresh = login(client, "priya@example.com").json()
    assert client.get("/api/me", headers={"Authorization": f"Bearer {fresh['access_token']}"}).status_code == 200


def test_refresh_token_is_single_use(client):
    register(client, "priya@example.com")
    refresh_token = login(client, "priya@example.com").json()["refresh_token"]

    rotated = client.post("/api/auth/refresh", json={"refresh_token": refresh_token})
    assert rotated.status_code == 200
    assert rotated.json()["refresh_token"] != refresh_token

    assert client.post("/api/auth/refresh", json={"refresh_token": refresh_token}).status_code == 401


def test_access_token_cannot_refresh(client):
    register(client, "priya@example.com")
    access_token = login(client, "priya@example.com").json()["access_token"]
    assert client.post("/api/auth/refresh", json={"refresh_token": access_token}).status_code == 401


def test_update_profile(client, customer):
    response = client.patch("/api/me", json={"full_name": "Asha Rao"}, headers=auth_headers(customer))
    assert response.json()["full_name"] == "Asha Rao"


def test_update_profile_to_taken_email(client, customer, stranger):
    response = client.patch("/api/me", json={"email": stranger.email}, headers=auth_headers(customer))
    assert response.status_code == 400


def test_provider_directory_lists_only_verified(client, db, provider, unverified_provider):
    submit_kyc(db, unverified_provider)
    listed = client.get("/api/providers").json()
    assert [p["id"] for p in listed] == [str(provider.id)]
    assert listed[0]["is_verified"] is True


def test_admin_user_management(client, db, admin, customer, provider):
    headers = auth_headers(admin)
    providers = client.get("/api/admin/users?is_provider=true", headers=headers).json()
    assert [u["id"] for u in providers] == [str(provider.id)]

    assert client.get(f"/api/admin/users/{customer.id}", headers=headers).json()["email"] == customer.email
    assert client.get("/api/admin/users", headers=auth_headers(customer)).status_code == 403

    deactivated = client.delete(f"/api/admin/users/{customer.id}", headers=headers)
    assert deactivated.json()["is_active"] is False
    assert client.get("/api/me", headers=auth_headers(customer)).status_code == 401


def test_admin_cannot_deactivate_self(client, admin):
    assert client.delete(f"/api/admin/users/{admin.id}", headers=auth_headers(admin)).status_code == 400


def test_unknown_user_is_404(client, admin):
    response = client.get("/api/admin/users/00000000-0000-0000-0000-000000000000", headers=auth_headers(admin))
    assert response.status_code == 404


def test_admins_are_created_from_code(db):
    admin = make_user(db, "ops@handyhive.in", is_admin=True)
    assert admin.is_admin is True


def test_logout_purges_expired_revocations(client, db):
    register(client, "priya@example.com")
    stale = RevokedToken(
        jti="old-jti",
        token_type="access",
        expires_at=datetime.now(timezone.utc) - timedelta(days=1),
    )
    db.add(stale)
    db.commit()

    tokens = login(client, "priya@example.com").json()
    client.post(
        "/api/auth/logout",
        json={"refresh_token": tokens["refresh_token"]},
        headers={"Authorization": f"Bearer {tokens['access_token']}"},
    )

    remaining = {t.jti for t in db.query(RevokedToken).all()}
    assert "old-jti" not in remaining
    assert len(remaining) == 2
