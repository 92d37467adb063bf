"""
Authentication: password login, identity tokens, password reset and session invalidation.
"""

import time
from datetime import timedelta

from jose import jwt

from quotedesk.extensions import db
from quotedesk.models import PasswordResetToken, User, utcnow

IDENTITY_SECRET = "test-identity-secret"


def _identity_token(claims, secret=IDENTITY_SECRET):
    return jwt.encode(claims, secret, algorithm="HS256")


# ---------------------------------------------------------------------
# Password login
# ---------------------------------------------------------------------
def test_login_returns_user_and_organization(client, seed):
    resp = client.post("/auth/login", json={"email": "Owner@Alpha.test ", "password": "password123"})
    assert resp.status_code == 200
    user = resp.get_json()["user"]
    assert user["email"] == "owner@alpha.test"
    assert user["role"] == "org_owner"
    assert user["organization"]["name"] == "Alpha Wholesale"

    me = client.get("/auth/me")
    assert me.status_code == 200
    assert me.get_json()["user"]["id"] == seed.owner


def test_login_wrong_password(client, seed):
    resp = client.post("/auth/login", json={"email": "owner@alpha.test", "password": "nope-nope"})
    assert resp.status_code == 401
    assert resp.get_json()["error"] == "invalid_credentials"


def test_login_unknown_email_fails_like_wrong_password(client, seed):
    resp = client.post("/auth/login", json={"email": "ghost@alpha.test", "password": "password123"})
    assert resp.status_code == 401
    assert resp.get_json()["message"] == "Invalid email or password."


def test_login_inactive_account(client, seed):
    resp = client.post("/auth/login", json={"email": "idle@alpha.test", "password": "password123"})
    assert resp.status_code == 403
    assert resp.get_json()["error"] == "account_inactive"


def test_login_requires_fields(client, seed):
    resp = client.post("/auth/login", json={"email": "not-an-email"})
    assert resp.status_code == 400
    body = resp.get_json()
    assert body["error"] == "validation_error"
    assert "password is required." in body["details"]


def test_logout_ends_session(login_as):
    client = login_as("staff@alpha.test")
    assert client.post("/auth/logout").status_code == 200
    assert client.get("/auth/me").status_code == 401


def test_register_rejects_duplicate_email(client, seed):
    resp = client.post("/auth/register", json={"email": "staff@alpha.test", "password": "password123"})
    assert resp.status_code == 409


# ---------------------------------------------------------------------
# Identity tokens
# ---------------------------------------------------------------------
def test_identity_token_provisions_user_once(app, client, seed):
    token = _identity_token({"sub": "ext-123", "email": "Ext@Partner.test", "name": "External"})

    resp = client.post("/auth/oauth/callback", json={"token": token})
    assert resp.status_code == 200
    user = resp.get_json()["user"]
    assert user["email"] == "ext@partner.test"
    assert user["login_method"] == "oauth"
    assert user["role"] == "user"
    assert user["organization"] is None

    again = app.test_client().post("/auth/oauth/callback", json={"token": token})
    assert again.status_code == 200
    assert again.get_json()["user"]["id"] == user["id"]

    with app.app_context():
        assert db.session.query(User).filter(User.open_id == "ext-123").count() == 1


def test_identity_token_without_email_gets_placeholder(client, seed):
    resp = client.post("/auth/oauth/callback", json={"token": _identity_token({"sub": "abc"})})
    assert resp.status_code == 200
    assert resp.get_json()["user"]["email"] == "abc@identity.invalid"


def test_expired_identity_token(client, seed):
    token = _identity_token({"sub": "ext-9", "exp": int(time.time()) - 60})
    resp = client.post("/auth/oauth/callback", json={"token": token})
    assert resp.status_code == 401
    assert resp.get_json()["error"] == "invalid_credentials"


def test_identity_token_with_wrong_signature(client, seed):
    token = _identity_token({"sub": "ext-9"}, secret="someone-else")
    assert client.post("/auth/oauth/callback", json={"token": token}).status_code == 401


def test_identity_token_missing(client, seed):
    assert client.post("/auth/oauth/callback", json={}).status_code == 401


def test_identity_token_for_existing_password_email_conflicts(client, seed):
    token = _identity_token({"sub": "ext-77", "email": "staff@alpha.test"})
    assert client.post("/auth/oauth/callback", json={"token": token}).status_code == 409


# ---------------------------------------------------------------------
# Password reset
# ---------------------------------------------------------------------
def _latest_token(app, user_id):
    with app.app_context():
        record = (
            db.session.query(PasswordResetToken)
            .filter(PasswordResetToken.user_id == user_id)
            .order_by(PasswordResetToken.id.desc())
            .first()
        )
        return record.token if record else None


def test_password_reset_lifecycle(app, client, seed):
    resp = client.post("/auth/request-password-reset", json={"email": "staff@alpha.test"})
    assert resp.status_code == 200
    assert resp.get_json() == {"success": True}

    token = _latest_token(app, seed.staff)
    assert token

    resp = client.post("/auth/reset-password", json={"token": token, "new_password": "brand-new-pass"})
    assert resp.status_code == 200

    # single use
    resp = client.post("/auth/reset-password", json={"token": token, "new_password": "another-pass"})
    assert resp.status_code == 400
    assert resp.get_json()["error"] == "invalid_or_expired_token"

    old = app.test_client().post("/auth/login", json={"email": "staff@alpha.test", "password": "password123"})
    assert old.status_code == 401
    new = app.test_client().post("/auth/login", json={"email": "staff@alpha.test", "password": "brand-new-pass"})
    assert new.status_code == 200


def test_password_reset_unknown_email_still_succeeds(app, client, seed):
    resp = client.post("/auth/request-password-reset", json={"email": "nobody@alpha.test"})
    assert resp.status_code == 200
    assert resp.get_json() == {"success": True}

    with app.app_context():
        assert db.session.query(PasswordResetToken).count() == 0


def test_expired_reset_token(app, client, seed):
    client.post("/auth/request-password-reset", json={"email": "staff@alpha.test"})
    token = _latest_token(app, seed.staff)

    with app.app_context():
        record = db.session.query(PasswordResetToken).filter_by(token=token).one()
        record.expires_at = utcnow() - timedelta(minutes=1)
        db.session.commit()

    resp = client.post("/auth/reset-password", json={"token": token, "new_password": "brand-new-pass"})
    assert resp.status_code == 400


def test_reset_password_rejects_short_password(app, client, seed):
    client.post("/auth/request-password-reset", json={"email": "staff@alpha.test"})
    token = _latest_token(app, seed.staff)
    resp = client.post("/auth/reset-password", json={"token": token, "new_password": "short"})
    assert resp.status_code == 400


def test_reset_password_ends_existing_sessions(app, login_as, seed):
    signed_in = login_as("staff@alpha.test")
    assert signed_in.get("/auth/me").status_code == 200

    client = app.test_client()
    client.post("/auth/request-password-reset", json={"email": "staff@alpha.test"})
    token = _latest_token(app, seed.staff)
    client.post("/auth/reset-password", json={"token": token, "new_password": "brand-new-pass"})

    assert signed_in.get("/auth/me").status_code == 401


# ---------------------------------------------------------------------
# Change password
# ---------------------------------------------------------------------
def test_change_password_keeps_current_session_and_ends_others(login_as):
    laptop = login_as("owner@alpha.test")
    phone = login_as("owner@alpha.test")

    resp = laptop.post(
        "/auth/change-password",
        json={"current_password": "password123", "new_password": "even-better-pass"},
    )
    assert resp.status_code == 200

    assert laptop.get("/auth/me").status_code == 200
    assert phone.get("/auth/me").status_code == 401


def test_change_password_requires_current_password(login_as):
    client = login_as("owner@alpha.test")
    resp = client.post(
        "/auth/change-password",
        json={"current_password": "wrong-password", "new_password": "even-better-pass"},
    )
    assert resp.status_code == 401
    assert client.get("/auth/me").status_code == 200
