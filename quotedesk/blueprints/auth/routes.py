"""
Authentication Routes

Provides:
- /auth/login                    email + password
- /auth/oauth/callback           externally-issued identity token
- /auth/logout, /auth/me
- /auth/register
- /auth/request-password-reset   always answers success
- /auth/reset-password
- /auth/change-password
- /auth/csrf-token

Both credential schemes end in the same Flask-Login session cookie.
A password change/reset bumps the user's session version, so every other session stops loading.
"""

from flask import Blueprint, current_app, jsonify, session
from flask_login import current_user, login_required, login_user, logout_user
from flask_wtf.csrf import generate_csrf

from ...extensions import db
from ...mailer import send_password_reset_email
from ...schemas import LoginInput, read_password
from ...services import auth as auth_service
from ...utils import created, json_body

auth_bp = Blueprint("auth", __name__, url_prefix="/auth")


def _start_session(user):
    """Issue the session cookie for an authenticated user."""
    session.permanent = True
    login_user(user)


def _me_payload(user) -> dict:
    data = user.to_dict()
    organization = user.organization
    data["organization"] = organization.to_dict() if organization else None
    return data


# ============================================================
# LOGIN / LOGOUT
# ============================================================
@auth_bp.route("/login", methods=["POST"])
def login():
    """
    Authenticate a user.

    - Only active users may log in
    - Credentials validated via password hash
    """
    data = LoginInput.from_payload(json_body())
    user = auth_service.authenticate_password(db.session, data.email, data.password)
    db.session.commit()

    _start_session(user)
    current_app.logger.info("Login: user=%s method=email", user.id)
    return jsonify({"user": _me_payload(user)})


@auth_bp.route("/oauth/callback", methods=["POST"])
def identity_login():
    """Exchange a verified identity token for a session."""
    payload = json_body()
    token = payload.get("token") if isinstance(payload, dict) else None
    user = auth_service.authenticate_identity_token(db.session, token or "")
    db.session.commit()

    _start_session(user)
    current_app.logger.info("Login: user=%s method=oauth", user.id)
    return jsonify({"user": _me_payload(user)})


@auth_bp.route("/logout", methods=["POST"])
@login_required
def logout():
    logout_user()
    return jsonify({"success": True})


@auth_bp.route("/me", methods=["GET"])
@login_required
def me():
    return jsonify({"user": _me_payload(current_user)})


# ============================================================
# REGISTRATION
# ============================================================
@auth_bp.route("/register", methods=["POST"])
def register():
    """Self-registration. The account has no organization until a super admin assigns one."""
    payload = json_body()
    data = LoginInput.from_payload(payload)
    password = read_password(payload, "password", current_app.config["MIN_PASSWORD_LENGTH"])
    name = (payload.get("name") or "").strip() or None

    user = auth_service.register_user(db.session, data.email, password, name)
    db.session.commit()

    _start_session(user)
    current_app.logger.info("Registered: user=%s", user.id)
    return created({"user": _me_payload(user)})


# ============================================================
# PASSWORDS
# ============================================================
@auth_bp.route("/request-password-reset", methods=["POST"])
def request_password_reset():
    """Always succeeds, whether or not the email belongs to an account."""
    payload = json_body()
    email = payload.get("email") if isinstance(payload, dict) else None

    token = auth_service.request_password_reset(db.session, str(email or ""))
    db.session.commit()

    if token is not None:
        if current_app.debug:
            current_app.logger.debug("Password reset token: %s", token)
        send_password_reset_email(str(email).strip().lower(), token)

    return jsonify({"success": True})


@auth_bp.route("/reset-password", methods=["POST"])
def reset_password():
    payload = json_body()
    new_password = read_password(payload, "new_password", current_app.config["MIN_PASSWORD_LENGTH"])

    user = auth_service.reset_password(db.session, str(payload.get("token") or ""), new_password)
    db.session.commit()

    current_app.logger.info("Password reset completed: user=%s", user.id)
    return jsonify({"success": True})


@auth_bp.route("/change-password", methods=["POST"])
@login_required
def change_password():
    payload = json_body()
    new_password = read_password(payload, "new_password", current_app.config["MIN_PASSWORD_LENGTH"])
    current_password = payload.get("current_password") or ""

    user = auth_service.change_password(db.session, current_user.id, str(current_password), new_password)
    db.session.commit()

    # this session carries the new version; all others are now stale
    _start_session(user)
    return jsonify({"success": True})


@auth_bp.route("/csrf-token", methods=["GET"])
def csrf_token():
    """Token to send back in the X-CSRFToken header on mutating requests."""
    return jsonify({"csrf_token": generate_csrf()})
