"""
quotedesk/services/auth.py

Authentication services.

Two credential schemes end in the same Flask-Login session:
- email + password (Werkzeug salted hash)
- externally-issued identity token (JWT verified with python-jose; sub -> User.open_id)

Password reset:
- token is random, single-use, valid RESET_TOKEN_EXPIRY_HOURS from issuance
- a successful reset/change rotates User.session_version, which logs out every other session
"""

from __future__ import annotations

import secrets
from datetime import timedelta
from typing import Optional

from flask import current_app
from jose import JWTError, jwt
from sqlalchemy.orm import Session

from ..errors import AccountInactive, Conflict, InvalidCredentials, InvalidOrExpiredToken, NotFound
from ..models import PasswordResetToken, Role, User, UserStatus, utcnow


def get_user_by_email(session: Session, email: str) -> Optional[User]:
    return session.query(User).filter(User.email == (email or "").strip().lower()).first()


def register_user(session: Session, email: str, password: str, name: str | None = None) -> User:
    """Create an active password user without an organization (assigned later by a super admin)."""
    if get_user_by_email(session, email):
        raise Conflict("User with this email already exists.")

    user = User(
        email=email.strip().lower(),
        name=name or None,
        login_method="email",
        role=Role.user,
        status=UserStatus.active,
    )
    user.set_password(password)
    session.add(user)
    session.flush()
    return user


def authenticate_password(session: Session, email: str, password: str) -> User:
    """
    Authenticate with email and password.

    - Only active users may log in
    - Unknown email, wrong password and password-less accounts all fail the same way
    """
    user = get_user_by_email(session, email)

    if not user or not user.password_hash:
        current_app.logger.info("Login failed: unknown account or identity-only account")
        raise InvalidCredentials()

    if not user.check_password(password):
        current_app.logger.info("Login failed: wrong password user=%s", user.id)
        raise InvalidCredentials()

    if user.status != UserStatus.active:
        raise AccountInactive()

    user.last_signed_in = utcnow()
    return user


def _decode_identity_token(token: str) -> dict:
    cfg = current_app.config
    options = {"verify_aud": bool(cfg.get("IDENTITY_TOKEN_AUDIENCE"))}
    try:
        return jwt.decode(
            token,
            cfg["IDENTITY_TOKEN_SECRET"],
            algorithms=cfg["IDENTITY_TOKEN_ALGORITHMS"],
            audience=cfg.get("IDENTITY_TOKEN_AUDIENCE"),
            issuer=cfg.get("IDENTITY_TOKEN_ISSUER"),
            options=options,
        )
    except JWTError as exc:
        current_app.logger.info("Identity token rejected: %s", exc)
        raise InvalidCredentials("Invalid or expired identity token.") from None


def authenticate_identity_token(session: Session, token: str) -> User:
    """
    Authenticate with an identity token.

    The first time an identity is seen, a shadow user is provisioned (role user, no organization).
    """
    if not token:
        raise InvalidCredentials("Invalid or expired identity token.")

    claims = _decode_identity_token(token)
    open_id = claims.get("sub")
    if not open_id:
        raise InvalidCredentials("Identity token has no subject.")

    user = session.query(User).filter(User.open_id == str(open_id)).first()

    if user is None:
        email = (claims.get("email") or f"{open_id}@identity.invalid").strip().lower()
        if get_user_by_email(session, email):
            # An existing password account keeps its own login path
            raise Conflict("An account with this email already exists.")
        user = User(
            open_id=str(open_id),
            email=email,
            name=claims.get("name"),
            login_method="oauth",
            role=Role.user,
            status=UserStatus.active,
        )
        session.add(user)
        session.flush()
        current_app.logger.info("Provisioned identity user=%s open_id=%s", user.id, open_id)

    if user.status != UserStatus.active:
        raise AccountInactive()

    user.last_signed_in = utcnow()
    return user


def request_password_reset(session: Session, email: str) -> Optional[str]:
    """
    Issue a reset token for a password account.

    Returns None for unknown or identity-only accounts; callers must not reveal which.
    """
    user = get_user_by_email(session, email)
    if not user or not user.password_hash:
        return None

    token = secrets.token_urlsafe(32)
    hours = current_app.config["RESET_TOKEN_EXPIRY_HOURS"]
    session.add(
        PasswordResetToken(
            user_id=user.id,
            token=token,
            expires_at=utcnow() + timedelta(hours=hours),
            used=False,
        )
    )
    session.flush()
    current_app.logger.info("Password reset issued user=%s", user.id)
    return token


def reset_password(session: Session, token: str, new_password: str) -> User:
    """Consume a reset token and replace the password hash."""
    record = (
        session.query(PasswordResetToken)
        .filter(PasswordResetToken.token == (token or ""), PasswordResetToken.used.is_(False))
        .first()
    )
    if record is None or utcnow() > record.expires_at:
        raise InvalidOrExpiredToken()

    user = session.get(User, record.user_id)
    if user is None:
        raise InvalidOrExpiredToken()

    user.set_password(new_password)
    user.rotate_session()
    record.used = True
    return user


def change_password(session: Session, user_id: int, current_password: str, new_password: str) -> User:
    """Change password for an authenticated user (current password required)."""
    user = session.get(User, user_id)
    if user is None:
        raise NotFound("User not found.")
    if not user.password_hash:
        raise InvalidCredentials("This account uses identity-provider login.")
    if not user.check_password(current_password):
        raise InvalidCredentials("Current password is incorrect.")

    user.set_password(new_password)
    user.rotate_session()
    return user


def load_session_user(session: Session, session_id: str) -> Optional[User]:
    """
    Flask-Login user loader.

    session_id is "<user id>:<session version>"; a stale version or inactive account loads nothing.
    """
    user_id, _, version = (session_id or "").partition(":")
    try:
        user = session.get(User, int(user_id))
    except ValueError:
        return None
    if user is None or user.status != UserStatus.active:
        return None
    if str(user.session_version or 1) != version:
        return None
    return user
