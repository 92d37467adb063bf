"""
quotedesk/security.py

Access gate for every request.

States:
- Unauthenticated: no session cookie, or the session no longer loads a user.
- Authenticated(principal): Flask-Login resolved current_user.
- Authorized(principal, organization_id): role and tenancy checks passed.

Key rules:
- Roles are a total order (user < org_owner < admin < super_admin); one comparison, at_least().
- super_admin bypasses tenancy and subscription checks entirely.
- Everyone else needs an organization with a live subscription, checked on EVERY
  tenant-scoped request (a subscription can lapse mid-session).
- A lapsed subscription fails the request, not the session.

Decorators must preserve wrapped function metadata to avoid Flask endpoint collisions.
We use functools.wraps everywhere.
"""

from __future__ import annotations

from datetime import datetime
from functools import wraps
from typing import Any, Callable, Optional

from flask import current_app, g
from flask_login import current_user
from sqlalchemy.orm import Session

from .errors import Forbidden
from .extensions import db, login_manager
from .models import Organization, Role


def at_least(role: Role | str, required: Role | str) -> bool:
    """Return True if `role` ranks at or above `required`."""
    return Role.parse(role).rank >= Role.parse(required).rank


def authorize(principal: Any, required_role: Role | str | None = None) -> None:
    """
    Role check.

    super_admin always passes; otherwise principal.role must be >= required_role.
    """
    role = Role.parse(principal.role)
    if role == Role.super_admin or required_role is None:
        return
    if not at_least(role, required_role):
        raise Forbidden(f"{Role.parse(required_role).value} access required.")


def resolve_tenancy(principal: Any, session: Session, now: datetime | None = None) -> Optional[int]:
    """
    Return the organization id the principal may act in.

    super_admin: returned as-is, no subscription checks. With an organization
    they work inside it like any member (reads scoped, creates stamped with it).
    Without one (None) reads span every organization, but anything that creates
    tenant data fails in require_organization with Forbidden.
    Others: organization must exist and its subscription must be active.
    """
    if Role.parse(principal.role) == Role.super_admin:
        return principal.organization_id

    organization_id = principal.organization_id
    if not organization_id:
        raise Forbidden("User must belong to an organization to perform this action.")

    organization = session.get(Organization, organization_id)
    if organization is None:
        raise Forbidden("User must belong to an organization to perform this action.")

    if not organization.is_subscription_active(now):
        current_app.logger.info(
            "Subscription inactive: organization=%s user=%s", organization_id, principal.id
        )
        raise Forbidden("Organization subscription is inactive.")

    return organization_id


def role_required(required_role: Role | str) -> Callable[[Callable[..., Any]], Callable[..., Any]]:
    """
    Decorator factory: role gate WITHOUT tenancy.

    Used for platform administration (admin / super_admin screens).
    """
    def decorator(view_func: Callable[..., Any]) -> Callable[..., Any]:
        @wraps(view_func)
        def wrapper(*args: Any, **kwargs: Any):
            if not current_user.is_authenticated:
                return login_manager.unauthorized()
            authorize(current_user, required_role)
            return view_func(*args, **kwargs)

        return wrapper

    return decorator


def tenant_required(view_func: Callable[..., Any] | None = None, *, role: Role | str | None = None):
    """
    Decorator: tenant-scoped business operation.

    Sets g.organization_id (None only for super_admin without an organization).

    Usage:
        @tenant_required
        def list_customers(): ...

        @tenant_required(role=Role.org_owner)
        def list_team(): ...
    """
    def decorator(func: Callable[..., Any]) -> Callable[..., Any]:
        @wraps(func)
        def wrapper(*args: Any, **kwargs: Any):
            if not current_user.is_authenticated:
                return login_manager.unauthorized()
            authorize(current_user, role)
            g.organization_id = resolve_tenancy(current_user, db.session)
            return func(*args, **kwargs)

        return wrapper

    if view_func is not None:
        return decorator(view_func)
    return decorator


def current_organization_id() -> Optional[int]:
    """Organization id resolved by tenant_required for this request."""
    return g.get("organization_id")
