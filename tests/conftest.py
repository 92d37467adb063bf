"""
Shared fixtures.

Each test gets a fresh application bound to an in-memory SQLite database.
The app context is only pushed for direct database work; requests made with
the test client run in their own context so Flask-Login never reuses a cached user.
"""

from datetime import timedelta
from types import SimpleNamespace

import pytest

from quotedesk import create_app
from quotedesk.extensions import db
from quotedesk.models import (
    Organization,
    Role,
    SubscriptionStatus,
    SubscriptionType,
    User,
    UserStatus,
    utcnow,
)

PASSWORD = "password123"


@pytest.fixture
def app():
    app = create_app("config.TestConfig")
    with app.app_context():
        db.create_all()
    yield app
    with app.app_context():
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


def _user(email, role, organization=None, status=UserStatus.active):
    user = User(
        email=email,
        name=email.split("@")[0].title(),
        role=role,
        status=status,
        login_method="email",
        organization_id=organization.id if organization else None,
    )
    user.set_password(PASSWORD)
    db.session.add(user)
    return user


@pytest.fixture
def seed(app):
    """
    Three organizations and a handful of users.

    alpha: monthly, active    beta: indefinite, active    gamma: expired
    """
    with app.app_context():
        alpha = Organization(
            name="Alpha Wholesale",
            subscription_type=SubscriptionType.monthly,
            subscription_status=SubscriptionStatus.active,
            subscription_end_date=utcnow() + timedelta(days=30),
        )
        beta = Organization(
            name="Beta Supplies",
            subscription_type=SubscriptionType.indefinite,
            subscription_status=SubscriptionStatus.active,
        )
        gamma = Organization(
            name="Gamma Trading",
            subscription_type=SubscriptionType.monthly,
            subscription_status=SubscriptionStatus.expired,
            subscription_end_date=utcnow() - timedelta(days=3),
        )
        db.session.add_all([alpha, beta, gamma])
        db.session.flush()

        owner = _user("owner@alpha.test", Role.org_owner, alpha)
        staff = _user("staff@alpha.test", Role.user, alpha)
        idle = _user("idle@alpha.test", Role.user, alpha, status=UserStatus.inactive)
        beta_staff = _user("staff@beta.test", Role.user, beta)
        gamma_owner = _user("owner@gamma.test", Role.org_owner, gamma)
        gamma_staff = _user("staff@gamma.test", Role.user, gamma)
        root = _user("root@quotedesk.test", Role.super_admin)
        db.session.commit()

        return SimpleNamespace(
            alpha=alpha.id,
            beta=beta.id,
            gamma=gamma.id,
            owner=owner.id,
            staff=staff.id,
            idle=idle.id,
            beta_staff=beta_staff.id,
            gamma_owner=gamma_owner.id,
            gamma_staff=gamma_staff.id,
            root=root.id,
        )


@pytest.fixture
def login_as(app, seed):
    """Return a fresh test client logged in as `email`."""

    def _login(email, password=PASSWORD):
        client = app.test_client()
        resp = client.post("/auth/login", json={"email": email, "password": password})
        assert resp.status_code == 200, resp.get_json()
        return client

    return _login
