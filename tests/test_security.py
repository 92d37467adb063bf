"""
Access gate: role order, role checks and tenancy/subscription checks.
"""

from datetime import timedelta
from types import SimpleNamespace

import pytest

from quotedesk.errors import Forbidden
from quotedesk.extensions import db
from quotedesk.models import Organization, Role, SubscriptionStatus, SubscriptionType, utcnow
from quotedesk.security import at_least, authorize, resolve_tenancy


def principal(role, organization_id=None, user_id=1):
    return SimpleNamespace(id=user_id, role=role, organization_id=organization_id)


def test_role_order():
    assert at_least(Role.super_admin, Role.admin)
    assert at_least(Role.admin, Role.org_owner)
    assert at_least(Role.org_owner, Role.user)
    assert at_least("org_owner", "org_owner")
    assert not at_least(Role.user, Role.org_owner)
    assert not at_least("admin", "super_admin")


def test_authorize_rejects_lower_role():
    with pytest.raises(Forbidden):
        authorize(principal(Role.user), Role.org_owner)


def test_authorize_accepts_equal_or_higher_role():
    authorize(principal(Role.org_owner), Role.org_owner)
    authorize(principal(Role.admin), Role.org_owner)
    authorize(principal(Role.user), None)


def test_super_admin_passes_every_role_check():
    for required in Role:
        authorize(principal(Role.super_admin), required)


def _org(**kwargs):
    organization = Organization(name="Test Org", **kwargs)
    db.session.add(organization)
    db.session.flush()
    return organization


def test_resolve_tenancy_active_organization(app):
    with app.app_context():
        org = _org(subscription_status=SubscriptionStatus.active)
        assert resolve_tenancy(principal(Role.user, org.id), db.session) == org.id


def test_resolve_tenancy_requires_organization(app):
    with app.app_context():
        with pytest.raises(Forbidden):
            resolve_tenancy(principal(Role.org_owner, None), db.session)
        with pytest.raises(Forbidden):
            resolve_tenancy(principal(Role.user, 9999), db.session)


@pytest.mark.parametrize("role", [Role.user, Role.org_owner, Role.admin])
def test_expired_subscription_forbidden_for_every_role(app, role):
    with app.app_context():
        org = _org(subscription_status=SubscriptionStatus.expired)
        with pytest.raises(Forbidden):
            resolve_tenancy(principal(role, org.id), db.session)


def test_cancelled_subscription_forbidden(app):
    with app.app_context():
        org = _org(subscription_status=SubscriptionStatus.cancelled, subscription_type=SubscriptionType.indefinite)
        with pytest.raises(Forbidden):
            resolve_tenancy(principal(Role.user, org.id), db.session)


def test_end_date_in_the_past_is_inactive(app):
    with app.app_context():
        now = utcnow()
        org = _org(
            subscription_status=SubscriptionStatus.active,
            subscription_type=SubscriptionType.monthly,
            subscription_end_date=now - timedelta(minutes=1),
        )
        with pytest.raises(Forbidden):
            resolve_tenancy(principal(Role.user, org.id), db.session, now=now)

        # still inside the period when checked earlier
        assert resolve_tenancy(principal(Role.user, org.id), db.session, now=now - timedelta(days=1)) == org.id


def test_indefinite_subscription_ignores_end_date(app):
    with app.app_context():
        org = _org(
            subscription_status=SubscriptionStatus.active,
            subscription_type=SubscriptionType.indefinite,
            subscription_end_date=utcnow() - timedelta(days=400),
        )
        assert resolve_tenancy(principal(Role.user, org.id), db.session) == org.id


def test_super_admin_skips_tenancy(app):
    with app.app_context():
        expired = _org(subscription_status=SubscriptionStatus.expired)
        assert resolve_tenancy(principal(Role.super_admin, None), db.session) is None
        assert resolve_tenancy(principal(Role.super_admin, expired.id), db.session) == expired.id


# ---------------------------------------------------------------------
# Through HTTP
# ---------------------------------------------------------------------
def test_unauthenticated_request_is_rejected(client, seed):
    resp = client.get("/customers")
    assert resp.status_code == 401
    assert resp.get_json()["error"] == "unauthenticated"


@pytest.mark.parametrize("email", ["owner@gamma.test", "staff@gamma.test"])
def test_lapsed_subscription_blocks_request_not_session(login_as, email):
    client = login_as(email)

    resp = client.get("/customers")
    assert resp.status_code == 403
    assert resp.get_json()["message"] == "Organization subscription is inactive."

    # still signed in; account screens keep working
    me = client.get("/auth/me")
    assert me.status_code == 200
    assert me.get_json()["user"]["organization"]["subscription_active"] is False


def test_user_cannot_reach_owner_operation(login_as):
    resp = login_as("staff@alpha.test").get("/admin/team")
    assert resp.status_code == 403
    assert resp.get_json()["error"] == "forbidden"


def test_owner_and_super_admin_reach_owner_operation(login_as, seed):
    owner = login_as("owner@alpha.test").get("/admin/team")
    assert owner.status_code == 200
    emails = {u["email"] for u in owner.get_json()}
    assert "staff@alpha.test" in emails
    assert "staff@beta.test" not in emails

    root = login_as("root@quotedesk.test").get("/admin/team")
    assert root.status_code == 200


def test_super_admin_reads_expired_tenant_data(login_as):
    resp = login_as("root@quotedesk.test").get("/customers")
    assert resp.status_code == 200


def test_super_admin_scope_follows_organization(login_as, seed):
    login_as("owner@alpha.test").post("/customers", json={"company_name": "Alpha Customer"})
    login_as("staff@beta.test").post("/customers", json={"company_name": "Beta Customer"})

    root = login_as("root@quotedesk.test")
    names = {c["company_name"] for c in root.get("/customers").get_json()}
    assert names == {"Alpha Customer", "Beta Customer"}
    assert root.post("/customers", json={"company_name": "Nowhere"}).status_code == 403

    assert root.put(f"/admin/users/{seed.root}/organization", json={"organization_id": seed.alpha}).status_code == 200
    assert [c["company_name"] for c in root.get("/customers").get_json()] == ["Alpha Customer"]
    assert root.post("/customers", json={"company_name": "Alpha Second"}).status_code == 201


def test_user_without_organization_is_forbidden(app, client):
    resp = client.post("/auth/register", json={"email": "solo@nowhere.test", "password": "password123"})
    assert resp.status_code == 201
    assert resp.get_json()["user"]["organization"] is None

    resp = client.get("/pricelists")
    assert resp.status_code == 403
