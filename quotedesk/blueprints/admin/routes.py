"""
quotedesk/blueprints/admin/routes.py

Administration routes.

- /admin/team/...            org_owner+: users of the caller's organization
- /admin/organizations/...   super_admin: organizations and subscriptions
- /admin/users/...           admin+ list; super_admin assigns organizations
- /admin/inquiries/...       admin+: contact form inbox
- /contact                   public contact form

IMPORTANT:
- Team routes never reach outside the caller's organization.
"""

from __future__ import annotations

from flask import Blueprint, current_app, jsonify

from ...errors import ValidationError
from ...extensions import db
from ...models import Role
from ...schemas import ContactInput, InviteInput, SubscriptionInput, read_inquiry_status, read_password
from ...security import current_organization_id, role_required, tenant_required
from ...services import admin as admin_service
from ...utils import created, json_body

admin_bp = Blueprint("admin", __name__)


def _read_optional_id(payload, key: str):
    if not isinstance(payload, dict) or key not in payload:
        raise ValidationError(f"{key} is required.")
    value = payload.get(key)
    if value is None:
        return None
    if isinstance(value, bool):
        raise ValidationError(f"{key} must be an integer.")
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{key} must be an integer.") from None


# ---------------------------------------------------------------------
# Team management (org_owner+)
# ---------------------------------------------------------------------
@admin_bp.route("/admin/team", methods=["GET"])
@tenant_required(role=Role.org_owner)
def list_team():
    return jsonify([u.to_dict() for u in admin_service.list_team(db.session, current_organization_id())])


@admin_bp.route("/admin/team/invite", methods=["POST"])
@tenant_required(role=Role.org_owner)
def invite_user():
    data = InviteInput.from_payload(json_body())
    user = admin_service.invite_user(db.session, current_organization_id(), data)
    db.session.commit()
    return created(user.to_dict())


@admin_bp.route("/admin/team/<int:user_id>/role", methods=["PATCH"])
@tenant_required(role=Role.org_owner)
def change_role(user_id: int):
    payload = json_body()
    try:
        role = Role.parse(payload.get("role") if isinstance(payload, dict) else None)
    except ValueError:
        raise ValidationError("role must be one of: user, org_owner.") from None

    user = admin_service.change_role(db.session, current_organization_id(), user_id, role)
    db.session.commit()
    return jsonify(user.to_dict())


@admin_bp.route("/admin/team/<int:user_id>/password", methods=["POST"])
@tenant_required(role=Role.org_owner)
def set_member_password(user_id: int):
    password = read_password(json_body(), "new_password", current_app.config["MIN_PASSWORD_LENGTH"])
    user = admin_service.set_member_password(db.session, current_organization_id(), user_id, password)
    db.session.commit()
    return jsonify(user.to_dict())


@admin_bp.route("/admin/team/<int:user_id>", methods=["DELETE"])
@tenant_required(role=Role.org_owner)
def remove_member(user_id: int):
    admin_service.remove_member(db.session, current_organization_id(), user_id)
    db.session.commit()
    return jsonify({"success": True})


# ---------------------------------------------------------------------
# Organizations (super_admin)
# ---------------------------------------------------------------------
@admin_bp.route("/admin/organizations", methods=["GET"])
@role_required(Role.super_admin)
def list_organizations():
    return jsonify([o.to_dict() for o in admin_service.list_organizations(db.session)])


@admin_bp.route("/admin/organizations", methods=["POST"])
@role_required(Role.super_admin)
def create_organization():
    payload = json_body()
    name = payload.get("name") if isinstance(payload, dict) else None
    organization = admin_service.create_organization(db.session, str(name or ""))
    db.session.commit()
    return created(organization.to_dict())


@admin_bp.route("/admin/organizations/<int:organization_id>/subscription", methods=["PATCH"])
@role_required(Role.super_admin)
def update_subscription(organization_id: int):
    data = SubscriptionInput.from_payload(json_body())
    organization = admin_service.update_subscription(db.session, organization_id, data)
    db.session.commit()
    return jsonify(organization.to_dict())


# ---------------------------------------------------------------------
# Users
# ---------------------------------------------------------------------
@admin_bp.route("/admin/users", methods=["GET"])
@role_required(Role.admin)
def list_users():
    return jsonify([u.to_dict() for u in admin_service.list_users(db.session)])


@admin_bp.route("/admin/users/<int:user_id>/organization", methods=["PUT"])
@role_required(Role.super_admin)
def assign_user(user_id: int):
    organization_id = _read_optional_id(json_body(), "organization_id")
    user = admin_service.assign_user_to_organization(db.session, user_id, organization_id)
    db.session.commit()
    return jsonify(user.to_dict())


# ---------------------------------------------------------------------
# Contact inquiries
# ---------------------------------------------------------------------
@admin_bp.route("/contact", methods=["POST"])
def submit_contact():
    """Public contact form."""
    data = ContactInput.from_payload(json_body())
    inquiry = admin_service.submit_contact(db.session, data)
    db.session.commit()
    return created({"success": True, "id": inquiry.id})


@admin_bp.route("/admin/inquiries", methods=["GET"])
@role_required(Role.admin)
def list_inquiries():
    return jsonify([i.to_dict() for i in admin_service.list_inquiries(db.session)])


@admin_bp.route("/admin/inquiries/<int:inquiry_id>", methods=["PATCH"])
@role_required(Role.admin)
def update_inquiry(inquiry_id: int):
    status = read_inquiry_status(json_body())
    inquiry = admin_service.update_inquiry_status(db.session, inquiry_id, status)
    db.session.commit()
    return jsonify(inquiry.to_dict())


@admin_bp.route("/admin/inquiries/<int:inquiry_id>", methods=["DELETE"])
@role_required(Role.admin)
def delete_inquiry(inquiry_id: int):
    admin_service.delete_inquiry(db.session, inquiry_id)
    db.session.commit()
    return jsonify({"success": True})
