"""
quotedesk/services/admin.py

Administration.

- Team management (org_owner+): users of the caller's organization only.
  Roles grantable here are user and org_owner. The last org_owner is never removed or demoted.
- Platform (super_admin): organizations, subscriptions, user -> organization assignment.
- Contact inquiries: public submit, admin inbox.
"""

from __future__ import annotations

from datetime import timedelta
from typing import List, Optional

from flask import current_app
from sqlalchemy.orm import Session

from ..audit import log_action, serialize_model
from ..errors import Conflict, Forbidden, NotFound, ValidationError
from ..mailer import notify_owner
from ..models import (
    ContactInquiry,
    InquiryStatus,
    Organization,
    Role,
    SubscriptionStatus,
    User,
    UserStatus,
    utcnow,
)
from ..schemas import ContactInput, InviteInput, SubscriptionInput
from .auth import get_user_by_email
from . import require_organization

TEAM_ROLES = (Role.user, Role.org_owner)


# ---------------------------------------------------------------------
# Team management
# ---------------------------------------------------------------------
def list_team(session: Session, organization_id: Optional[int]) -> List[User]:
    """Users of the organization (every user on super_admin paths)."""
    query = session.query(User)
    if organization_id is not None:
        query = query.filter(User.organization_id == organization_id)
    return query.order_by(User.created_at.desc(), User.id.desc()).all()


def _team_member(session: Session, organization_id: Optional[int], user_id: int) -> User:
    organization_id = require_organization(organization_id)
    user = session.get(User, user_id)
    if user is None:
        raise NotFound("User not found.")
    if user.organization_id != organization_id:
        raise Forbidden("Cannot modify user from different organization.")
    if user.role not in TEAM_ROLES:
        raise Forbidden("Cannot modify a platform administrator.")
    return user


def _is_last_owner(session: Session, user: User) -> bool:
    if user.role != Role.org_owner:
        return False
    owners = (
        session.query(User)
        .filter(User.organization_id == user.organization_id, User.role == Role.org_owner)
        .count()
    )
    return owners <= 1


def invite_user(session: Session, organization_id: Optional[int], data: InviteInput) -> User:
    """Create a pending user in the organization. They activate by resetting their password."""
    organization_id = require_organization(organization_id)
    if get_user_by_email(session, data.email):
        raise Conflict("User with this email already exists.")

    user = User(
        email=data.email,
        name=data.name,
        role=data.role,
        status=UserStatus.pending,
        login_method="email",
        organization_id=organization_id,
    )
    session.add(user)
    session.flush()
    log_action(session, user, "CREATE", after=serialize_model(user))
    return user


def change_role(session: Session, organization_id: Optional[int], user_id: int, role: Role) -> User:
    if role not in TEAM_ROLES:
        raise ValidationError("role must be one of: user, org_owner.")
    user = _team_member(session, organization_id, user_id)
    if role != Role.org_owner and _is_last_owner(session, user):
        raise ValidationError("Cannot demote the last organization owner.")

    before = serialize_model(user)
    user.role = role
    session.flush()
    log_action(session, user, "UPDATE", before=before, after=serialize_model(user))
    return user


def set_member_password(session: Session, organization_id: Optional[int], user_id: int, new_password: str) -> User:
    """Owner-set password. A pending user becomes active; their other sessions end."""
    user = _team_member(session, organization_id, user_id)
    before = serialize_model(user)
    user.set_password(new_password)
    user.rotate_session()
    if user.status == UserStatus.pending:
        user.status = UserStatus.active
    session.flush()
    log_action(session, user, "UPDATE", before=before, after=serialize_model(user))
    return user


def remove_member(session: Session, organization_id: Optional[int], user_id: int) -> None:
    user = _team_member(session, organization_id, user_id)
    if _is_last_owner(session, user):
        raise ValidationError("Cannot delete the last organization owner.")

    before = serialize_model(user)
    session.delete(user)
    session.flush()
    log_action(session, user, "DELETE", before=before)


# ---------------------------------------------------------------------
# Platform administration
# ---------------------------------------------------------------------
def list_organizations(session: Session) -> List[Organization]:
    return session.query(Organization).order_by(Organization.created_at.desc(), Organization.id.desc()).all()


def get_organization(session: Session, organization_id: int) -> Organization:
    organization = session.get(Organization, organization_id)
    if organization is None:
        raise NotFound("Organization not found.")
    return organization


def create_organization(session: Session, name: str) -> Organization:
    name = (name or "").strip()
    if not name:
        raise ValidationError("name is required.")
    organization = Organization(name=name, subscription_status=SubscriptionStatus.active)
    session.add(organization)
    session.flush()
    log_action(session, organization, "CREATE", after=serialize_model(organization))
    return organization


def update_subscription(session: Session, organization_id: int, data: SubscriptionInput) -> Organization:
    """
    Change type / status / end date, or extend by a number of days.

    Extension counts from the later of now and the current end date.
    """
    organization = get_organization(session, organization_id)
    changes = data.changes()
    before = serialize_model(organization)

    if changes.get("subscription_type") is not None:
        organization.subscription_type = changes["subscription_type"]
    if changes.get("subscription_status") is not None:
        organization.subscription_status = changes["subscription_status"]
    if "subscription_end_date" in changes:
        organization.subscription_end_date = changes["subscription_end_date"]

    if data.extend_days:
        now = utcnow()
        start = organization.subscription_end_date if organization.subscription_end_date and organization.subscription_end_date > now else now
        organization.subscription_end_date = start + timedelta(days=data.extend_days)
        if organization.subscription_status == SubscriptionStatus.expired:
            organization.subscription_status = SubscriptionStatus.active

    session.flush()
    log_action(session, organization, "UPDATE", before=before, after=serialize_model(organization))
    current_app.logger.info(
        "Subscription updated: organization=%s status=%s end=%s",
        organization.id,
        organization.subscription_status.value,
        organization.subscription_end_date,
    )
    return organization


def list_users(session: Session) -> List[User]:
    return session.query(User).order_by(User.created_at.desc(), User.id.desc()).all()


def assign_user_to_organization(session: Session, user_id: int, organization_id: Optional[int]) -> User:
    user = session.get(User, user_id)
    if user is None:
        raise NotFound("User not found.")
    if organization_id is not None:
        get_organization(session, organization_id)

    before = serialize_model(user)
    user.organization_id = organization_id
    session.flush()
    log_action(session, user, "UPDATE", before=before, after=serialize_model(user))
    return user


# ---------------------------------------------------------------------
# Contact inquiries
# ---------------------------------------------------------------------
def submit_contact(session: Session, data: ContactInput) -> ContactInquiry:
    """Store the inquiry, then notify the owner. A failed notification is logged, not raised."""
    inquiry = ContactInquiry(
        name=data.name,
        email=data.email,
        company=data.company,
        message=data.message,
        status=InquiryStatus.new,
    )
    session.add(inquiry)
    session.flush()

    content = f"Name: {data.name}\nEmail: {data.email}"
    if data.company:
        content += f"\nCompany: {data.company}"
    content += f"\n\nMessage:\n{data.message}"
    if not notify_owner("New Contact Form Submission", content):
        current_app.logger.warning("Contact notification not delivered: inquiry=%s", inquiry.id)
    return inquiry


def list_inquiries(session: Session) -> List[ContactInquiry]:
    return session.query(ContactInquiry).order_by(ContactInquiry.created_at.desc(), ContactInquiry.id.desc()).all()


def _inquiry(session: Session, inquiry_id: int) -> ContactInquiry:
    inquiry = session.get(ContactInquiry, inquiry_id)
    if inquiry is None:
        raise NotFound("Inquiry not found.")
    return inquiry


def update_inquiry_status(session: Session, inquiry_id: int, status: InquiryStatus) -> ContactInquiry:
    inquiry = _inquiry(session, inquiry_id)
    before = serialize_model(inquiry)
    inquiry.status = status
    session.flush()
    log_action(session, inquiry, "UPDATE", before=before, after=serialize_model(inquiry))
    return inquiry


def delete_inquiry(session: Session, inquiry_id: int) -> None:
    inquiry = _inquiry(session, inquiry_id)
    before = serialize_model(inquiry)
    session.delete(inquiry)
    session.flush()
    log_action(session, inquiry, "DELETE", before=before)
