"""
quotedesk/services

Business operations. Each function receives:
- session: the SQLAlchemy session of the current request (one transaction per request)
- organization_id: resolved by the tenant gate (None only on super_admin paths)

Tenancy:
- Reads filter by organization_id unless it is None (super_admin).
- Creates always stamp an organization; a super_admin without one cannot create tenant data.
"""

from __future__ import annotations

from typing import Optional, Type, TypeVar

from sqlalchemy.orm import Query, Session

from ..errors import Forbidden, NotFound

T = TypeVar("T")


def scoped_query(session: Session, model: Type[T], organization_id: Optional[int]) -> Query:
    """Query of `model` restricted to one organization (unrestricted for super_admin paths)."""
    query = session.query(model)
    if organization_id is not None:
        query = query.filter(model.organization_id == organization_id)
    return query


def scoped_get(session: Session, model: Type[T], entity_id: int, organization_id: Optional[int], label: str | None = None) -> T:
    """Load one entity of the organization or raise NotFound (never Forbidden, to avoid leaking ids)."""
    entity = scoped_query(session, model, organization_id).filter(model.id == entity_id).first()
    if entity is None:
        raise NotFound(f"{label or model.__name__} not found.")
    return entity


def require_organization(organization_id: Optional[int]) -> int:
    """Organization to stamp on new tenant data."""
    if organization_id is None:
        raise Forbidden("User must belong to an organization to perform this action.")
    return organization_id
