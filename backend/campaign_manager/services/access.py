"""Ownership checks shared by the campaign and lead services.

Single-record operations allow the owner or any admin. List operations are
always scoped to the caller's own records (see `owned_by`).
"""

import logging
from typing import Type, TypeVar
from uuid import UUID

from sqlalchemy.orm import Query, Session

from ..errors import AuthorizationError, NotFoundError
from ..models import RoleEnum, User

logger = logging.getLogger(__name__)

M = TypeVar("M")


def can_access(record, principal: User) -> bool:
    return record.owner_id == principal.id or principal.role == RoleEnum.admin


def ensure_can_access(record, principal: User, *, label: str) -> None:
    """Raise AuthorizationError unless `principal` owns `record` or is an admin."""
    if not can_access(record, principal):
        logger.info("[ACCESS] User %s denied on %s %s", principal.id, label, record.id)
        raise AuthorizationError(f"User {principal.id} is not authorized to access this {label}")


def get_accessible(db: Session, model: Type[M], record_id: UUID, principal: User, *, label: str) -> M:
    """Load one record by id, then apply the owner-or-admin check.

    Raises:
        NotFoundError: no record with that id.
        AuthorizationError: record exists but belongs to someone else.
    """
    record = db.query(model).filter(model.id == record_id).first()
    if record is None:
        raise NotFoundError(f"{label.capitalize()} not found with id of {record_id}")
    ensure_can_access(record, principal, label=label)
    return record


def owned_by(db: Session, model: Type[M], principal: User) -> Query:
    """Base query for list endpoints: only the caller's own records, for every role."""
    return db.query(model).filter(model.owner_id == principal.id)
