"""Update and delete of a single scoped row, one transaction each."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from educonnect.authz.resources import ResourceType
from educonnect.authz.scoping import ScopePredicate
from educonnect.db.transaction import transaction
from educonnect.errors import Conflict, ValidationFailed
from educonnect.services.repository import ScopedRepository


def update_record(
    db: Session,
    resource_type: ResourceType,
    predicate: ScopePredicate,
    record_id: int,
    values: Mapping[str, Any],
):
    if not values:
        raise ValidationFailed("No fields to update")
    try:
        with transaction(db):
            record = ScopedRepository(db, resource_type, predicate).update(record_id, values)
    except IntegrityError as exc:
        raise Conflict(f"Update conflicts with an existing {resource_type.value}") from exc
    return record


def delete_record(db: Session, resource_type: ResourceType, predicate: ScopePredicate, record_id: int) -> None:
    try:
        with transaction(db):
            ScopedRepository(db, resource_type, predicate).delete(record_id)
    except IntegrityError as exc:
        raise Conflict(f"{resource_type.value} still has records attached and cannot be deleted") from exc
