"""
Scoped data access.

Every statement a repository issues goes through the predicate compiled from
the caller's authorization decision, server-side, before execution. Counts
and pages are built from the same scoped statement, so they cannot diverge.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any, Generic, TypeVar

from sqlalchemy import func, inspect, select
from sqlalchemy.orm import Session

from educonnect.authz.resources import ResourceType, model_for
from educonnect.authz.scoping import ScopePredicate
from educonnect.db.transaction import run_read
from educonnect.errors import NotOwnerOrNotFound, ValidationFailed

T = TypeVar("T")

MAX_PAGE_SIZE = 100


@dataclass
class Page(Generic[T]):
    items: list[T]
    total: int
    offset: int
    limit: int

    @property
    def has_next(self) -> bool:
        return self.offset + self.limit < self.total


@dataclass
class ScopedRepository:
    session: Session
    resource_type: ResourceType
    predicate: ScopePredicate
    read_retry_delay: float | None = None
    model: Any = field(init=False)

    def __post_init__(self) -> None:
        self.model = model_for(self.resource_type)

    # ---- Reads ----------------------------------------------------------------------

    def scoped_select(self, *criteria):
        return self.predicate.apply(select(self.model).where(*criteria))

    def list(self, *criteria, order_by=None, offset: int = 0, limit: int = 50) -> Page:
        if offset < 0 or limit < 1:
            raise ValidationFailed("offset must be >= 0 and limit >= 1")
        limit = min(limit, MAX_PAGE_SIZE)
        base = self.scoped_select(*criteria)
        # The primary key breaks ties so pages never overlap.
        if order_by is None:
            ordering = (self.model.id,)
        elif isinstance(order_by, (tuple, list)):
            ordering = (*order_by, self.model.id)
        else:
            ordering = (order_by, self.model.id)

        def _read() -> Page:
            total = self.session.execute(select(func.count()).select_from(base.order_by(None).subquery())).scalar_one()
            items = list(self.session.scalars(base.order_by(*ordering).offset(offset).limit(limit)).all())
            return Page(items=items, total=total, offset=offset, limit=limit)

        return run_read(self.session, _read, retry_delay=self.read_retry_delay)

    def get(self, resource_id: int):
        stmt = self.scoped_select(self.model.id == resource_id)
        obj = run_read(
            self.session,
            lambda: self.session.scalars(stmt).first(),
            retry_delay=self.read_retry_delay,
        )
        if obj is None:
            raise NotOwnerOrNotFound()
        return obj

    # ---- Writes (call inside `transaction(session)`) --------------------------------

    def lock(self, resource_id: int):
        """
        Re-check the predicate for one row and lock it for the rest of the
        transaction. If ownership changed since authorization the row no longer
        matches and NotOwnerOrNotFound is raised before anything is written.
        """
        stmt = (
            self.scoped_select(self.model.id == resource_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        obj = self.session.scalars(stmt).first()
        if obj is None:
            raise NotOwnerOrNotFound()
        return obj

    def add(self, obj):
        self.session.add(obj)
        self.session.flush()
        return obj

    def update(self, resource_id: int, values: Mapping[str, Any]):
        columns = inspect(self.model).columns
        unknown = set(values) - set(columns.keys())
        if unknown or "id" in values:
            raise ValidationFailed(f"Cannot update fields: {sorted(unknown | ({'id'} & set(values)))}")
        required = sorted(key for key, value in values.items() if value is None and not columns[key].nullable)
        if required:
            raise ValidationFailed(f"Fields cannot be null: {required}")

        obj = self.lock(resource_id)
        for key, value in values.items():
            setattr(obj, key, value)
        self.session.flush()
        return obj

    def delete(self, resource_id: int) -> None:
        obj = self.lock(resource_id)
        self.session.delete(obj)
        self.session.flush()
