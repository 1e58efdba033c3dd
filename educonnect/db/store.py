from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.orm import Session

from educonnect.authz.resources import model_for
from educonnect.authz.scoping import ScopePredicate

from .transaction import translate_store_errors


class SqlOwnershipStore:
    """
    OwnershipStore backed by a SQLAlchemy session.

    With `lock=True` the row is selected FOR UPDATE, so a mutation running
    later in the same transaction cannot race a concurrent ownership change.
    """

    def __init__(self, session: Session) -> None:
        self._session = session

    def exists(self, predicate: ScopePredicate, resource_id: int, *, lock: bool = False) -> bool:
        if predicate.resource_type is None:
            raise ValueError("existence checks need a resource-typed predicate")
        model = model_for(predicate.resource_type)
        stmt = predicate.apply(select(model.id).where(model.id == resource_id))
        if lock:
            stmt = stmt.with_for_update()
        with translate_store_errors():
            return self._session.execute(stmt).first() is not None
