from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from educonnect.authz.resources import Operation, ResourceType
from educonnect.db.session import get_db
from educonnect.models import Transaction
from educonnect.schemas.billing import TransactionOut
from educonnect.schemas.common import ListResponse, PaginationParams, list_response
from educonnect.security.dependencies import AccessGrant, get_pagination_params, grant
from educonnect.services.repository import ScopedRepository

router = APIRouter(prefix="/transactions", tags=["transactions"])


@router.get("", response_model=ListResponse[TransactionOut])
def list_transactions(
    access: AccessGrant = Depends(grant(ResourceType.transaction, Operation.read)),
    pagination: PaginationParams = Depends(get_pagination_params),
    db: Session = Depends(get_db),
):
    page = ScopedRepository(db, ResourceType.transaction, access.predicate).list(
        order_by=Transaction.created_at.desc(), offset=pagination.offset, limit=pagination.limit
    )
    return list_response(page)


@router.get("/{transaction_id}", response_model=TransactionOut)
def get_transaction(
    transaction_id: int,
    access: AccessGrant = Depends(grant(ResourceType.transaction, Operation.read, ref="transaction_id")),
    db: Session = Depends(get_db),
):
    return ScopedRepository(db, ResourceType.transaction, access.predicate).get(transaction_id)
