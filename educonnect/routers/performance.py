from __future__ import annotations

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from educonnect.authz.guard import AuthorizationGuard
from educonnect.authz.resources import Operation, ResourceType
from educonnect.db.session import get_db
from educonnect.identity import Principal
from educonnect.models import Performance
from educonnect.schemas.academics import PerformanceCreate, PerformanceOut, PerformanceUpdate
from educonnect.schemas.common import ListResponse, PaginationParams, list_response
from educonnect.security.dependencies import AccessGrant, get_guard, get_pagination_params, get_principal, grant
from educonnect.services import academics
from educonnect.services.records import update_record
from educonnect.services.repository import ScopedRepository

router = APIRouter(prefix="/performance", tags=["performance"])


@router.get("", response_model=ListResponse[PerformanceOut])
def list_performance(
    access: AccessGrant = Depends(grant(ResourceType.performance, Operation.read)),
    pagination: PaginationParams = Depends(get_pagination_params),
    db: Session = Depends(get_db),
):
    page = ScopedRepository(db, ResourceType.performance, access.predicate).list(
        order_by=Performance.created_at.desc(), offset=pagination.offset, limit=pagination.limit
    )
    return list_response(page)


@router.post("", response_model=PerformanceOut, status_code=status.HTTP_201_CREATED)
def record_performance(
    payload: PerformanceCreate,
    principal: Principal = Depends(get_principal),
    guard: AuthorizationGuard = Depends(get_guard),
    db: Session = Depends(get_db),
):
    return academics.record_performance(db, guard, principal, **payload.model_dump())


@router.patch("/{performance_id}", response_model=PerformanceOut)
def update_performance(
    performance_id: int,
    payload: PerformanceUpdate,
    access: AccessGrant = Depends(grant(ResourceType.performance, Operation.update, ref="performance_id")),
    db: Session = Depends(get_db),
):
    return update_record(
        db, ResourceType.performance, access.predicate, performance_id, payload.model_dump(exclude_unset=True)
    )
