from __future__ import annotations

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from educonnect.authz.guard import AuthorizationGuard
from educonnect.authz.resources import Operation, ResourceType
from educonnect.db.session import get_db
from educonnect.identity import Principal
from educonnect.schemas.academics import ParentLinkCreate, ParentLinkOut
from educonnect.schemas.common import ListResponse, MessageResponse, PaginationParams, list_response
from educonnect.security.dependencies import AccessGrant, get_guard, get_pagination_params, get_principal, grant
from educonnect.services import academics
from educonnect.services.records import delete_record
from educonnect.services.repository import ScopedRepository

router = APIRouter(prefix="/parent-links", tags=["parent_links"])


@router.get("", response_model=ListResponse[ParentLinkOut])
def list_parent_links(
    access: AccessGrant = Depends(grant(ResourceType.parent_link, Operation.read)),
    pagination: PaginationParams = Depends(get_pagination_params),
    db: Session = Depends(get_db),
):
    page = ScopedRepository(db, ResourceType.parent_link, access.predicate).list(
        offset=pagination.offset, limit=pagination.limit
    )
    return list_response(page)


@router.post("", response_model=ParentLinkOut, status_code=status.HTTP_201_CREATED)
def link_parent(
    payload: ParentLinkCreate,
    principal: Principal = Depends(get_principal),
    guard: AuthorizationGuard = Depends(get_guard),
    db: Session = Depends(get_db),
):
    return academics.link_parent(db, guard, principal, parent_id=payload.parent_id, student_id=payload.student_id)


@router.delete("/{link_id}", response_model=MessageResponse)
def unlink_parent(
    link_id: int,
    access: AccessGrant = Depends(grant(ResourceType.parent_link, Operation.delete, ref="link_id")),
    db: Session = Depends(get_db),
):
    delete_record(db, ResourceType.parent_link, access.predicate, link_id)
    return {"message": "Parent link removed"}
