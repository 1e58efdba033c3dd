from __future__ import annotations

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from educonnect.authz.guard import AuthorizationGuard
from educonnect.authz.resources import Operation, ResourceType
from educonnect.db.session import get_db
from educonnect.identity import Principal
from educonnect.models import Event
from educonnect.schemas.academics import EventCreate, EventOut, EventUpdate
from educonnect.schemas.common import ListResponse, MessageResponse, PaginationParams, list_response
from educonnect.security.dependencies import AccessGrant, get_guard, get_pagination_params, get_principal, grant
from educonnect.services import academics
from educonnect.services.records import delete_record, update_record
from educonnect.services.repository import ScopedRepository

router = APIRouter(prefix="/events", tags=["events"])


@router.get("", response_model=ListResponse[EventOut])
def list_events(
    access: AccessGrant = Depends(grant(ResourceType.event, Operation.read)),
    pagination: PaginationParams = Depends(get_pagination_params),
    db: Session = Depends(get_db),
):
    page = ScopedRepository(db, ResourceType.event, access.predicate).list(
        order_by=Event.event_date, offset=pagination.offset, limit=pagination.limit
    )
    return list_response(page)


@router.get("/{event_id}", response_model=EventOut)
def get_event(
    event_id: int,
    access: AccessGrant = Depends(grant(ResourceType.event, Operation.read, ref="event_id")),
    db: Session = Depends(get_db),
):
    return ScopedRepository(db, ResourceType.event, access.predicate).get(event_id)


@router.post("", response_model=EventOut, status_code=status.HTTP_201_CREATED)
def create_event(
    payload: EventCreate,
    principal: Principal = Depends(get_principal),
    guard: AuthorizationGuard = Depends(get_guard),
    db: Session = Depends(get_db),
):
    return academics.create_event(db, guard, principal, **payload.model_dump())


@router.patch("/{event_id}", response_model=EventOut)
def update_event(
    event_id: int,
    payload: EventUpdate,
    access: AccessGrant = Depends(grant(ResourceType.event, Operation.update, ref="event_id")),
    db: Session = Depends(get_db),
):
    return update_record(db, ResourceType.event, access.predicate, event_id, payload.model_dump(exclude_unset=True))


@router.delete("/{event_id}", response_model=MessageResponse)
def delete_event(
    event_id: int,
    access: AccessGrant = Depends(grant(ResourceType.event, Operation.delete, ref="event_id")),
    db: Session = Depends(get_db),
):
    delete_record(db, ResourceType.event, access.predicate, event_id)
    return {"message": "Event deleted"}
