from __future__ import annotations

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from educonnect.authz.guard import AuthorizationGuard
from educonnect.db.session import get_db
from educonnect.identity import Principal
from educonnect.schemas.billing import (
    CurrentSubscriptionResponse,
    PlanCreate,
    PlanOut,
    SubscriptionCreate,
    SubscriptionOut,
)
from educonnect.schemas.common import ListResponse, PaginationParams, list_response
from educonnect.security.dependencies import get_guard, get_pagination_params, get_principal
from educonnect.services import subscriptions

router = APIRouter(prefix="/subscriptions", tags=["subscriptions"])


@router.get("/plans", response_model=list[PlanOut])
def list_plans(
    principal: Principal = Depends(get_principal),
    guard: AuthorizationGuard = Depends(get_guard),
    db: Session = Depends(get_db),
):
    return subscriptions.list_plans(db, guard, principal)


@router.post("/plans", response_model=PlanOut, status_code=status.HTTP_201_CREATED)
def create_plan(
    payload: PlanCreate,
    principal: Principal = Depends(get_principal),
    guard: AuthorizationGuard = Depends(get_guard),
    db: Session = Depends(get_db),
):
    return subscriptions.create_plan(db, guard, principal, **payload.model_dump())


@router.get("/current", response_model=CurrentSubscriptionResponse)
def get_current_subscription(
    principal: Principal = Depends(get_principal),
    guard: AuthorizationGuard = Depends(get_guard),
    db: Session = Depends(get_db),
):
    current = subscriptions.current_subscription(db, guard, principal)
    return {"has_active_subscription": current is not None, "subscription": current}


@router.get("/history", response_model=ListResponse[SubscriptionOut])
def get_subscription_history(
    principal: Principal = Depends(get_principal),
    guard: AuthorizationGuard = Depends(get_guard),
    pagination: PaginationParams = Depends(get_pagination_params),
    db: Session = Depends(get_db),
):
    page = subscriptions.subscription_history(
        db, guard, principal, offset=pagination.offset, limit=pagination.limit
    )
    return list_response(page)


@router.post("", response_model=SubscriptionOut, status_code=status.HTTP_201_CREATED)
def create_subscription(
    payload: SubscriptionCreate,
    principal: Principal = Depends(get_principal),
    guard: AuthorizationGuard = Depends(get_guard),
    db: Session = Depends(get_db),
):
    return subscriptions.create_subscription(
        db, guard, principal, plan_name=payload.plan_name, billing_cycle=payload.billing_cycle
    )


@router.post("/{subscription_id}/cancel", response_model=SubscriptionOut)
def cancel_subscription(
    subscription_id: int,
    principal: Principal = Depends(get_principal),
    guard: AuthorizationGuard = Depends(get_guard),
    db: Session = Depends(get_db),
):
    return subscriptions.cancel_subscription(db, guard, principal, subscription_id)
