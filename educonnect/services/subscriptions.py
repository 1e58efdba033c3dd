"""
Subscription plans and school subscriptions.

A school has at most one Active subscription at any time. The check in
`create_subscription` gives the friendly error; the partial unique index on
`subscriptions(school_id) WHERE status = 'Active'` is what actually closes the
race between two concurrent writers.
"""

from __future__ import annotations

import calendar
import logging
import uuid
from datetime import date

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from educonnect.authz.guard import AuthorizationGuard
from educonnect.authz.resources import Operation, ResourceRef, ResourceType
from educonnect.db.transaction import run_read, transaction
from educonnect.errors import Conflict, NotOwnerOrNotFound, SubscriptionConflict, ValidationFailed
from educonnect.identity import Principal
from educonnect.models import Subscription, SubscriptionPlan, Transaction
from educonnect.models.billing import SUBSCRIPTION_ACTIVE, SUBSCRIPTION_CANCELLED, SUBSCRIPTION_EXPIRED
from educonnect.services.repository import Page, ScopedRepository

logger = logging.getLogger(__name__)

BILLING_CYCLES = ("monthly", "yearly")


def add_months(start: date, months: int) -> date:
    """Calendar month arithmetic, clamping to the last day of the target month."""
    month_index = start.month - 1 + months
    year = start.year + month_index // 12
    month = month_index % 12 + 1
    day = min(start.day, calendar.monthrange(year, month)[1])
    return date(year, month, day)


def _school_of(principal: Principal) -> int:
    if principal.school_id is None:
        raise ValidationFailed("A school account is required for subscriptions")
    return principal.school_id


def _transaction_reference() -> str:
    # Stands in for the payment provider's charge id.
    return f"TRANS-{uuid.uuid4().hex[:12].upper()}"


# ---- Plans --------------------------------------------------------------------------


def list_plans(
    db: Session,
    guard: AuthorizationGuard,
    principal: Principal,
    *,
    include_inactive: bool = False,
) -> list[SubscriptionPlan]:
    predicate = guard.require(principal, ResourceType.subscription_plan, Operation.read)
    stmt = select(SubscriptionPlan)
    if not include_inactive:
        stmt = stmt.where(SubscriptionPlan.is_active.is_(True))
    stmt = predicate.apply(stmt).order_by(SubscriptionPlan.monthly_price)
    return run_read(db, lambda: list(db.scalars(stmt).all()))


def create_plan(
    db: Session,
    guard: AuthorizationGuard,
    principal: Principal,
    *,
    name: str,
    monthly_price: float,
    yearly_price: float,
    features: str | None = None,
) -> SubscriptionPlan:
    guard.require(principal, ResourceType.subscription_plan, Operation.create)
    if monthly_price < 0 or yearly_price < 0:
        raise ValidationFailed("Prices must not be negative")

    try:
        with transaction(db):
            plan = SubscriptionPlan(
                name=name, monthly_price=monthly_price, yearly_price=yearly_price, features=features
            )
            db.add(plan)
            db.flush()
    except IntegrityError as exc:
        raise Conflict("A plan with this name already exists") from exc
    return plan


# ---- Subscriptions ------------------------------------------------------------------


def has_active_subscription(db: Session, school_id: int, today: date | None = None) -> bool:
    """Fresh subscription state, read from storage rather than token claims."""
    today = today or date.today()
    stmt = select(Subscription.id).where(
        Subscription.school_id == school_id,
        Subscription.status == SUBSCRIPTION_ACTIVE,
        Subscription.end_date >= today,
    )
    return run_read(db, lambda: db.execute(stmt.limit(1)).first() is not None)


def current_subscription(
    db: Session,
    guard: AuthorizationGuard,
    principal: Principal,
    today: date | None = None,
) -> Subscription | None:
    predicate = guard.require(principal, ResourceType.subscription, Operation.read)
    today = today or date.today()
    stmt = predicate.apply(
        select(Subscription).where(
            Subscription.school_id == _school_of(principal),
            Subscription.status == SUBSCRIPTION_ACTIVE,
            Subscription.end_date >= today,
        )
    ).order_by(Subscription.start_date.desc())
    return run_read(db, lambda: db.scalars(stmt).first())


def subscription_history(
    db: Session,
    guard: AuthorizationGuard,
    principal: Principal,
    *,
    offset: int = 0,
    limit: int = 20,
) -> Page:
    predicate = guard.require(principal, ResourceType.subscription, Operation.read)
    repo = ScopedRepository(db, ResourceType.subscription, predicate)
    return repo.list(
        Subscription.school_id == _school_of(principal),
        order_by=Subscription.start_date.desc(),
        offset=offset,
        limit=limit,
    )


def create_subscription(
    db: Session,
    guard: AuthorizationGuard,
    principal: Principal,
    *,
    plan_name: str,
    billing_cycle: str,
    today: date | None = None,
) -> Subscription:
    """
    Subscribe the caller's school to a plan.

    Inside one transaction: expire Active rows whose end date has passed,
    refuse if an Active row remains, insert the new subscription and record
    its payment transaction. A concurrent writer that slips past the check is
    stopped by the unique index and reported as SubscriptionConflict.
    """

    if billing_cycle not in BILLING_CYCLES:
        raise ValidationFailed("billing_cycle must be 'monthly' or 'yearly'")
    today = today or date.today()

    try:
        with transaction(db):
            guard.require(principal, ResourceType.subscription, Operation.create)
            school_id = _school_of(principal)

            plan = db.scalars(
                select(SubscriptionPlan).where(
                    SubscriptionPlan.name == plan_name, SubscriptionPlan.is_active.is_(True)
                )
            ).first()
            if plan is None:
                raise NotOwnerOrNotFound()

            db.execute(
                update(Subscription)
                .where(
                    Subscription.school_id == school_id,
                    Subscription.status == SUBSCRIPTION_ACTIVE,
                    Subscription.end_date < today,
                )
                .values(status=SUBSCRIPTION_EXPIRED)
                .execution_options(synchronize_session=False)
            )

            active = db.execute(
                select(Subscription.id)
                .where(Subscription.school_id == school_id, Subscription.status == SUBSCRIPTION_ACTIVE)
                .with_for_update()
            ).first()
            if active is not None:
                raise SubscriptionConflict()

            reference = _transaction_reference()
            yearly = billing_cycle == "yearly"
            subscription = Subscription(
                school_id=school_id,
                plan_id=plan.id,
                billing_cycle=billing_cycle,
                start_date=today,
                end_date=add_months(today, 12 if yearly else 1),
                status=SUBSCRIPTION_ACTIVE,
                payment_status="Paid",
                transaction_ref=reference,
            )
            db.add(subscription)
            db.flush()

            db.add(
                Transaction(
                    school_id=school_id,
                    subscription_id=subscription.id,
                    amount=plan.yearly_price if yearly else plan.monthly_price,
                    status="Completed",
                    reference=reference,
                )
            )
            db.flush()
    except IntegrityError as exc:
        logger.info("Concurrent subscription for school id=%s rejected", principal.school_id)
        raise SubscriptionConflict() from exc

    logger.info("School id=%s subscribed to plan %s (%s)", school_id, plan.name, billing_cycle)
    return subscription


def cancel_subscription(
    db: Session,
    guard: AuthorizationGuard,
    principal: Principal,
    subscription_id: int,
    today: date | None = None,
) -> Subscription:
    today = today or date.today()
    with transaction(db):
        predicate = guard.require(
            principal,
            ResourceType.subscription,
            Operation.update,
            ResourceRef(ResourceType.subscription, subscription_id),
        )
        repo = ScopedRepository(db, ResourceType.subscription, predicate)
        subscription = repo.lock(subscription_id)
        if subscription.status != SUBSCRIPTION_ACTIVE:
            raise Conflict("Subscription is not active")
        subscription.status = SUBSCRIPTION_CANCELLED
        subscription.end_date = today
        db.flush()

    logger.info("Subscription id=%s cancelled by user id=%s", subscription_id, principal.id)
    return subscription
