from __future__ import annotations

import logging

from sqlalchemy import select
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from educonnect.authz.resources import Role
from educonnect.db.base import Base
from educonnect.db.transaction import transaction
from educonnect.identity.passwords import hash_password
from educonnect.models import SubscriptionPlan, User
from educonnect.settings import Settings

logger = logging.getLogger(__name__)

DEFAULT_PLANS = (
    ("Basic", 29.00, 290.00, "Up to 100 students; attendance; assignments"),
    ("Standard", 59.00, 590.00, "Up to 500 students; parent portal; events"),
    ("Premium", 99.00, 990.00, "Unlimited students; reports; priority support"),
)


def init_db(engine: Engine, session_factory: sessionmaker[Session], settings: Settings | None = None) -> None:
    """
    Create tables, seed the subscription plan catalogue and, when configured,
    bootstrap the first platform admin.
    """

    Base.metadata.create_all(bind=engine)

    with session_factory() as db:
        with transaction(db):
            if not _has_plans(db):
                _seed_plans(db)
            if settings is not None and settings.first_admin_email and settings.first_admin_password:
                bootstrap_platform_admin(
                    db,
                    email=settings.first_admin_email,
                    password=settings.first_admin_password,
                    name=settings.first_admin_name,
                )


def _has_plans(db: Session) -> bool:
    return db.execute(select(SubscriptionPlan.id).limit(1)).first() is not None


def _seed_plans(db: Session) -> None:
    db.add_all(
        [
            SubscriptionPlan(name=name, monthly_price=monthly, yearly_price=yearly, features=features)
            for name, monthly, yearly, features in DEFAULT_PLANS
        ]
    )
    logger.info("Seeded %d subscription plans", len(DEFAULT_PLANS))


def bootstrap_platform_admin(db: Session, *, email: str, password: str, name: str) -> User | None:
    """Create the first platform admin unless one already exists. Caller commits."""

    existing = db.execute(select(User.id).where(User.role == Role.platform_admin.value).limit(1)).first()
    if existing is not None:
        return None

    admin = User(
        name=name,
        email=email.lower(),
        password_hash=hash_password(password),
        role=Role.platform_admin.value,
        school_id=None,
    )
    db.add(admin)
    db.flush()
    logger.info("Created first platform admin user id=%s", admin.id)
    return admin
