from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from sqlalchemy.engine import Engine

from educonnect.authz.capabilities import load_capability_table
from educonnect.db.init_db import init_db
from educonnect.db.session import make_engine, make_session_factory
from educonnect.errors import install_error_handlers
from educonnect.identity import TokenConfig
from educonnect.logging_config import configure_app_logging
from educonnect.routers import (
    assignments,
    attendance,
    auth,
    classes,
    events,
    health,
    me,
    parent_links,
    performance,
    schools,
    students,
    subscriptions,
    transactions,
    users,
)
from educonnect.settings import Settings, get_settings

logger = logging.getLogger(__name__)


def create_app(
    settings: Settings | None = None,
    *,
    token_config: TokenConfig | None = None,
    engine: Engine | None = None,
) -> FastAPI:
    """
    Build the application. Nothing global is created at import time: the
    engine, session factory, capability table and token config are built at
    startup and handed to request handlers through dependencies.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        # Startup
        app_settings = settings or get_settings()
        configure_app_logging(app_settings.log_level)
        logger.info("App startup beginning")

        capabilities_path = app_settings.resolved_capabilities_path()
        app.state.capabilities = load_capability_table(capabilities_path)
        logger.info("Loaded capability table: %s", capabilities_path)

        app.state.token_config = token_config or TokenConfig.from_environ()

        app.state.engine = engine or make_engine(app_settings.resolved_db_url())
        app.state.session_factory = make_session_factory(app.state.engine)
        init_db(app.state.engine, app.state.session_factory, app_settings)
        logger.info("Database initialized (tables ensured + plans seeded)")

        yield

        # Shutdown: only dispose engines we created.
        if engine is None:
            app.state.engine.dispose()

    app = FastAPI(title="EduConnect", lifespan=lifespan)
    install_error_handlers(app)

    app.include_router(health.router)
    app.include_router(auth.router)
    app.include_router(me.router)
    app.include_router(schools.router)
    app.include_router(users.router)
    app.include_router(classes.router)
    app.include_router(students.router)
    app.include_router(assignments.router)
    app.include_router(attendance.router)
    app.include_router(performance.router)
    app.include_router(parent_links.router)
    app.include_router(events.router)
    app.include_router(subscriptions.router)
    app.include_router(transactions.router)

    return app


app = create_app()
