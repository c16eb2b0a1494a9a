"""
SupportDesk - Main Application
==============================

Support ticket lifecycle engine.

Modules:
- SLA: Deadlines per priority, at-risk/breached evaluation, breach sweep
- Assignment: Agents, capacity and least-loaded routing
- Lifecycle: Ticket state machine, conversation log, notifications
- Triage: Classification at intake and AI-proposed updates

Clean Architecture Layers:
- Interfaces: FastAPI controllers
- Application: Services and DTOs
- Domain: Entities, value objects and pure business rules
- Infrastructure: Database, in-memory store, LLM, webhooks, scheduler
"""

from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware

from supportdesk.assignment.interfaces import agents_router
from supportdesk.bootstrap import SupportDeskServices, build_services
from supportdesk.config import settings
from supportdesk.infrastructure.database import close_database, create_tables, init_database
from supportdesk.lifecycle.interfaces import tickets_router
from supportdesk.shared.api.middleware import install_middleware
from supportdesk.shared.infrastructure.logging import get_logger, setup_logging
from supportdesk.sla.interfaces import sla_router
from supportdesk.triage.interfaces import triage_router

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator:
    """
    Application lifespan manager.

    STARTUP:
    1. Setup structured logging
    2. Initialize database and tables (unless running in memory)
    3. Wire services
    4. Start the SLA breach sweep

    SHUTDOWN:
    1. Stop the sweep and flush pending notifications
    2. Close database connections
    """
    setup_logging(settings.log_level, settings.environment)
    logger.info("Starting SupportDesk", extra={
        "version": settings.app_version,
        "environment": settings.environment,
        "in_memory": settings.use_in_memory_store
    })

    owns_services = getattr(app.state, "services", None) is None
    uses_database = owns_services and not settings.use_in_memory_store

    if uses_database:
        logger.info("Initializing database")
        init_database()
        # For development - use Alembic in production
        await create_tables()

    if owns_services:
        app.state.services = build_services(settings)

    services: SupportDeskServices = app.state.services
    if owns_services:
        await services.scheduler.start(services.sla_monitor.sweep)

    logger.info("SupportDesk started successfully")

    yield  # Application runs here

    logger.info("Shutting down SupportDesk")
    if owns_services:
        await services.shutdown()
        app.state.services = None
    if uses_database:
        await close_database()
    logger.info("SupportDesk shutdown complete")


def create_app(services: Optional[SupportDeskServices] = None) -> FastAPI:
    """
    Build the FastAPI application.

    Args:
        services: Pre-wired services; when omitted they are built at startup
            from the environment
    """
    app = FastAPI(
        title="SupportDesk API",
        description="""
    ## Support Ticket Lifecycle Engine

    - **Tickets**: open, converse, change status/priority/category, reassign, bulk update
    - **Agents**: register, adjust capacity, deactivate with automatic redistribution
    - **SLA**: per-priority deadlines (urgent 8h, high 24h, medium 48h, low 72h), breach sweep
    - **Triage**: classifier previews and AI-proposed updates
    """,
        version=settings.app_version,
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan
    )
    app.state.settings = settings
    app.state.services = services

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    install_middleware(app)

    app.include_router(tickets_router)
    app.include_router(agents_router)
    app.include_router(sla_router)
    app.include_router(triage_router)

    @app.get("/health", tags=["Health"])
    async def health_check(request: Request):
        """Health check endpoint for load balancers and orchestrators."""
        wired: Optional[SupportDeskServices] = request.app.state.services
        checks = {
            "services": "ready" if wired else "not_initialized",
            "storage": "memory" if settings.use_in_memory_store else "database",
            "sla_scheduler": "running" if wired and wired.scheduler.is_running else "stopped",
            "classifier": settings.classifier_backend,
            "notifier": "webhook" if settings.webhook_url else "log",
            "pending_notifications": wired.dispatcher.pending if wired else 0
        }
        return {
            "status": "healthy" if wired else "starting",
            "version": settings.app_version,
            "environment": settings.environment,
            "checks": checks
        }

    return app


app = create_app()


# === Development Entry Point ===

if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "supportdesk.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.environment == "development",
        log_level="info"
    )
