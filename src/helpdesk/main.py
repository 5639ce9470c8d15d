"""
Helpdesk SLA Engine - Main Application
======================================

SLA/escalation engine and workflow rule engine for a support desk.

Modules:
- Tickets: ticket state machine behind an optimistic-locked store
- SLA Monitoring: warning/breach scans, escalation, dashboards
- Workflow: rule registry reacting to ticket lifecycle events
- Notifications: recorded, deduplicated, best-effort delivery

Clean Architecture Layers:
- Interfaces: FastAPI controllers
- Application: Services and DTOs
- Domain: Entities and value objects
- Infrastructure: Database, YAML config, scheduler, webhook
"""

from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware

# Configuration and Core
from helpdesk.config import settings
from helpdesk.core import ApplicationException

# Infrastructure
from helpdesk.infrastructure.database import init_database, close_database, create_tables

# Bounded contexts
from helpdesk.notifications.application import NotificationService
from helpdesk.notifications.infrastructure import (
    InMemoryNotificationRepository,
    SQLAlchemyNotificationRepository,
    WebhookNotificationChannel,
)
from helpdesk.sla.application import EscalationService, SLAMonitorService
from helpdesk.sla.infrastructure import SLAConfigManager, SLAScheduler
from helpdesk.tickets.application import TicketService
from helpdesk.tickets.infrastructure import (
    InMemoryTicketStore,
    InMemoryUserDirectory,
    SQLAlchemyTicketStore,
    SQLAlchemyUserDirectory,
)
from helpdesk.workflow.application import WorkflowEngine, build_default_rules
from helpdesk.workflow.infrastructure import load_rules_from_yaml

# Module Routers
from helpdesk.sla.interfaces import sla_router
from helpdesk.tickets.interfaces import tickets_router
from helpdesk.workflow.interfaces import workflow_router

# Shared
from helpdesk.shared.api.middleware import (
    CorrelationIDMiddleware,
    LoggingMiddleware,
    application_exception_handler,
    global_exception_handler,
)
from helpdesk.shared.infrastructure.clock import utcnow
from helpdesk.shared.infrastructure.logging import setup_logging, get_logger

logger = get_logger(__name__)

# Global service instances
sla_config_manager: Optional[SLAConfigManager] = None
sla_scheduler: Optional[SLAScheduler] = None


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator:
    """
    Application lifespan manager.

    STARTUP:
    1. Setup structured logging
    2. Initialize storage backend (database or memory)
    3. Load SLA configuration and watch it
    4. Wire notifier, workflow engine, SLA monitor, escalation, ticket service
    5. Register default and file-based workflow rules
    6. Start the SLA scheduler

    SHUTDOWN:
    1. Stop SLA scheduler
    2. Stop config watcher
    3. Drain pending notification deliveries
    4. Close database connections
    """
    global sla_config_manager, sla_scheduler

    # === STARTUP ===
    setup_logging(settings.log_level, settings.environment)
    logger.info("Starting Helpdesk SLA Engine", extra={
        "version": settings.app_version,
        "environment": settings.environment,
        "store_backend": settings.store_backend
    })

    # A clock placed on app.state before startup is shared by every service
    clock = getattr(app.state, "clock", None) or utcnow
    app.state.clock = clock

    # Storage backend
    if settings.store_backend == "database":
        logger.info("Initializing database")
        init_database()
        try:
            await create_tables()
        except Exception as e:
            logger.warning(
                "Database not available - running in degraded mode",
                extra={"error": str(e)}
            )
        ticket_store = SQLAlchemyTicketStore()
        user_directory = SQLAlchemyUserDirectory()
        notification_repo = SQLAlchemyNotificationRepository()
    else:
        ticket_store = InMemoryTicketStore()
        user_directory = InMemoryUserDirectory()
        notification_repo = InMemoryNotificationRepository()

    # SLA configuration
    logger.info("Loading SLA configuration", extra={"path": str(settings.sla_config_path)})
    sla_config_manager = SLAConfigManager()
    sla_config_manager.load(settings.sla_config_path)
    sla_config_manager.start_watching()

    # Notifier
    channels = []
    if settings.notification_webhook_url:
        channels.append(WebhookNotificationChannel(
            settings.notification_webhook_url,
            timeout_seconds=settings.notification_timeout_seconds
        ))
    notifier = NotificationService(notification_repo, user_directory, channels, clock=clock)

    # Workflow engine
    workflow_engine = WorkflowEngine(
        ticket_store, user_directory, notifier, sla_config_manager, clock=clock
    )
    for rule in build_default_rules(
        auto_assign_category=settings.auto_assign_category,
        auto_assign_specialization=settings.auto_assign_specialization,
        auto_close_resolved_days=settings.auto_close_resolved_days,
        auto_close_inactive_days=settings.auto_close_inactive_days,
    ):
        workflow_engine.register_rule(rule.name, rule)
    if settings.workflow_rules_path:
        for rule in load_rules_from_yaml(settings.workflow_rules_path):
            workflow_engine.register_rule(rule.name, rule)

    # SLA monitor and escalation
    escalation_service = EscalationService(
        ticket_store, notifier, sla_config_manager, workflow_engine, clock=clock
    )
    sla_monitor = SLAMonitorService(
        ticket_store, user_directory, notifier, sla_config_manager, escalation_service, clock=clock
    )

    ticket_service = TicketService(ticket_store, sla_config_manager, workflow_engine, clock=clock)

    # Scheduler
    if settings.scheduler_enabled:
        sla_scheduler = SLAScheduler(
            sla_check_minutes=settings.sla_check_interval_minutes,
            escalation_check_minutes=settings.escalation_check_interval_minutes
        )
        await sla_scheduler.start(sla_monitor.check_sla_status, escalation_service.check_escalations)
    else:
        sla_scheduler = None
        logger.info("SLA scheduler disabled")

    # Store services in app state for dependency injection
    app.state.settings = settings
    app.state.ticket_store = ticket_store
    app.state.user_directory = user_directory
    app.state.notifier = notifier
    app.state.sla_config = sla_config_manager
    app.state.workflow_engine = workflow_engine
    app.state.escalation_service = escalation_service
    app.state.sla_monitor = sla_monitor
    app.state.ticket_service = ticket_service

    logger.info("Helpdesk SLA Engine started successfully")

    yield  # Application runs here

    # === SHUTDOWN ===
    logger.info("Shutting down Helpdesk SLA Engine")

    if sla_scheduler:
        await sla_scheduler.stop()

    if sla_config_manager:
        sla_config_manager.stop_watching()

    await notifier.drain(timeout=10)
    await notifier.close()

    if settings.store_backend == "database":
        await close_database()

    logger.info("Helpdesk SLA Engine shutdown complete")


# Create FastAPI application
app = FastAPI(
    title="Helpdesk SLA Engine API",
    description="""
    ## Support ticket SLA monitoring, escalation and workflow automation

    ---

    ### Tickets
    - `POST /tickets` - Create a ticket (due date from priority)
    - `GET /tickets/{id}` - Ticket with derived SLA status
    - `PATCH /tickets/{id}` - Versioned update (409 on stale `version`)

    ### SLA Monitoring
    - `GET /sla/stats` - Aggregate on-time / breached / warning counts
    - `GET /sla/tickets/{id}` - SLA view of one ticket

    Background jobs: warning/breach scan every 15 minutes, escalation
    scan every 60 minutes.

    | Priority | Resolution budget |
    |----------|-------------------|
    | urgent   | 2h                |
    | high     | 8h                |
    | medium   | 24h               |
    | low      | 72h               |

    ### Workflow
    - `GET/POST /workflow/rules`, `DELETE /workflow/rules/{name}`
    - `POST /workflow/test` - Dry-run a rule's conditions
    - `GET /workflow/stats`

    Callers identify themselves with `X-Actor-Id` and `X-Actor-Role`
    headers set by the upstream auth layer.
    """,
    version=settings.app_version,
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan
)

# === CORS Middleware ===
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# === Custom Middleware (from shared) ===
app.add_middleware(LoggingMiddleware)
app.add_middleware(CorrelationIDMiddleware)
app.add_exception_handler(ApplicationException, application_exception_handler)
app.add_exception_handler(Exception, global_exception_handler)

# === Include Module Routers ===
app.include_router(tickets_router)
app.include_router(sla_router)
app.include_router(workflow_router)


# === Health Check Endpoint ===

@app.get("/health", tags=["Health"], responses={
    200: {
        "description": "Service is healthy",
        "content": {
            "application/json": {
                "example": {
                    "status": "healthy",
                    "version": "1.0.0",
                    "environment": "development",
                    "checks": {
                        "store_backend": "database",
                        "sla_config": "loaded",
                        "sla_scheduler": "running",
                        "workflow_rules": 4,
                        "pending_notifications": 0
                    }
                }
            }
        }
    }
})
async def health_check(request: Request):
    """Health check endpoint for load balancers and orchestrators."""
    state = request.app.state
    notifier = getattr(state, "notifier", None)
    workflow_engine = getattr(state, "workflow_engine", None)

    checks = {
        "store_backend": settings.store_backend,
        "sla_config": "loaded" if sla_config_manager else "not_loaded",
        "sla_scheduler": "running" if sla_scheduler and sla_scheduler.is_running else "stopped",
        "workflow_rules": len(workflow_engine.list_rules()) if workflow_engine else 0,
        "pending_notifications": notifier.pending_deliveries if notifier else 0
    }

    return {
        "status": "healthy",
        "version": settings.app_version,
        "environment": settings.environment,
        "checks": checks
    }


@app.get("/", tags=["Root"])
async def root():
    """Root endpoint with API information."""
    return {
        "service": "Helpdesk SLA Engine",
        "version": settings.app_version,
        "architecture": "Clean Architecture / Modular Monolith",
        "docs": "/docs",
        "health": "/health"
    }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "helpdesk.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug
    )
