"""
Locate Tracker - Main Application
==================================

SLA tracking for utility locate requests.

Modules:
- Locate Tracking: deadlines, live countdowns, bucketed dashboard,
  bulk call/delete actions and "locates needed" tagging

Clean Architecture Layers:
- Interfaces: FastAPI controllers
- Application: Services and DTOs
- Domain: Entities, value objects, clock
- Infrastructure: Locates API client, config watcher, scheduler
"""

from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware

# Configuration and Core
from config import settings
from core import ApplicationException, LocatesApiException

# Locate Module
from locates.application import LocateTrackerEngine, UserProfile
from locates.infrastructure import LocatesApiClient, LocateSLAConfigManager, LocateScheduler
from locates.interfaces import locates_router

# Shared
from shared.api.middleware import (
    CorrelationIDMiddleware,
    LoggingMiddleware,
    application_exception_handler,
    global_exception_handler,
)
from shared.infrastructure.logging import setup_logging, get_logger

logger = get_logger(__name__)

# Global service instances
config_manager = None
locate_scheduler = None


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator:
    """
    Application lifespan manager.

    STARTUP:
    1. Setup structured logging
    2. Load locate SLA configuration and watch it
    3. Build the engine around the locates API client
    4. Initial refresh (failure leaves an empty record set)
    5. Start the clock tick and refresh jobs

    SHUTDOWN:
    1. Stop scheduler
    2. Stop config watcher
    3. Close the locates API client
    """
    global config_manager, locate_scheduler

    # === STARTUP ===
    setup_logging(settings.log_level, settings.environment)
    logger.info("Starting Locate Tracker", extra={
        "version": settings.app_version,
        "environment": settings.environment
    })

    logger.info("Loading locate SLA configuration")
    config_manager = LocateSLAConfigManager()
    config_manager.load(settings.locate_sla_config_path)
    config_manager.start_watching()

    api_client = LocatesApiClient()
    engine = LocateTrackerEngine.build(
        api_client,
        config_manager,
        profile=UserProfile(
            name=settings.profile_name or "",
            email=settings.profile_email or ""
        )
    )
    app.state.engine = engine
    app.state.settings = settings

    try:
        await engine.dashboard.refresh()
    except LocatesApiException as e:
        logger.warning(
            "Initial locate refresh failed - starting with no records",
            extra={"error": e.message}
        )

    async def clock_tick_job():
        """Advance the shared clock; countdowns re-render on tick."""
        engine.clock.tick()

    async def refresh_job():
        """Periodic full refresh from the locates API."""
        try:
            await engine.dashboard.refresh()
        except LocatesApiException as e:
            logger.warning("Scheduled locate refresh failed", extra={"error": e.message})

    locate_scheduler = LocateScheduler(
        tick_seconds=settings.clock_tick_seconds,
        refresh_seconds=settings.refresh_interval_seconds
    )
    await locate_scheduler.start(clock_tick_job, refresh_job)

    logger.info("Locate Tracker started successfully")

    yield  # Application runs here

    # === SHUTDOWN ===
    logger.info("Shutting down Locate Tracker")

    if locate_scheduler:
        await locate_scheduler.stop()

    if config_manager:
        config_manager.stop_watching()

    await api_client.close()

    logger.info("Locate Tracker shutdown complete")


# Create FastAPI application
app = FastAPI(
    title="Locate Tracker API",
    description="""
    ## Locate SLA Tracking

    Tracks utility locate requests from "needs a call" through "call
    placed" to "deadline reached".

    **Buckets:**
    - Needs Call: excavator-priority work orders with no call recorded
    - In Progress: called, deadline ahead, live countdown
    - Completed: called, deadline reached

    **Deadlines:**
    - EMERGENCY: 4 hours after the call
    - STANDARD: 2 business days after the call (weekends skipped)
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
app.include_router(locates_router)


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
                        "locate_sla_config": "loaded",
                        "scheduler": "running",
                        "records": 42,
                        "last_refreshed_at": "2025-01-03T16:00:00-06:00"
                    }
                }
            }
        }
    }
})
async def health_check(request: Request):
    """
    Health check endpoint for load balancers and orchestrators.

    Returns service health status including:
    - SLA configuration status
    - Scheduler state
    - Size and age of the last-known record set
    """
    engine = getattr(request.app.state, "engine", None)
    checks = {
        "locate_sla_config": "loaded" if config_manager else "not_loaded",
        "scheduler": "running" if locate_scheduler and locate_scheduler.is_running else "stopped",
        "records": len(engine.dashboard.records) if engine else 0,
        "last_refreshed_at": (
            engine.dashboard.last_refreshed_at.isoformat()
            if engine and engine.dashboard.last_refreshed_at else None
        ),
    }

    return {
        "status": "healthy" if engine else "starting",
        "version": settings.app_version,
        "environment": settings.environment,
        "checks": checks
    }


@app.get("/", tags=["Root"])
async def root():
    """Root endpoint with API information."""
    return {
        "service": "Locate Tracker",
        "version": settings.app_version,
        "architecture": "Clean Architecture / Modular Monolith",
        "docs": "/docs",
        "health": "/health",
        "modules": {
            "locates": {
                "prefix": "/locate-tracker",
                "endpoints": [
                    "GET /locate-tracker/dashboard - Bucketed locates with countdowns",
                    "POST /locate-tracker/refresh - Re-fetch all locates",
                    "POST /locate-tracker/selection/{bucket}/call - Bulk mark called",
                    "POST /locate-tracker/selection/{bucket}/delete - Bulk delete",
                    "POST /locate-tracker/tagging/submit - Tag locates needed"
                ]
            }
        }
    }


# === Development Entry Point ===

if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.environment == "development",
        log_level="info"
    )
