# app/main.py
"""
Desk bulk relay application: HTTP routes, the dashboard socket and the
lifecycle of shared services (token cache, Desk client, background tasks).
"""

import time
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request

from app.config import settings
from app.infrastructure.observability.logging import get_logger, setup_logging
from app.middleware.cors import CORSMiddleware
from app.routes import dashboard_ws, health, profiles, tickets
from app.services.container import RelayServices

# Setup logging before creating the app
setup_logging(log_level=settings.LOG_LEVEL)
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Build shared services on startup; drain background work on shutdown."""
    logger.info("Application starting", environment=settings.environment, debug=settings.debug)

    # Tests may install their own services before startup
    if getattr(app.state, "services", None) is None:
        app.state.services = RelayServices.from_settings()
    services: RelayServices = app.state.services

    logger.info(
        "Services initialized",
        profiles_path=str(services.profiles.path),
        ticket_log_path=str(services.ticket_log.path),
    )

    yield

    logger.info("Application shutting down", active_jobs=len(services.registry))
    try:
        await services.aclose()
    except Exception as e:
        logger.error("Error during shutdown", error=str(e))
    else:
        logger.info("All services closed successfully")


app = FastAPI(
    title="Desk Bulk Relay",
    description="Bulk Zoho Desk ticket creation with live progress over WebSocket",
    version="0.1.0",
    lifespan=lifespan,
)

app.add_middleware(CORSMiddleware, allowed_origins=settings.CORS_ALLOWED_ORIGINS)

# Include routers
app.include_router(health.router)
app.include_router(profiles.router)
app.include_router(tickets.router)
app.include_router(dashboard_ws.router)


@app.middleware("http")
async def log_requests(request: Request, call_next):
    """Log HTTP requests with timing."""
    start_time = time.time()
    response = await call_next(request)
    process_time = (time.time() - start_time) * 1000

    logger.info(
        "HTTP request completed",
        method=request.method,
        path=request.url.path,
        status_code=response.status_code,
        duration_ms=round(process_time, 2),
    )
    return response


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=3000)
