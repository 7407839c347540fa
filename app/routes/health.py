# app/routes/health.py
"""
Health check endpoints.
"""

import time

from fastapi import APIRouter, Depends

from app.config import settings
from app.services.container import RelayServices, get_services

router = APIRouter()


@router.get("/healthz")
async def healthz():
    """Basic health check - always returns 200 if app is running."""
    return {"status": "ok", "service": "desk-bulk-relay"}


@router.get("/readyz")
async def readyz(services: RelayServices = Depends(get_services)):
    """Readiness plus a snapshot of in-flight work."""
    profiles_path = settings.profiles_path()
    checks = {
        "profiles_store": {
            "ok": profiles_path.parent.exists(),
            "path": str(profiles_path),
        },
        "jobs": {
            "active": len(services.registry),
            "pending_verifications": len(services.background),
        },
    }
    return {
        "overall_ok": checks["profiles_store"]["ok"],
        "checks": checks,
        "environment": settings.environment,
        "timestamp": time.time(),
    }
