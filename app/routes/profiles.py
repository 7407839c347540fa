"""
Profile management endpoints.
Profiles hold Zoho credentials and are returned in full; the relay only listens on localhost.
"""

from typing import Any

from fastapi import APIRouter, Body, Depends, HTTPException

from app.infrastructure.observability.logging import get_logger
from app.services.container import RelayServices, get_services
from app.services.profile_store import ProfileStoreError

router = APIRouter(prefix="/api/profiles", tags=["profiles"])
logger = get_logger(__name__)


@router.get("")
async def list_profiles(services: RelayServices = Depends(get_services)):
    return await services.profiles.list_raw()


@router.post("")
async def add_profile(
    new_profile: dict[str, Any] = Body(...),
    services: RelayServices = Depends(get_services),
):
    try:
        profiles = await services.profiles.add(new_profile)
    except ProfileStoreError as e:
        raise HTTPException(status_code=e.status_code, detail=str(e)) from e
    return {"success": True, "profiles": profiles}


@router.put("/{profile_name}")
async def update_profile(
    profile_name: str,
    changes: dict[str, Any] = Body(...),
    services: RelayServices = Depends(get_services),
):
    try:
        profiles = await services.profiles.update(profile_name, changes)
    except ProfileStoreError as e:
        raise HTTPException(status_code=e.status_code, detail=str(e)) from e

    # Credentials may have changed under the same name
    services.oauth.invalidate(profile_name)
    return {"success": True, "profiles": profiles}
