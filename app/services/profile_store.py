"""
Profile store backed by a local profiles.json file.
File access runs in a worker thread so the event loop never blocks on disk.
"""

import asyncio
import json
from pathlib import Path

from app.infrastructure.observability.logging import get_logger
from app.models.domain.profile_domain import Profile

logger = get_logger(__name__)


class ProfileStoreError(Exception):
    """Raised when a profile cannot be added or updated."""

    def __init__(self, message: str, status_code: int = 400):
        super().__init__(message)
        self.status_code = status_code


class ProfileStore:
    def __init__(self, path: Path):
        self.path = Path(path)

    def _read(self) -> list[dict]:
        try:
            if self.path.exists():
                data = json.loads(self.path.read_text(encoding="utf-8"))
                if isinstance(data, list):
                    return data
                logger.error("profiles file is not a list", path=str(self.path))
        except (OSError, ValueError) as e:
            logger.error("Could not read profiles file", path=str(self.path), error=str(e))
        return []

    def _write(self, profiles: list[dict]) -> None:
        try:
            self.path.write_text(json.dumps(profiles, indent=2), encoding="utf-8")
        except OSError as e:
            logger.error("Could not write profiles file", path=str(self.path), error=str(e))
            raise ProfileStoreError("Failed to save profiles.", status_code=500) from e

    async def list_raw(self) -> list[dict]:
        """All stored profiles exactly as persisted."""
        return await asyncio.to_thread(self._read)

    async def get(self, profile_name: str | None) -> Profile | None:
        if not profile_name:
            return None
        for raw in await self.list_raw():
            if raw.get("profileName") == profile_name:
                return Profile.model_validate(raw)
        return None

    async def add(self, new_profile: dict) -> list[dict]:
        if not new_profile or not new_profile.get("profileName"):
            raise ProfileStoreError("Profile name is required.")

        profiles = await self.list_raw()
        if any(p.get("profileName") == new_profile["profileName"] for p in profiles):
            raise ProfileStoreError("A profile with this name already exists.")

        profiles.append(new_profile)
        await asyncio.to_thread(self._write, profiles)
        logger.info("Profile added", profile=new_profile["profileName"])
        return profiles

    async def update(self, profile_name: str, changes: dict) -> list[dict]:
        """Merge changes into an existing profile, allowing a rename."""
        profiles = await self.list_raw()
        index = next(
            (i for i, p in enumerate(profiles) if p.get("profileName") == profile_name), None
        )
        if index is None:
            raise ProfileStoreError("Profile not found.", status_code=404)

        new_name = changes.get("profileName", profile_name)
        if new_name != profile_name and any(p.get("profileName") == new_name for p in profiles):
            raise ProfileStoreError("A profile with the new name already exists.")

        profiles[index] = {**profiles[index], **changes}
        await asyncio.to_thread(self._write, profiles)
        logger.info("Profile updated", profile=profile_name, new_name=new_name)
        return profiles
