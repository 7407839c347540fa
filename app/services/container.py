"""
Application-owned service graph.
Built once in the lifespan and stored on app.state so routes and jobs share one
registry, one token cache and one HTTP client.
"""

from dataclasses import dataclass

from fastapi import Request

from app.config import settings
from app.jobs.background_tasks import BackgroundTaskSet
from app.jobs.job_registry import JobRegistry
from app.services.profile_store import ProfileStore
from app.services.ticket_log import TicketLog
from app.services.ticket_service import TicketService
from app.services.verification_service import VerificationService
from app.services.zoho_desk_service import ZohoDeskService
from app.services.zoho_oauth_service import ZohoOAuthService


@dataclass
class RelayServices:
    registry: JobRegistry
    background: BackgroundTaskSet
    profiles: ProfileStore
    ticket_log: TicketLog
    oauth: ZohoOAuthService
    desk: ZohoDeskService
    tickets: TicketService
    verifier: VerificationService

    @classmethod
    def from_settings(cls) -> "RelayServices":
        oauth = ZohoOAuthService()
        desk = ZohoDeskService(oauth)
        ticket_log = TicketLog(settings.ticket_log_path())
        return cls(
            registry=JobRegistry(),
            background=BackgroundTaskSet(),
            profiles=ProfileStore(settings.profiles_path()),
            ticket_log=ticket_log,
            oauth=oauth,
            desk=desk,
            tickets=TicketService(desk, ticket_log),
            verifier=VerificationService(desk),
        )

    async def aclose(self) -> None:
        await self.background.shutdown(settings.SHUTDOWN_GRACE_SECONDS)
        await self.desk.aclose()


def get_services(request: Request) -> RelayServices:
    """FastAPI dependency returning the services built at startup."""
    return request.app.state.services
