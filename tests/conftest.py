import json
import time

import pytest

from app.jobs.background_tasks import BackgroundTaskSet
from app.jobs.job_registry import JobRegistry
from app.models.domain.profile_domain import Profile
from app.services.container import RelayServices
from app.services.profile_store import ProfileStore
from app.services.ticket_log import TicketLog
from app.services.ticket_service import TicketService
from app.services.verification_service import VerificationService
from app.services.zoho_errors import ZohoApiError

ACME_PROFILE = {
    "profileName": "Acme",
    "orgId": "org-1",
    "defaultDepartmentId": "dept-9",
    "clientId": "client-id",
    "clientSecret": "client-secret",
    "refreshToken": "refresh-token",
    "fromEmailAddress": "support@acme.test",
    "mailReplyAddressId": "mra-1",
}


class FakeOAuth:
    def __init__(self):
        self.invalidated: list[str] = []

    async def get_access_token(self, profile) -> str:
        return "token-abc"

    async def get_token_response(self, profile) -> dict:
        return {"access_token": "token-abc", "expires_in": 3600}

    def invalidate(self, profile_name: str) -> None:
        self.invalidated.append(profile_name)


class FakeDesk:
    """In-memory stand-in for ZohoDeskService."""

    def __init__(self):
        self.calls: list[tuple] = []
        self.create_times: dict[str, float] = {}
        self.fail_create_for: set[str] = set()
        self.fail_reply = False
        self.create_hook = None
        self.history: dict[str, dict] = {
            "WorkflowHistory": {"data": []},
            "NotificationRuleHistory": {"data": []},
        }
        self.alerts: dict = {"data": []}
        self.closed = False
        self._next_number = 100

    async def create_ticket(self, profile, email, subject, description):
        self.calls.append(("create", email))
        self.create_times[email] = time.monotonic()
        if self.create_hook is not None:
            await self.create_hook(email)
        if email in self.fail_create_for:
            raise ZohoApiError(
                "create failed",
                status_code=422,
                reason="Unprocessable Entity",
                response_data={"message": "Invalid contact email", "errorCode": "INVALID_DATA"},
            )
        self._next_number += 1
        return {"id": f"id-{self._next_number}", "ticketNumber": str(self._next_number)}

    async def send_reply(self, profile, ticket_id, to, content):
        self.calls.append(("reply", ticket_id, to))
        if self.fail_reply:
            raise ZohoApiError(
                "reply failed",
                status_code=400,
                reason="Bad Request",
                response_data={"message": "From address not verified"},
            )
        return {"id": f"reply-{ticket_id}", "status": "SUCCESS"}

    async def get_ticket_history(self, profile, ticket_id, event_filter):
        self.calls.append(("history", ticket_id, event_filter))
        return self.history[event_filter]

    async def list_email_failure_alerts(self, profile, limit=None):
        self.calls.append(("alerts", profile.default_department_id, limit))
        return self.alerts

    async def clear_email_failure_alerts(self, profile):
        self.calls.append(("clear_alerts", profile.default_department_id))
        return {}

    async def get_mail_reply_address(self, profile):
        return {"id": profile.mail_reply_address_id, "displayName": "Acme Support"}

    async def update_mail_reply_address(self, profile, display_name):
        self.calls.append(("update_mra", display_name))
        return {"id": profile.mail_reply_address_id, "displayName": display_name}

    async def aclose(self):
        self.closed = True

    def created(self) -> list[str]:
        return [call[1] for call in self.calls if call[0] == "create"]


class EventRecorder:
    """Collects (event, payload) pairs emitted by a job."""

    def __init__(self):
        self.events: list[tuple[str, dict, float]] = []

    async def __call__(self, event: str, data: dict) -> None:
        self.events.append((event, data, time.monotonic()))

    def names(self) -> list[str]:
        return [event for event, _, _ in self.events]

    def named(self, name: str) -> list[dict]:
        return [data for event, data, _ in self.events if event == name]

    def times(self, name: str) -> list[float]:
        return [at for event, _, at in self.events if event == name]


@pytest.fixture
def profile() -> Profile:
    return Profile.model_validate(ACME_PROFILE)


@pytest.fixture
def profiles_path(tmp_path):
    path = tmp_path / "profiles.json"
    path.write_text(json.dumps([ACME_PROFILE]), encoding="utf-8")
    return path


@pytest.fixture
def profile_store(profiles_path) -> ProfileStore:
    return ProfileStore(profiles_path)


@pytest.fixture
def ticket_log(tmp_path) -> TicketLog:
    return TicketLog(tmp_path / "ticket-log.json")


@pytest.fixture
def fake_desk() -> FakeDesk:
    return FakeDesk()


@pytest.fixture
def recorder() -> EventRecorder:
    return EventRecorder()


@pytest.fixture
def services(profile_store, ticket_log, fake_desk) -> RelayServices:
    return RelayServices(
        registry=JobRegistry(),
        background=BackgroundTaskSet(),
        profiles=profile_store,
        ticket_log=ticket_log,
        oauth=FakeOAuth(),
        desk=fake_desk,
        tickets=TicketService(fake_desk, ticket_log),
        verifier=VerificationService(fake_desk, delay_seconds=0),
    )
