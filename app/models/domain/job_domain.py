# models/domain/job_domain.py
"""
Bulk job domain types: job identity, status and the events a job emits.
"""

from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class JobStatus(str, Enum):
    RUNNING = "running"
    PAUSED = "paused"
    ENDED = "ended"


def make_job_id(connection_id: str, profile_name: str) -> str:
    """Job identifier for one connection driving one profile."""
    return f"{connection_id}_{profile_name}"


class _Event(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    def payload(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True)


class TicketResult(_Event):
    """Primary per-recipient outcome of a bulk or single ticket run."""

    email: str
    success: bool
    ticket_number: str | int | None = Field(default=None, alias="ticketNumber")
    details: str | None = None
    error: str | None = None
    full_response: Any = Field(default=None, alias="fullResponse")
    profile_name: str | None = Field(default=None, alias="profileName")


class VerificationUpdate(_Event):
    """Delivery verification outcome, correlated by ticket number."""

    ticket_number: str | int | None = Field(default=None, alias="ticketNumber")
    success: bool
    details: str
    full_response: Any = Field(default=None, alias="fullResponse")
    profile_name: str | None = Field(default=None, alias="profileName")


class TerminalEvent(_Event):
    """Single end-of-job event: complete, ended or error."""

    profile_name: str = Field(..., alias="profileName")
    message: str | None = None


# Event names on the dashboard socket
TICKET_RESULT = "ticketResult"
TICKET_UPDATE = "ticketUpdate"
BULK_COMPLETE = "bulkComplete"
BULK_ENDED = "bulkEnded"
BULK_ERROR = "bulkError"
