"""
Ticket API request models.
Used by the HTTP routes and the dashboard socket for input validation.
"""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class _DashboardRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class BulkCreateRequest(_DashboardRequest):
    """Request for starting a bulk ticket job."""

    emails: list[str] = Field(default_factory=list, description="Recipient addresses, in order")
    subject: str = Field(default="", description="Ticket subject")
    description: str = Field(default="", description="Ticket description (HTML)")
    delay: float = Field(default=0, ge=0, description="Seconds between recipients")
    selected_profile_name: str = Field(..., alias="selectedProfileName")
    send_direct_reply: bool = Field(default=False, alias="sendDirectReply")
    verify_email: bool = Field(default=False, alias="verifyEmail")


class SingleTicketRequest(_DashboardRequest):
    """Request for creating one ticket outside a bulk job."""

    email: str | None = None
    subject: str = ""
    description: str = ""
    selected_profile_name: str | None = Field(default=None, alias="selectedProfileName")
    send_direct_reply: bool = Field(default=False, alias="sendDirectReply")
    verify_email: bool = Field(default=False, alias="verifyEmail")


class VerifyTicketRequest(_DashboardRequest):
    """Request for an immediate delivery check on an existing ticket."""

    ticket: dict[str, Any] | None = Field(default=None, description="Ticket as returned by create")
    profile_name: str | None = Field(default=None, alias="profileName")


class JobControlRequest(_DashboardRequest):
    """Pause, resume or end a bulk job."""

    profile_name: str = Field(..., alias="profileName")


class ProfileActionRequest(_DashboardRequest):
    """Any socket action scoped to one profile."""

    selected_profile_name: str | None = Field(default=None, alias="selectedProfileName")


class UpdateMailReplyAddressRequest(ProfileActionRequest):
    display_name: str = Field(..., alias="displayName")
