"""
Delivery verification for automation emails.

Zoho records a workflow or notification-rule history event when an automation
email goes out. If neither feed has anything, the department's email failure
alerts are searched for the ticket to report why delivery failed.
"""

import asyncio
from dataclasses import dataclass
from typing import Any

from app.config import settings
from app.infrastructure.observability.logging import get_logger
from app.models.domain.job_domain import VerificationUpdate
from app.models.domain.profile_domain import Profile
from app.services.zoho_desk_service import (
    NOTIFICATION_RULE_HISTORY,
    WORKFLOW_HISTORY,
    ZohoDeskService,
)
from app.services.zoho_errors import parse_error

logger = get_logger(__name__)

SENT_MESSAGE = "Email verification: Sent successfully."
NOT_FOUND_MESSAGE = "Email verification: Not Found."
NO_FAILURE_FOUND = "No specific failure found for this ticket."


@dataclass
class VerificationOutcome:
    success: bool
    details: str
    full_response: dict


def find_failure_alert(alerts: list[dict], ticket_number) -> dict | None:
    """Match an alert to a ticket by number, ignoring str/int differences."""
    for alert in alerts:
        if str(alert.get("ticketNumber")) == str(ticket_number):
            return alert
    return None


class VerificationService:
    def __init__(self, desk: ZohoDeskService, delay_seconds: float | None = None):
        self.desk = desk
        self.delay_seconds = (
            settings.VERIFICATION_DELAY_SECONDS if delay_seconds is None else delay_seconds
        )

    async def check(
        self, ticket: dict, profile: Profile, ticket_key: str = "ticketDetails"
    ) -> VerificationOutcome:
        """
        Check delivery status for a ticket right now.

        Upstream errors never propagate; they become an inconclusive failed outcome.
        """
        full_response: dict[str, Any] = {ticket_key: ticket, "verifyEmail": {}}
        ticket_id = ticket.get("id")
        ticket_number = ticket.get("ticketNumber")

        try:
            workflow, notification = await asyncio.gather(
                self.desk.get_ticket_history(profile, ticket_id, WORKFLOW_HISTORY),
                self.desk.get_ticket_history(profile, ticket_id, NOTIFICATION_RULE_HISTORY),
            )
            full_response["verifyEmail"]["history"] = {
                "workflowHistory": workflow,
                "notificationHistory": notification,
            }

            events = (workflow.get("data") or []) + (notification.get("data") or [])
            if events:
                return VerificationOutcome(True, SENT_MESSAGE, full_response)

            alerts = await self.desk.list_email_failure_alerts(profile)
            failure = find_failure_alert(alerts.get("data") or [], ticket_number)
            full_response["verifyEmail"]["failure"] = failure or NO_FAILURE_FOUND

            if failure:
                details = f"Email verification: Failed. Reason: {failure.get('reason')}"
            else:
                details = NOT_FOUND_MESSAGE
            return VerificationOutcome(False, details, full_response)

        except Exception as e:
            summary = parse_error(e)
            logger.warning(
                "Email verification check failed",
                ticket_number=ticket_number,
                profile=profile.profile_name,
                error=summary.message,
            )
            full_response["verifyEmail"]["error"] = summary.full_response
            return VerificationOutcome(
                False,
                f"Email verification: Failed to check status. Error: {summary.message}",
                full_response,
            )

    async def verify_after_delay(self, ticket: dict, profile: Profile) -> VerificationUpdate:
        """Give Zoho's automation time to fire, then check. Used for live ticket runs."""
        if self.delay_seconds > 0:
            await asyncio.sleep(self.delay_seconds)

        outcome = await self.check(ticket, profile, ticket_key="ticketCreate")
        ticket_number = ticket.get("ticketNumber")
        logger.info(
            "Email verification finished",
            ticket_number=ticket_number,
            profile=profile.profile_name,
            success=outcome.success,
        )
        return VerificationUpdate(
            ticket_number=ticket_number,
            success=outcome.success,
            details=f"Ticket #{ticket_number} created. {outcome.details}",
            full_response=outcome.full_response,
            profile_name=profile.profile_name,
        )
