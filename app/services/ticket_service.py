"""
Ticket creation flow shared by bulk jobs, the test-ticket socket action and the
single-ticket HTTP endpoint: create, log, optionally send the direct reply.
"""

from dataclasses import dataclass

from app.infrastructure.observability.logging import get_logger
from app.models.domain.profile_domain import Profile
from app.services.ticket_log import TicketLog
from app.services.zoho_desk_service import ZohoDeskService
from app.services.zoho_errors import parse_error

logger = get_logger(__name__)


@dataclass
class TicketOutcome:
    ticket: dict
    success: bool
    details: str
    full_response: dict

    @property
    def ticket_number(self):
        return self.ticket.get("ticketNumber")


class TicketService:
    def __init__(self, desk: ZohoDeskService, ticket_log: TicketLog):
        self.desk = desk
        self.ticket_log = ticket_log

    async def create(
        self,
        profile: Profile,
        email: str,
        subject: str,
        description: str,
        send_direct_reply: bool = False,
    ) -> TicketOutcome:
        """
        Create one ticket and optionally reply to the contact.

        A failed reply keeps the ticket (no rollback) and marks the outcome
        unsuccessful with the normalized error under fullResponse.sendReply.

        Raises:
            Whatever the ticket creation call raises; the caller reports it.
        """
        ticket = await self.desk.create_ticket(profile, email, subject, description)
        ticket_number = ticket.get("ticketNumber")
        full_response: dict = {"ticketCreate": ticket}
        details = f"Ticket #{ticket_number} created."
        success = True

        await self.ticket_log.append(ticket_number, email)

        if send_direct_reply:
            try:
                reply = await self.desk.send_reply(profile, ticket.get("id"), email, description)
                details = f"Ticket #{ticket_number} created and reply sent."
                full_response["sendReply"] = reply
            except Exception as e:
                summary = parse_error(e)
                success = False
                details = f"Ticket #{ticket_number} created, but reply failed: {summary.message}"
                full_response["sendReply"] = {"error": summary.to_dict()}
                logger.warning(
                    "Direct reply failed",
                    ticket_number=ticket_number,
                    profile=profile.profile_name,
                    error=summary.message,
                )

        return TicketOutcome(
            ticket=ticket, success=success, details=details, full_response=full_response
        )
