"""
One-off ticket endpoints: create a single ticket, or check delivery of an existing one.
"""

from fastapi import APIRouter, Depends, HTTPException, status

from app.infrastructure.observability.logging import get_logger
from app.models.api.ticket_request import SingleTicketRequest, VerifyTicketRequest
from app.services.container import RelayServices, get_services
from app.services.zoho_errors import parse_error

router = APIRouter(prefix="/api/tickets", tags=["tickets"])
logger = get_logger(__name__)


@router.post("/single")
async def create_single_ticket(
    request: SingleTicketRequest, services: RelayServices = Depends(get_services)
):
    if not request.email or not request.selected_profile_name:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Missing email or profile.")

    profile = await services.profiles.get(request.selected_profile_name)
    if profile is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Profile not found.")

    try:
        outcome = await services.tickets.create(
            profile,
            request.email,
            request.subject,
            request.description,
            send_direct_reply=request.send_direct_reply,
        )
    except Exception as e:
        summary = parse_error(e)
        logger.warning(
            "Single ticket creation failed", profile=profile.profile_name, error=summary.message
        )
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail={"error": summary.message, "fullResponse": summary.full_response},
        ) from e

    return {
        "success": outcome.success,
        "ticketNumber": outcome.ticket_number,
        "details": outcome.details,
        "fullResponse": outcome.full_response,
    }


@router.post("/verify")
async def verify_ticket(request: VerifyTicketRequest, services: RelayServices = Depends(get_services)):
    if not request.ticket or not request.profile_name:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST, detail="Missing ticket details or profile."
        )

    profile = await services.profiles.get(request.profile_name)
    if profile is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Profile not found.")

    outcome = await services.verifier.check(request.ticket, profile)
    return {
        "success": outcome.success,
        "details": outcome.details,
        "fullResponse": outcome.full_response,
    }
