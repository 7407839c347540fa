# app/routes/dashboard_ws.py
"""
Dashboard WebSocket: the live control and event channel.

Frames are JSON objects {"event": name, "data": {...}} in both directions.
Each socket gets a connection id; bulk jobs are keyed by that id and the
profile name, and are dropped from the registry when the socket closes.
"""

import asyncio
import json
import uuid

from fastapi import APIRouter, WebSocket, WebSocketDisconnect
from pydantic import ValidationError

from app.infrastructure.observability.logging import get_logger
from app.jobs.bulk_ticket_job import BulkTicketJob, verify_and_emit
from app.models.api.ticket_request import (
    BulkCreateRequest,
    JobControlRequest,
    ProfileActionRequest,
    SingleTicketRequest,
    UpdateMailReplyAddressRequest,
)
from app.models.domain.job_domain import BULK_ERROR, make_job_id
from app.services.container import RelayServices
from app.services.zoho_errors import ProfileNotFoundError, parse_error

logger = get_logger(__name__)

router = APIRouter()

# inbound event -> (handler method, runs as a task)
EVENT_HANDLERS: dict[str, tuple[str, bool]] = {
    "startBulkCreate": ("start_bulk_create", True),
    "pauseJob": ("pause_job", False),
    "resumeJob": ("resume_job", False),
    "endJob": ("end_job", False),
    "checkApiStatus": ("check_api_status", True),
    "sendTestTicket": ("send_test_ticket", True),
    "getEmailFailures": ("get_email_failures", True),
    "clearEmailFailures": ("clear_email_failures", True),
    "clearTicketLogs": ("clear_ticket_logs", True),
    "getMailReplyAddressDetails": ("get_mail_reply_address_details", True),
    "updateMailReplyAddressDetails": ("update_mail_reply_address_details", True),
}


class DashboardConnection:
    """One browser tab's socket plus the tasks it started."""

    def __init__(self, websocket: WebSocket, services: RelayServices):
        self.websocket = websocket
        self.services = services
        self.connection_id = uuid.uuid4().hex
        self.closed = False
        self._send_lock = asyncio.Lock()
        self._tasks: set[asyncio.Task] = set()

    async def emit(self, event: str, data: dict) -> None:
        """Send one event. Sends after the socket closed are dropped."""
        if self.closed:
            return
        try:
            async with self._send_lock:
                await self.websocket.send_json({"event": event, "data": data})
        except (WebSocketDisconnect, RuntimeError, OSError) as e:
            self.closed = True
            logger.debug(
                "Dropped event for closed connection",
                connection_id=self.connection_id,
                event=event,
                error=str(e),
            )

    async def dispatch(self, raw: str) -> None:
        try:
            frame = json.loads(raw)
        except ValueError:
            await self.emit("error", {"message": "Frame is not valid JSON."})
            return

        if not isinstance(frame, dict):
            await self.emit("error", {"message": "Frame must be a JSON object."})
            return

        event = frame.get("event")
        data = frame.get("data") or {}
        if event not in EVENT_HANDLERS:
            await self.emit("error", {"event": event, "message": f"Unknown event '{event}'."})
            return

        method_name, background = EVENT_HANDLERS[event]
        handler = getattr(self, method_name)
        if background:
            task = asyncio.create_task(self._run_handler(event, handler, data), name=event)
            self._tasks.add(task)
            task.add_done_callback(self._tasks.discard)
        else:
            await self._run_handler(event, handler, data)

    async def _run_handler(self, event: str, handler, data: dict) -> None:
        try:
            await handler(data)
        except ValidationError as e:
            logger.info("Invalid dashboard event", event=event, errors=e.error_count())
            await self.emit("error", {"event": event, "message": "Invalid event payload."})
        except Exception as e:
            logger.error(
                "Dashboard event handler failed",
                event=event,
                connection_id=self.connection_id,
                error=str(e),
                error_type=type(e).__name__,
            )
            await self.emit("error", {"event": event, "message": parse_error(e).message})

    def close(self) -> None:
        self.closed = True
        self.services.registry.remove_connection(self.connection_id)

    async def _require_profile(self, profile_name: str | None):
        profile = await self.services.profiles.get(profile_name)
        if profile is None:
            raise ProfileNotFoundError(profile_name)
        return profile

    # ------------------------------------------------------------------
    # Bulk job control
    # ------------------------------------------------------------------

    async def start_bulk_create(self, data: dict) -> None:
        try:
            request = BulkCreateRequest.model_validate(data)
        except ValidationError:
            profile_name = data.get("selectedProfileName") if isinstance(data, dict) else None
            await self.emit(
                BULK_ERROR,
                {"message": "Invalid bulk job request.", "profileName": profile_name},
            )
            return

        job = BulkTicketJob(
            job_id=make_job_id(self.connection_id, request.selected_profile_name),
            request=request,
            registry=self.services.registry,
            profiles=self.services.profiles,
            tickets=self.services.tickets,
            verifier=self.services.verifier,
            background=self.services.background,
            emit=self.emit,
        )
        await job.run()

    async def pause_job(self, data: dict) -> None:
        request = JobControlRequest.model_validate(data)
        self.services.registry.pause(make_job_id(self.connection_id, request.profile_name))

    async def resume_job(self, data: dict) -> None:
        request = JobControlRequest.model_validate(data)
        self.services.registry.resume(make_job_id(self.connection_id, request.profile_name))

    async def end_job(self, data: dict) -> None:
        request = JobControlRequest.model_validate(data)
        self.services.registry.end(make_job_id(self.connection_id, request.profile_name))

    # ------------------------------------------------------------------
    # Single ticket and status
    # ------------------------------------------------------------------

    async def check_api_status(self, data: dict) -> None:
        request = ProfileActionRequest.model_validate(data)
        try:
            profile = await self._require_profile(request.selected_profile_name)
            token_response = await self.services.oauth.get_token_response(profile)
            await self.emit(
                "apiStatusResult",
                {
                    "success": True,
                    "message": "Token is valid. Connection to Zoho API is successful.",
                    "fullResponse": token_response,
                },
            )
        except Exception as e:
            summary = parse_error(e)
            await self.emit(
                "apiStatusResult",
                {
                    "success": False,
                    "message": f"Connection failed: {summary.message}",
                    "fullResponse": summary.full_response,
                },
            )

    async def send_test_ticket(self, data: dict) -> None:
        request = SingleTicketRequest.model_validate(data)
        if not request.email or not request.selected_profile_name:
            await self.emit(
                "testTicketResult", {"success": False, "error": "Missing email or profile."}
            )
            return

        try:
            profile = await self._require_profile(request.selected_profile_name)
            outcome = await self.services.tickets.create(
                profile,
                request.email,
                request.subject,
                request.description,
                send_direct_reply=request.send_direct_reply,
            )
        except Exception as e:
            summary = parse_error(e)
            await self.emit(
                "testTicketResult",
                {"success": False, "error": summary.message, "fullResponse": summary.full_response},
            )
            return

        await self.emit(
            "testTicketResult",
            {
                "success": outcome.success,
                "ticketNumber": outcome.ticket_number,
                "details": outcome.details,
                "fullResponse": outcome.full_response,
            },
        )

        if request.verify_email:
            self.services.background.spawn(
                verify_and_emit(
                    self.services.verifier,
                    outcome.ticket,
                    profile,
                    self.emit,
                    event="testTicketVerificationResult",
                ),
                name=f"verify-{outcome.ticket_number}",
            )

    # ------------------------------------------------------------------
    # Failure alerts, ticket log, reply address
    # ------------------------------------------------------------------

    async def get_email_failures(self, data: dict) -> None:
        request = ProfileActionRequest.model_validate(data)
        try:
            profile = await self._require_profile(request.selected_profile_name)
            response = await self.services.desk.list_email_failure_alerts(profile, limit=50)
            failures = await self.services.ticket_log.attach_emails(response.get("data") or [])
            await self.emit("emailFailuresResult", {"success": True, "data": failures})
        except Exception as e:
            await self.emit(
                "emailFailuresResult", {"success": False, "error": parse_error(e).message}
            )

    async def clear_email_failures(self, data: dict) -> None:
        request = ProfileActionRequest.model_validate(data)
        try:
            profile = await self._require_profile(request.selected_profile_name)
            await self.services.desk.clear_email_failure_alerts(profile)
            await self.emit("clearEmailFailuresResult", {"success": True})
        except Exception as e:
            await self.emit(
                "clearEmailFailuresResult", {"success": False, "error": parse_error(e).message}
            )

    async def clear_ticket_logs(self, data: dict) -> None:
        try:
            await self.services.ticket_log.clear()
            await self.emit("clearTicketLogsResult", {"success": True})
        except OSError as e:
            logger.error("Could not clear ticket log", error=str(e))
            await self.emit(
                "clearTicketLogsResult",
                {"success": False, "error": "Failed to clear log file on server."},
            )

    async def get_mail_reply_address_details(self, data: dict) -> None:
        request = ProfileActionRequest.model_validate(data)
        try:
            profile = await self._require_profile(request.selected_profile_name)
            if not profile.mail_reply_address_id:
                await self.emit(
                    "mailReplyAddressDetailsResult", {"success": True, "notConfigured": True}
                )
                return
            details = await self.services.desk.get_mail_reply_address(profile)
            await self.emit("mailReplyAddressDetailsResult", {"success": True, "data": details})
        except Exception as e:
            await self.emit(
                "mailReplyAddressDetailsResult", {"success": False, "error": parse_error(e).message}
            )

    async def update_mail_reply_address_details(self, data: dict) -> None:
        request = UpdateMailReplyAddressRequest.model_validate(data)
        try:
            profile = await self.services.profiles.get(request.selected_profile_name)
            if profile is None or not profile.mail_reply_address_id:
                raise ValueError("Mail Reply Address ID is not configured for this profile.")
            updated = await self.services.desk.update_mail_reply_address(
                profile, request.display_name
            )
            await self.emit("updateMailReplyAddressResult", {"success": True, "data": updated})
        except Exception as e:
            await self.emit(
                "updateMailReplyAddressResult", {"success": False, "error": parse_error(e).message}
            )


@router.websocket("/ws")
async def dashboard_socket(websocket: WebSocket):
    services: RelayServices = websocket.app.state.services
    await websocket.accept()

    connection = DashboardConnection(websocket, services)
    logger.info("Dashboard connected", connection_id=connection.connection_id)
    await connection.emit("connected", {"connectionId": connection.connection_id})

    try:
        while True:
            raw = await websocket.receive_text()
            await connection.dispatch(raw)
    except WebSocketDisconnect:
        logger.info("Dashboard disconnected", connection_id=connection.connection_id)
    finally:
        connection.close()
