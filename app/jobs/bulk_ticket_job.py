"""
Bulk ticket job.

Walks a recipient list sequentially: create the ticket, optionally send the
direct reply, report the result, optionally schedule delivery verification.
Honors the inter-item delay and pause/end signals from the JobRegistry and
never lets one recipient's failure stop the batch.
"""

from collections.abc import Awaitable, Callable

from app.config import settings
from app.infrastructure.observability.logging import get_logger, log_job_event
from app.jobs.background_tasks import BackgroundTaskSet
from app.jobs.job_registry import JobRegistry, interruptible_sleep, wait_while_paused
from app.models.api.ticket_request import BulkCreateRequest
from app.models.domain.job_domain import (
    BULK_COMPLETE,
    BULK_ENDED,
    BULK_ERROR,
    TICKET_RESULT,
    TICKET_UPDATE,
    JobStatus,
    TerminalEvent,
    TicketResult,
)
from app.models.domain.profile_domain import Profile
from app.services.profile_store import ProfileStore
from app.services.ticket_service import TicketService
from app.services.verification_service import VerificationService
from app.services.zoho_errors import ProfileNotFoundError, parse_error

logger = get_logger(__name__)

EventEmitter = Callable[[str, dict], Awaitable[None]]


class BulkJobSetupError(Exception):
    """Batch-level failure before any recipient is processed."""


class BulkTicketJob:
    def __init__(
        self,
        *,
        job_id: str,
        request: BulkCreateRequest,
        registry: JobRegistry,
        profiles: ProfileStore,
        tickets: TicketService,
        verifier: VerificationService,
        background: BackgroundTaskSet,
        emit: EventEmitter,
        sleep_tick: float | None = None,
        pause_poll: float | None = None,
    ):
        self.job_id = job_id
        self.request = request
        self.registry = registry
        self.profiles = profiles
        self.tickets = tickets
        self.verifier = verifier
        self.background = background
        self.emit = emit
        self.sleep_tick = settings.SLEEP_TICK_SECONDS if sleep_tick is None else sleep_tick
        self.pause_poll = settings.PAUSE_POLL_SECONDS if pause_poll is None else pause_poll

    @property
    def profile_name(self) -> str:
        return self.request.selected_profile_name

    async def run(self) -> None:
        if not self.registry.start(self.job_id):
            logger.warning(
                "Rejected duplicate bulk job start",
                job_id=self.job_id,
                existing_status=self.registry.status(self.job_id),
            )
            await self._emit_terminal(
                BULK_ERROR,
                f'A bulk job is already running for profile "{self.profile_name}".',
            )
            return

        try:
            profile = await self._load_profile()
            await self._process_all(profile)
        except Exception as e:
            message = str(e) or "A critical server error occurred."
            logger.error(
                "Bulk job aborted",
                job_id=self.job_id,
                profile=self.profile_name,
                error=message,
                error_type=type(e).__name__,
            )
            # Only report if the connection still owns the job
            if self.job_id in self.registry:
                self.registry.remove(self.job_id)
                await self._emit_terminal(BULK_ERROR, message)
            return

        final_status = self.registry.status(self.job_id)
        if final_status is None:
            log_job_event(self.job_id, "abandoned", profile=self.profile_name)
            return

        self.registry.remove(self.job_id)
        if final_status == JobStatus.ENDED:
            await self._emit_terminal(BULK_ENDED)
        else:
            await self._emit_terminal(BULK_COMPLETE)
        log_job_event(self.job_id, "finished", final_status=final_status.value)

    async def _load_profile(self) -> Profile:
        profile = await self.profiles.get(self.profile_name)
        if profile is None:
            raise ProfileNotFoundError(self.profile_name)
        if self.request.send_direct_reply and not profile.from_email_address:
            raise BulkJobSetupError(
                f'Profile "{self.profile_name}" is missing "fromEmailAddress".'
            )
        return profile

    async def _process_all(self, profile: Profile) -> None:
        delay = self.request.delay
        processed = 0

        for index, raw_email in enumerate(self.request.emails):
            if not self.registry.is_active(self.job_id):
                break

            await wait_while_paused(self.registry, self.job_id, self.pause_poll)

            email = raw_email.strip()
            if not email:
                continue

            if processed > 0 and delay > 0:
                await interruptible_sleep(self.registry, self.job_id, delay, self.sleep_tick)
                await wait_while_paused(self.registry, self.job_id, self.pause_poll)
            if not self.registry.is_active(self.job_id):
                break

            logger.debug("Processing recipient", job_id=self.job_id, index=index)
            await self._process_recipient(profile, email)
            processed += 1

    async def _process_recipient(self, profile: Profile, email: str) -> None:
        try:
            outcome = await self.tickets.create(
                profile,
                email,
                self.request.subject,
                self.request.description,
                send_direct_reply=self.request.send_direct_reply,
            )
        except Exception as e:
            summary = parse_error(e)
            logger.warning(
                "Ticket creation failed",
                job_id=self.job_id,
                profile=self.profile_name,
                error=summary.message,
            )
            result = TicketResult(
                email=email,
                success=False,
                error=summary.message,
                full_response=summary.full_response,
                profile_name=self.profile_name,
            )
            await self.emit(TICKET_RESULT, result.payload())
            return

        result = TicketResult(
            email=email,
            success=outcome.success,
            ticket_number=outcome.ticket_number,
            details=outcome.details,
            full_response=outcome.full_response,
            profile_name=self.profile_name,
        )
        await self.emit(TICKET_RESULT, result.payload())

        if self.request.verify_email:
            self.background.spawn(
                verify_and_emit(self.verifier, outcome.ticket, profile, self.emit),
                name=f"verify-{outcome.ticket_number}",
            )

    async def _emit_terminal(self, event: str, message: str | None = None) -> None:
        terminal = TerminalEvent(profile_name=self.profile_name, message=message)
        await self.emit(event, terminal.payload())


async def verify_and_emit(
    verifier: VerificationService,
    ticket: dict,
    profile: Profile,
    emit: EventEmitter,
    event: str = TICKET_UPDATE,
) -> None:
    update = await verifier.verify_after_delay(ticket, profile)
    await emit(event, update.payload())
