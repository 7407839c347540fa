"""
Append-only ticket-number to email log (ticket-log.json).
Used to resolve the recipient of an email failure alert, which Zoho reports by ticket number only.
"""

import asyncio
import json
from pathlib import Path

from app.infrastructure.observability.logging import get_logger

logger = get_logger(__name__)

UNKNOWN_EMAIL = "Unknown"


class TicketLog:
    def __init__(self, path: Path):
        self.path = Path(path)
        self._lock = asyncio.Lock()

    def _read(self) -> list[dict]:
        try:
            if self.path.exists():
                data = json.loads(self.path.read_text(encoding="utf-8"))
                return data if isinstance(data, list) else []
        except (OSError, ValueError) as e:
            logger.error("Could not read ticket log", path=str(self.path), error=str(e))
        return []

    def _write(self, entries: list[dict]) -> None:
        self.path.write_text(json.dumps(entries, indent=2), encoding="utf-8")

    def _append(self, entry: dict) -> None:
        entries = self._read()
        entries.append(entry)
        self._write(entries)

    async def append(self, ticket_number, email: str) -> None:
        """Record one created ticket. Failures are logged, never raised."""
        async with self._lock:
            try:
                await asyncio.to_thread(
                    self._append, {"ticketNumber": ticket_number, "email": email}
                )
            except OSError as e:
                logger.error(
                    "Could not write ticket log",
                    ticket_number=ticket_number,
                    error=str(e),
                )

    async def entries(self) -> list[dict]:
        return await asyncio.to_thread(self._read)

    async def clear(self) -> None:
        async with self._lock:
            await asyncio.to_thread(self._write, [])
        logger.info("Ticket log cleared", path=str(self.path))

    async def attach_emails(self, failures: list[dict]) -> list[dict]:
        """Copy each failure alert with the logged recipient email added."""
        by_number: dict[str, str] = {}
        for entry in await self.entries():
            by_number.setdefault(str(entry.get("ticketNumber")), entry.get("email"))
        return [
            {**failure, "email": by_number.get(str(failure.get("ticketNumber")), UNKNOWN_EMAIL)}
            for failure in failures
        ]
