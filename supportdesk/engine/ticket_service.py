from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from supportdesk.engine.event_bus import EventBus
from supportdesk.engine.mail_transport import MailTransport
from supportdesk.engine.report_renderer import render_html, render_ticket_text
from supportdesk.errors import CollectionError, DeliveryError
from supportdesk.models.event import Event, EventSource, EventType
from supportdesk.models.snapshot import SystemSnapshot
from supportdesk.models.ticket import MailMessage, TicketRequest, TicketResult

if TYPE_CHECKING:
    from supportdesk.collectors.snapshot_collector import SnapshotCollector

logger = logging.getLogger(__name__)


class TicketService:
    """Builds and sends a support ticket with a freshly collected snapshot."""

    def __init__(
        self,
        collector: SnapshotCollector,
        transport: MailTransport,
        mail_from: str,
        mail_to: str,
        event_bus: EventBus | None = None,
    ) -> None:
        self._collector = collector
        self._transport = transport
        self.mail_from = mail_from
        self.mail_to = mail_to
        self._event_bus = event_bus

    async def submit(self, ticket: TicketRequest) -> TicketResult:
        snapshot = await self._snapshot()
        message = self.build_message(ticket, snapshot)
        try:
            message_id = await self._transport.send(message)
        except DeliveryError as exc:
            logger.error("Ticket from %s not delivered: %s", ticket.email, exc)
            return TicketResult(success=False, error=str(exc))

        logger.info("Ticket from %s sent (%s)", ticket.full_name, message_id)
        if self._event_bus is not None:
            await self._event_bus.publish(
                Event(
                    source=EventSource.TICKET_SERVICE,
                    event_type=EventType.TICKET_SENT,
                    payload={"message_id": message_id, "full_name": ticket.full_name},
                )
            )
        return TicketResult(success=True, message_id=message_id)

    def build_message(self, ticket: TicketRequest, snapshot: SystemSnapshot | None) -> MailMessage:
        return MailMessage(
            sender=self.mail_from,
            to=self.mail_to,
            cc=ticket.email,
            subject=f"Support Ticket from {ticket.full_name}",
            text=render_ticket_text(ticket, snapshot),
            html=render_html(snapshot, ticket),
            reply_to=ticket.email,
        )

    async def _snapshot(self) -> SystemSnapshot | None:
        try:
            return await self._collector.collect()
        except CollectionError as exc:
            # the ticket still goes out, just without system information
            logger.error("Sending ticket without system info: %s", exc)
            return None
