from __future__ import annotations

import pytest

from simulator.simulate import SAMPLE_TICKET, build_collector
from supportdesk.engine.event_bus import EventBus
from supportdesk.engine.mail_transport import MailTransport
from supportdesk.engine.report_renderer import NO_SYSTEM_INFO
from supportdesk.engine.ticket_service import TicketService
from supportdesk.errors import CollectionError, DeliveryError
from supportdesk.models.event import EventType
from supportdesk.models.ticket import MailMessage


class RecordingTransport(MailTransport):
    def __init__(self, fail: bool = False) -> None:
        self.fail = fail
        self.sent: list[MailMessage] = []

    async def send(self, message: MailMessage) -> str:
        if self.fail:
            raise DeliveryError("Unable to send ticket email: connection refused")
        self.sent.append(message)
        return "<ticket-1@example.com>"


class BrokenCollector:
    async def collect(self):
        raise CollectionError("could not build system snapshot")


def _service(collector=None, transport=None, event_bus=None) -> TicketService:
    return TicketService(
        collector or build_collector("laptop"),
        transport or RecordingTransport(),
        mail_from="desk@example.com",
        mail_to="support@example.com",
        event_bus=event_bus,
    )


@pytest.mark.asyncio
async def test_submit_sends_ticket_with_snapshot():
    transport = RecordingTransport()
    result = await _service(transport=transport).submit(SAMPLE_TICKET)

    assert result.success is True
    assert result.message_id == "<ticket-1@example.com>"
    message = transport.sent[0]
    assert message.subject == "Support Ticket from Jane Example"
    assert message.sender == "desk@example.com"
    assert message.to == "support@example.com"
    assert message.cc == "jane@example.com"
    assert message.reply_to == "jane@example.com"
    assert "Hostname: FRONTDESK-07" in message.text
    assert "Phone: (082) 564-0943" in message.text
    assert "FRONTDESK-07" in message.html


@pytest.mark.asyncio
async def test_ticket_sent_without_system_info():
    transport = RecordingTransport()
    result = await _service(collector=BrokenCollector(), transport=transport).submit(SAMPLE_TICKET)

    assert result.success is True
    assert NO_SYSTEM_INFO in transport.sent[0].text
    assert NO_SYSTEM_INFO in transport.sent[0].html


@pytest.mark.asyncio
async def test_delivery_failure_reported():
    result = await _service(transport=RecordingTransport(fail=True)).submit(SAMPLE_TICKET)
    assert result.success is False
    assert "connection refused" in result.error
    assert result.message_id is None


@pytest.mark.asyncio
async def test_each_submission_collects_fresh_snapshot():
    collector = build_collector("laptop")
    service = _service(collector=collector)
    await service.submit(SAMPLE_TICKET)
    await service.submit(SAMPLE_TICKET)
    assert collector._provider.calls.count("hostname") == 2


@pytest.mark.asyncio
async def test_sent_ticket_published():
    bus = EventBus()
    await _service(event_bus=bus).submit(SAMPLE_TICKET)
    event = bus._queue.get_nowait()
    assert event.event_type == EventType.TICKET_SENT
    assert event.payload["message_id"] == "<ticket-1@example.com>"


@pytest.mark.asyncio
async def test_failed_ticket_not_published():
    bus = EventBus()
    await _service(transport=RecordingTransport(fail=True), event_bus=bus).submit(SAMPLE_TICKET)
    assert bus.pending == 0
