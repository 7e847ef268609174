from __future__ import annotations

import uuid
from datetime import datetime, timezone
from enum import StrEnum

from pydantic import BaseModel, Field


class EventSource(StrEnum):
    SNAPSHOT_POLLER = "snapshot_poller"
    UPDATE_MANAGER = "update_manager"
    TICKET_SERVICE = "ticket_service"


class EventType(StrEnum):
    SNAPSHOT_READY = "snapshot_ready"
    SNAPSHOT_FAILED = "snapshot_failed"
    UPDATE_STATUS = "update_status"
    TICKET_SENT = "ticket_sent"


class Event(BaseModel):
    """Message passed from producers to UI subscribers over the event bus."""

    id: str = Field(default_factory=lambda: uuid.uuid4().hex[:12])
    source: EventSource
    event_type: EventType
    payload: dict = Field(default_factory=dict)
    timestamp: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc)
    )
