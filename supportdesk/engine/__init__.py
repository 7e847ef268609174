from .event_bus import EventBus
from .mail_transport import MailTransport, SmtpMailTransport
from .normalizer import FIELD_POLICIES, FieldPolicy, normalize
from .report_renderer import render_html, render_plain_text, render_system_table
from .ticket_service import TicketService
from .update_manager import ReleaseFeedClient, UpdateManager, UpdateState

__all__ = [
    "EventBus",
    "MailTransport",
    "SmtpMailTransport",
    "FIELD_POLICIES",
    "FieldPolicy",
    "normalize",
    "render_html",
    "render_plain_text",
    "render_system_table",
    "TicketService",
    "ReleaseFeedClient",
    "UpdateManager",
    "UpdateState",
]
