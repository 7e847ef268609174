from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path

from supportdesk.collectors import (
    CommandRunner,
    PlatformQueries,
    PsutilProvider,
    SnapshotCollector,
    SnapshotPoller,
)
from supportdesk.config import Settings
from supportdesk.engine import (
    EventBus,
    ReleaseFeedClient,
    SmtpMailTransport,
    TicketService,
    UpdateManager,
)

logger = logging.getLogger(__name__)


@dataclass
class AppContext:
    """Everything the API needs, wired once by the composition root."""

    settings: Settings
    event_bus: EventBus
    queries: PlatformQueries
    collector: SnapshotCollector
    poller: SnapshotPoller
    tickets: TicketService
    updates: UpdateManager

    @classmethod
    def create(cls, settings: Settings) -> AppContext:
        event_bus = EventBus()
        queries = PlatformQueries(CommandRunner(timeout=settings.command_timeout))
        collector = SnapshotCollector(
            PsutilProvider(queries),
            queries,
            probe_timeout=settings.probe_timeout,
        )
        transport = SmtpMailTransport(
            host=settings.smtp_host,
            port=settings.smtp_port,
            username=settings.smtp_username,
            password=settings.smtp_password,
            use_ssl=settings.smtp_use_ssl,
            starttls=settings.smtp_starttls,
            timeout=settings.smtp_timeout,
        )
        return cls(
            settings=settings,
            event_bus=event_bus,
            queries=queries,
            collector=collector,
            poller=SnapshotPoller(event_bus, collector, interval=settings.poll_interval),
            tickets=TicketService(
                collector,
                transport,
                mail_from=settings.mail_from,
                mail_to=settings.mail_to,
                event_bus=event_bus,
            ),
            updates=UpdateManager(
                ReleaseFeedClient(settings.update_feed_url),
                event_bus,
                current_version=settings.app_version,
                download_dir=Path(settings.download_dir),
                install_delay=settings.install_delay,
                check_interval=settings.update_check_interval,
                initial_delay=settings.update_initial_delay,
                enabled=bool(settings.update_feed_url) and settings.environment != "development",
            ),
        )

    async def init(self) -> None:
        await self.event_bus.start()
        await self.poller.start()
        await self.updates.start()
        logger.info("%s started", self.settings.app_name)

    async def shutdown(self) -> None:
        await self.updates.stop()
        await self.poller.stop()
        await self.event_bus.stop()
        logger.info("%s shut down", self.settings.app_name)
