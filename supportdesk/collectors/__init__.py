from .base import PeriodicPublisher
from .platform_queries import CommandRunner, PlatformQueries
from .provider import HardwareInfoProvider, PsutilProvider
from .snapshot_collector import SnapshotCollector
from .snapshot_poller import SnapshotPoller

__all__ = [
    "PeriodicPublisher",
    "CommandRunner",
    "PlatformQueries",
    "HardwareInfoProvider",
    "PsutilProvider",
    "SnapshotCollector",
    "SnapshotPoller",
]
