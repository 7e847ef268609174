from __future__ import annotations

import asyncio
import logging
import os
import re
import sys
from enum import StrEnum
from pathlib import Path
from typing import Awaitable, Callable
from urllib.parse import urlparse

import httpx
from pydantic import BaseModel

from supportdesk.engine.event_bus import EventBus
from supportdesk.errors import InvalidTransition, UpdateError
from supportdesk.models.event import Event, EventSource, EventType

logger = logging.getLogger(__name__)

Installer = Callable[[Path], Awaitable[None]]
ProgressCallback = Callable[[float], Awaitable[None]]

_VERSION = re.compile(r"^v?(\d+(?:\.\d+)*)$")


class UpdateState(StrEnum):
    IDLE = "idle"
    CHECKING = "checking"
    AVAILABLE = "available"
    DOWNLOADING = "downloading"
    DOWNLOADED = "downloaded"
    INSTALLING = "installing"
    ERROR = "error"


TRANSITIONS: dict[UpdateState, frozenset[UpdateState]] = {
    UpdateState.IDLE: frozenset({UpdateState.CHECKING}),
    UpdateState.CHECKING: frozenset(
        {UpdateState.AVAILABLE, UpdateState.IDLE, UpdateState.ERROR}
    ),
    UpdateState.AVAILABLE: frozenset({UpdateState.CHECKING, UpdateState.DOWNLOADING}),
    UpdateState.DOWNLOADING: frozenset({UpdateState.DOWNLOADED, UpdateState.ERROR}),
    UpdateState.DOWNLOADED: frozenset({UpdateState.INSTALLING}),
    UpdateState.INSTALLING: frozenset({UpdateState.IDLE, UpdateState.ERROR}),
    UpdateState.ERROR: frozenset({UpdateState.CHECKING, UpdateState.IDLE}),
}


def parse_version(value: str) -> tuple[int, ...] | None:
    """Dotted numeric version, or ``None`` for prereleases and junk."""
    match = _VERSION.match(value.strip())
    if not match:
        return None
    return tuple(int(part) for part in match.group(1).split("."))


def is_newer(candidate: str, current: str) -> bool:
    new, old = parse_version(candidate), parse_version(current)
    if new is None or old is None:
        return False
    width = max(len(new), len(old))
    return new + (0,) * (width - len(new)) > old + (0,) * (width - len(old))


class Release(BaseModel):
    version: str
    url: str
    notes: str = ""


class ReleaseFeedClient:
    """Reads the release feed: a JSON document ``{"version", "url", "notes"}``."""

    def __init__(self, feed_url: str, client: httpx.AsyncClient | None = None) -> None:
        self.feed_url = feed_url
        self._client = client or httpx.AsyncClient(timeout=30.0, follow_redirects=True)

    async def latest(self) -> Release:
        response = await self._client.get(self.feed_url)
        response.raise_for_status()
        return Release.model_validate(response.json())

    async def download(
        self,
        release: Release,
        directory: Path,
        on_progress: ProgressCallback | None = None,
    ) -> Path:
        directory.mkdir(parents=True, exist_ok=True)
        filename = Path(urlparse(release.url).path).name or f"update-{release.version}"
        target = directory / filename
        async with self._client.stream("GET", release.url) as response:
            response.raise_for_status()
            total = int(response.headers.get("content-length") or 0)
            received = 0
            with open(target, "wb") as fh:
                async for chunk in response.aiter_bytes():
                    fh.write(chunk)
                    received += len(chunk)
                    if on_progress and total:
                        await on_progress(min(received / total * 100, 100.0))
        return target

    async def aclose(self) -> None:
        await self._client.aclose()


async def launch_installer(path: Path) -> None:
    """Hand the downloaded artifact to the platform's default opener."""
    if sys.platform == "win32":
        os.startfile(path)  # type: ignore[attr-defined]
        return
    opener = "open" if sys.platform == "darwin" else "xdg-open"
    proc = await asyncio.create_subprocess_exec(opener, str(path))
    await proc.wait()
    if proc.returncode != 0:
        raise UpdateError(f"{opener} exited with {proc.returncode}")


class UpdateManager:
    """Explicit state machine for the self-update lifecycle.

    Every transition is validated against ``TRANSITIONS`` and published on the
    event bus as an ``update_status`` event.
    """

    def __init__(
        self,
        feed: ReleaseFeedClient,
        event_bus: EventBus,
        current_version: str,
        download_dir: Path,
        installer: Installer = launch_installer,
        install_delay: float = 5.0,
        check_interval: float = 4 * 60 * 60.0,
        initial_delay: float = 10.0,
        enabled: bool = True,
    ) -> None:
        self._feed = feed
        self._event_bus = event_bus
        self.current_version = current_version
        self.download_dir = download_dir
        self._installer = installer
        self.install_delay = install_delay
        self.check_interval = check_interval
        self.initial_delay = initial_delay
        self.enabled = enabled

        self.state = UpdateState.IDLE
        self.release: Release | None = None
        self.artifact: Path | None = None
        self.progress: float = 0.0
        self.error: str | None = None
        self._lock = asyncio.Lock()
        self._task: asyncio.Task | None = None

    # ── lifecycle ────────────────────────────────────────

    async def start(self) -> None:
        if self._task is not None:
            return
        if not self.enabled:
            logger.info("Skipping update checks (disabled for this environment)")
            return
        self._task = asyncio.create_task(self._loop())
        logger.info("Update checks scheduled every %.0fs", self.check_interval)

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None

    async def _loop(self) -> None:
        await asyncio.sleep(self.initial_delay)
        while True:
            if self.state in (UpdateState.IDLE, UpdateState.ERROR, UpdateState.AVAILABLE):
                try:
                    await self.check()
                except InvalidTransition:
                    logger.debug("Update check skipped in state %s", self.state)
                except Exception:
                    logger.exception("Scheduled update check failed")
            await asyncio.sleep(self.check_interval)

    # ── operations ──────────────────────────────────────

    async def check(self) -> UpdateState:
        async with self._lock:
            await self._transition(UpdateState.CHECKING)
            try:
                release = await self._feed.latest()
            except Exception as exc:
                await self._fail(f"Error checking for updates: {exc}")
                return self.state

            if is_newer(release.version, self.current_version):
                self.release = release
                logger.info("Update available: %s", release.version)
                await self._transition(UpdateState.AVAILABLE)
            else:
                logger.info("No updates available (latest %s)", release.version)
                await self._transition(UpdateState.IDLE)
            return self.state

    async def download(self) -> UpdateState:
        async with self._lock:
            self._require(UpdateState.DOWNLOADING)
            if self.release is None:
                raise UpdateError("No release to download")
            await self._transition(UpdateState.DOWNLOADING)
            self.progress = 0.0
            try:
                self.artifact = await self._feed.download(
                    self.release, self.download_dir, on_progress=self._report_progress
                )
            except Exception as exc:
                await self._fail(f"Error downloading update: {exc}")
                return self.state
            self.progress = 100.0
            await self._transition(UpdateState.DOWNLOADED)
            return self.state

    async def install(self) -> UpdateState:
        async with self._lock:
            self._require(UpdateState.INSTALLING)
            if self.artifact is None:
                raise UpdateError("No downloaded update to install")
            await self._transition(UpdateState.INSTALLING)
            # give the user a moment to save their work
            await asyncio.sleep(self.install_delay)
            try:
                await self._installer(self.artifact)
            except Exception as exc:
                await self._fail(f"Error installing update: {exc}")
                return self.state
            logger.info("Installer for %s launched", self.release.version if self.release else "?")
            await self._transition(UpdateState.IDLE)
            return self.state

    # ── internals ───────────────────────────────────────

    def can_transition(self, target: UpdateState) -> bool:
        return target in TRANSITIONS[self.state]

    def _require(self, target: UpdateState) -> None:
        if not self.can_transition(target):
            raise InvalidTransition(self.state, target)

    async def _transition(self, target: UpdateState) -> None:
        self._require(target)
        previous, self.state = self.state, target
        if target is not UpdateState.ERROR:
            self.error = None
        logger.debug("Update state %s -> %s", previous, target)
        await self._publish(previous)

    async def _fail(self, message: str) -> None:
        logger.error(message)
        self.error = message
        await self._transition(UpdateState.ERROR)

    async def _report_progress(self, percent: float) -> None:
        self.progress = round(percent, 1)
        await self._publish(self.state)

    async def _publish(self, previous: UpdateState) -> None:
        await self._event_bus.publish(
            Event(
                source=EventSource.UPDATE_MANAGER,
                event_type=EventType.UPDATE_STATUS,
                payload={"previous": previous.value, **self.status()},
            )
        )

    def status(self) -> dict:
        return {
            "state": self.state.value,
            "current_version": self.current_version,
            "available_version": self.release.version if self.release else None,
            "progress": self.progress,
            "error": self.error,
        }
