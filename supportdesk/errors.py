from __future__ import annotations


class SupportDeskError(Exception):
    """Base class for all errors raised by the support desk service."""


class ProbeFailure(SupportDeskError):
    """A single telemetry probe failed or timed out.

    Never escapes the collector: it is logged and replaced by the probe's
    fallback slot.
    """

    def __init__(self, probe: str, cause: BaseException | None = None) -> None:
        self.probe = probe
        self.cause = cause
        super().__init__(f"probe {probe!r} failed: {cause!r}")


class CollectionError(SupportDeskError):
    """Building the aggregate snapshot failed."""


class RenderError(SupportDeskError):
    """Reserved. Renderers are total and fall back to placeholder tokens."""


class DeliveryError(SupportDeskError):
    """The outbound mail transport could not deliver a ticket."""


class UpdateError(SupportDeskError):
    """Checking, downloading or installing an update failed."""


class InvalidTransition(SupportDeskError):
    """The update state machine was asked for a transition it does not allow."""

    def __init__(self, current: str, target: str) -> None:
        self.current = current
        self.target = target
        super().__init__(f"cannot move from {current} to {target}")
