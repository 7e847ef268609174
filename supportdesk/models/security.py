from __future__ import annotations

from pydantic import BaseModel, Field

from supportdesk.models.snapshot import UNKNOWN


class FirewallStatus(BaseModel):
    enabled: bool = False
    profile: str = UNKNOWN


class AntivirusStatus(BaseModel):
    installed: bool = False
    products: list[str] = Field(default_factory=list)


class SecurityStatus(BaseModel):
    """Best-effort view of the host's firewall and antivirus state."""

    firewall: FirewallStatus | None = None
    antivirus: AntivirusStatus | None = None
