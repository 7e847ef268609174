from __future__ import annotations

import re

from pydantic import BaseModel, field_validator

PHONE_NOT_PROVIDED = "Not Provided"

_EMAIL = re.compile(r"[^\s@]+@[^\s@]+")


def format_phone_number(phone: str) -> str:
    """Format a 10-digit local number as ``(0XX) XXX-XXXX``.

    Anything else is returned unchanged.
    """
    digits = re.sub(r"\D", "", phone)
    if len(digits) == 10 and digits.startswith("0"):
        return f"({digits[:3]}) {digits[3:6]}-{digits[6:]}"
    return phone


class TicketRequest(BaseModel):
    full_name: str
    email: str
    phone: str = PHONE_NOT_PROVIDED
    description: str = ""

    @field_validator("full_name")
    @classmethod
    def _require_name(cls, value: str) -> str:
        # single line: used in the Subject header
        value = " ".join(value.split())
        if not value:
            raise ValueError("Please enter your full name")
        return value

    @field_validator("email")
    @classmethod
    def _require_email(cls, value: str) -> str:
        value = value.strip()
        if not _EMAIL.fullmatch(value):
            raise ValueError("Please enter a valid email address")
        return value

    @field_validator("phone")
    @classmethod
    def _normalize_phone(cls, value: str) -> str:
        value = value.strip()
        return format_phone_number(value) if value else PHONE_NOT_PROVIDED

    @field_validator("description")
    @classmethod
    def _strip_description(cls, value: str) -> str:
        return value.strip()


class MailMessage(BaseModel):
    sender: str
    to: str
    subject: str
    text: str
    html: str
    reply_to: str | None = None
    cc: str | None = None


class TicketResult(BaseModel):
    success: bool
    message_id: str | None = None
    error: str | None = None
