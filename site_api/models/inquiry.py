"""Proposal / quote-request payloads."""

import re
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from site_api.services.mail.normalize import ensure_list

_LINE_BREAK_RE = re.compile(r"[\r\n]+")


class InquiryRequest(BaseModel):
    """One inbound request to send a proposal or quote-reply email pair.

    Every field is optional at the schema level so that malformed input
    reaches the orchestrator, which answers with a 400 instead of a 422.
    List-ish fields accept a list, a comma-separated string, or nothing.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    from_name: str | None = None
    from_email: str | None = None
    company: str | None = None
    to: list[str] = []
    cc: list[str] = []
    subject: str | None = None
    recipient_name: str | None = None
    intro: str | None = None
    quick_intro: str | None = None
    scope: str | None = None
    message: str | None = None
    highlights: list[str] = []
    attachments: list[str] = []

    @field_validator("to", "cc", "highlights", "attachments", mode="before")
    @classmethod
    def _normalize_lists(cls, value: Any) -> list[str]:
        return ensure_list(value)

    @field_validator(
        "from_name",
        "from_email",
        "company",
        "subject",
        "recipient_name",
        "intro",
        "quick_intro",
        "scope",
        "message",
        mode="before",
    )
    @classmethod
    def _coerce_text(cls, value: Any) -> str | None:
        if value is None or isinstance(value, (dict, list)):
            return None
        return str(value)

    @field_validator("from_name", "from_email", "company", "subject", "recipient_name")
    @classmethod
    def _single_line(cls, value: str | None) -> str | None:
        # These end up in mail headers
        if value is None:
            return None
        return _LINE_BREAK_RE.sub(" ", value)


class InquiryResponse(BaseModel):
    success: bool = True
    message: str
    info: dict[str, Any] | None = Field(default=None)
