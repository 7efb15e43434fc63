"""Inquiry orchestrator: validate, render, resolve, then send the email pair.

The user-facing email is the primary obligation: if it fails the request
fails and no internal copy is attempted.  The internal notification is
sent afterwards, reusing the resolved attachments; its failure is logged
and reported in the outcome but never turns the request into an error.

    RECEIVED -> VALIDATED -> USER_MAIL_SENT -> COMPLETE
         \\          \\
          +-> FAILED  +-> FAILED
"""

import logging
from dataclasses import dataclass, field
from enum import Enum

from pydantic import EmailStr, TypeAdapter
from pydantic import ValidationError as PydanticValidationError

from site_api.config import Settings
from site_api.errors import DeliveryError, Misconfiguration, ValidationError
from site_api.models.inquiry import InquiryRequest
from site_api.services.mail.attachments import ResolvedAttachment, resolve_attachments
from site_api.services.mail.dispatcher import DeliveryAck, MailDispatcher, MailMessage
from site_api.services.mail.normalize import ensure_list, first_name
from site_api.services.mail.templates import (
    RenderedEmail,
    render_internal_notification,
    render_proposal_email,
    render_quote_reply_email,
)

logger = logging.getLogger(__name__)

_email_adapter = TypeAdapter(EmailStr)

INTERNAL_SENDER_NAME = "Website Inquiry"


class InquiryState(str, Enum):
    RECEIVED = "received"
    VALIDATED = "validated"
    USER_MAIL_SENT = "user_mail_sent"
    COMPLETE = "complete"
    FAILED = "failed"


class TemplateVariant(str, Enum):
    PROPOSAL = "proposal"  # team member -> prospect, addressed to `to`
    QUOTE_REPLY = "quote_reply"  # auto-reply to whoever filled in the form


@dataclass
class InquiryOutcome:
    state: InquiryState = InquiryState.RECEIVED
    user_ack: DeliveryAck | None = None
    internal_ack: DeliveryAck | None = None
    internal_error: str | None = None
    attachments: list[ResolvedAttachment] = field(default_factory=list)

    @property
    def internal_notified(self) -> bool:
        return self.internal_ack is not None


def internal_recipients(settings: Settings, request_to: list[str]) -> list[str]:
    """Configured list first, then the request's own `to`, then the default address."""
    configured = ensure_list(settings.internal_notify_email)
    if configured:
        return configured
    if request_to:
        return list(request_to)
    return [settings.default_internal_email]


class InquiryOrchestrator:
    """Turns one ``InquiryRequest`` into a user email plus an internal copy."""

    def __init__(
        self,
        dispatcher: MailDispatcher,
        settings: Settings,
        variant: TemplateVariant = TemplateVariant.PROPOSAL,
    ) -> None:
        self.dispatcher = dispatcher
        self.settings = settings
        self.variant = variant

    def _transition(self, outcome: InquiryOutcome, state: InquiryState) -> None:
        logger.debug("Inquiry %s -> %s", outcome.state.value, state.value)
        outcome.state = state

    def _validate(self, inquiry: InquiryRequest) -> tuple[str, list[str]]:
        """Return the sender address and the user-mail recipients, or raise."""
        raw_email = (inquiry.from_email or "").strip()
        if not raw_email or "@" not in raw_email:
            raise ValidationError("User email (fromEmail) is required and must be valid.")
        try:
            sender = str(_email_adapter.validate_python(raw_email))
        except PydanticValidationError:
            raise ValidationError("fromEmail must be a valid email") from None

        if self.variant is TemplateVariant.QUOTE_REPLY:
            recipients = [sender]
        else:
            recipients = list(inquiry.to)
        if not recipients:
            raise ValidationError("At least one recipient in `to` is required")
        if any("\r" in addr or "\n" in addr for addr in [*recipients, *inquiry.cc]):
            raise ValidationError("Recipient addresses must not contain line breaks")
        return sender, recipients

    def _render_user_email(self, inquiry: InquiryRequest, sender: str) -> RenderedEmail:
        if self.variant is TemplateVariant.QUOTE_REPLY:
            return render_quote_reply_email(
                self.settings,
                first_name=first_name(inquiry.from_name),
                subject=inquiry.subject,
            )
        return render_proposal_email(
            self.settings,
            sender_display=(inquiry.from_name or "").strip() or sender,
            recipient_name=inquiry.recipient_name,
            subject=inquiry.subject,
            intro=inquiry.intro,
            quick_intro=inquiry.quick_intro,
            highlights=inquiry.highlights,
            scope=inquiry.scope,
            message=inquiry.message,
        )

    def _user_from_name(self, inquiry: InquiryRequest) -> str:
        if self.variant is TemplateVariant.QUOTE_REPLY:
            return self.settings.company_name
        return (inquiry.from_name or "").strip()

    async def handle(self, inquiry: InquiryRequest) -> InquiryOutcome:
        """Run the inquiry through every state.

        Raises:
            ValidationError: bad sender address or no recipients (nothing sent).
            Misconfiguration: no verified sender address configured.
            DeliveryError: the user-facing email was rejected.
        """
        outcome = InquiryOutcome()
        try:
            sender, recipients = self._validate(inquiry)
            verified_from = self.settings.from_email.strip()
            if not verified_from:
                raise Misconfiguration("FROM_EMAIL not set")
        except (ValidationError, Misconfiguration):
            self._transition(outcome, InquiryState.FAILED)
            raise
        self._transition(outcome, InquiryState.VALIDATED)

        user_email = self._render_user_email(inquiry, sender)
        outcome.attachments = await resolve_attachments(
            inquiry.attachments, self.settings.attachment_dir
        )

        user_message = MailMessage(
            from_email=verified_from,
            from_name=self._user_from_name(inquiry),
            to=recipients,
            cc=list(inquiry.cc) if self.variant is TemplateVariant.PROPOSAL else [],
            reply_to=sender if self.variant is TemplateVariant.PROPOSAL else None,
            subject=user_email.subject,
            text=user_email.text,
            html=user_email.html,
            attachments=outcome.attachments,
        )
        try:
            outcome.user_ack = await self.dispatcher.send(user_message)
        except (DeliveryError, Misconfiguration):
            self._transition(outcome, InquiryState.FAILED)
            logger.error("User email to %s failed", ", ".join(recipients))
            raise
        self._transition(outcome, InquiryState.USER_MAIL_SENT)
        logger.info(
            "Sent %s email to %s (%s)",
            self.variant.value,
            ", ".join(recipients),
            outcome.user_ack.message_id,
        )

        internal = render_internal_notification(
            from_name=inquiry.from_name,
            from_email=sender,
            company=inquiry.company,
            subject=user_email.subject if self.variant is TemplateVariant.PROPOSAL else None,
            recipients=recipients if self.variant is TemplateVariant.PROPOSAL else None,
            message=inquiry.message,
        )
        internal_to = internal_recipients(self.settings, list(inquiry.to))
        try:
            outcome.internal_ack = await self.dispatcher.send(
                MailMessage(
                    from_email=verified_from,
                    from_name=INTERNAL_SENDER_NAME,
                    to=internal_to,
                    reply_to=sender,
                    subject=internal.subject,
                    text=internal.text,
                    html=internal.html,
                    attachments=outcome.attachments,
                )
            )
            logger.info("Internal notification sent to %s", ", ".join(internal_to))
        except Exception as e:
            outcome.internal_error = str(e)
            logger.warning("Failed to send internal notification: %s", e)

        self._transition(outcome, InquiryState.COMPLETE)
        return outcome
