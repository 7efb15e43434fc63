"""Transactional mail: normalization, attachments, templates, dispatch, orchestration."""

from site_api.services.mail.attachments import (
    ResolvedAttachment,
    load_attachment_content,
    resolve_attachments,
)
from site_api.services.mail.dispatcher import (
    DeliveryAck,
    MailDispatcher,
    MailMessage,
    SendGridDispatcher,
    SmtpDispatcher,
)
from site_api.services.mail.normalize import ensure_list, first_name
from site_api.services.mail.templates import (
    RenderedEmail,
    render_internal_notification,
    render_proposal_email,
    render_quote_reply_email,
)

__all__ = [
    "DeliveryAck",
    "MailDispatcher",
    "MailMessage",
    "RenderedEmail",
    "ResolvedAttachment",
    "SendGridDispatcher",
    "SmtpDispatcher",
    "ensure_list",
    "first_name",
    "load_attachment_content",
    "render_internal_notification",
    "render_proposal_email",
    "render_quote_reply_email",
    "resolve_attachments",
]
