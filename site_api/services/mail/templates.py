"""Email templates: HTML body plus an equivalent plain-text fallback.

Every value that comes from a request payload is passed through
``html.escape`` before it lands in markup.  Configuration values are
escaped as well.  The plain-text variant carries the same sections in the
same order, without markup.
"""

import html
from dataclasses import dataclass

from site_api.config import Settings

DEFAULT_DISPLAY_NAME = "there"
QUOTE_REPLY_SUBJECT = "Thanks for reaching out! Let's bring your vision to life"


@dataclass(frozen=True)
class RenderedEmail:
    subject: str
    html: str
    text: str


def _esc(value: object) -> str:
    if value is None:
        return ""
    return html.escape(str(value), quote=True)


def _clean(value: str | None) -> str:
    return (value or "").strip()


def _signature_lines(settings: Settings, sender_display: str) -> tuple[str, str]:
    """Regards block shared by the proposal email (HTML, text)."""
    html_lines = [f"<strong>{_esc(sender_display)}</strong><br/>"]
    text_lines = [sender_display]
    if settings.company_name:
        html_lines.append(f"{_esc(settings.company_name)}<br/>")
        text_lines.append(settings.company_name)
    if settings.company_website:
        site = _esc(settings.company_website)
        html_lines.append(f'<a href="{site}">{site}</a><br/>')
        text_lines.append(settings.company_website)
    if settings.company_phone:
        html_lines.append(f"{_esc(settings.company_phone)}<br/>")
        text_lines.append(settings.company_phone)
    return "\n".join(html_lines), "\n".join(text_lines)


def render_proposal_email(
    settings: Settings,
    *,
    sender_display: str,
    recipient_name: str | None = None,
    subject: str | None = None,
    intro: str | None = None,
    quick_intro: str | None = None,
    highlights: list[str] | None = None,
    scope: str | None = None,
    message: str | None = None,
) -> RenderedEmail:
    """Build the proposal email a team member sends to a prospect."""
    display_name = _clean(recipient_name) or DEFAULT_DISPLAY_NAME
    intro, quick_intro, scope = _clean(intro), _clean(quick_intro), _clean(scope)
    message = _clean(message)
    highlights = highlights or []

    html_parts = [f"<p>Hi {_esc(display_name)},</p>"]
    text_parts = [f"Hi {display_name},"]

    if intro:
        html_parts.append(f"<p>{_esc(intro)}</p>")
        text_parts.append(intro)
    if quick_intro:
        html_parts.append(f"<h3>Quick Intro:</h3><p>{_esc(quick_intro)}</p>")
        text_parts.append(f"Quick Intro:\n{quick_intro}")
    if highlights:
        items = "".join(f"<li>{_esc(h)}</li>" for h in highlights)
        html_parts.append(f"<h4>Highlights</h4><ul>{items}</ul>")
        text_parts.append("Highlights:\n" + "\n".join(highlights))
    if scope:
        html_parts.append(f"<h4>Scope of work</h4><p>{_esc(scope)}</p>")
        text_parts.append(f"Scope of work:\n{scope}")
    if message:
        message_html = _esc(message).replace("\n", "<br/>")
        html_parts.append(f"<p>{message_html}</p>")
        text_parts.append(message)

    html_parts.append("<p>Please find the attached document(s) for commercials / portfolio.</p>")
    text_parts.append("Please find the attached document(s).")

    sig_html, sig_text = _signature_lines(settings, sender_display)
    html_parts.append(f"<p>Regards,<br/>\n{sig_html}</p>")
    text_parts.append(f"Regards,\n{sig_text}")

    return RenderedEmail(
        subject=_clean(subject) or f"{settings.company_name} <> Proposal",
        html="\n".join(html_parts),
        text="\n\n".join(text_parts),
    )


def render_quote_reply_email(
    settings: Settings,
    *,
    first_name: str | None = None,
    subject: str | None = None,
) -> RenderedEmail:
    """Build the acknowledgement sent to someone who filled in the quote form."""
    display_name = _clean(first_name) or DEFAULT_DISPLAY_NAME
    subject = _clean(subject) or QUOTE_REPLY_SUBJECT
    company = settings.company_name or "our studio"
    contact = settings.biz_contact_name or settings.company_name or "Business Development"
    phone = settings.biz_phone
    email = settings.biz_email or settings.from_email
    website = settings.biz_website or settings.company_website

    contact_html = " ".join(
        part
        for part in (
            f"Phone: {_esc(phone)}" if phone else "",
            f"Email: {_esc(email)}" if email else "",
        )
        if part
    )
    website_html = f'<p><a href="{_esc(website)}" target="_blank">{_esc(website)}</a></p>' if website else ""

    html_body = f"""<div style="font-family: Arial, Helvetica, sans-serif; color:#111; line-height:1.45;">
<h2 style="margin:0 0 8px 0">{_esc(subject)}</h2>
<p>Hi {_esc(display_name)},</p>
<p>Thank you for reaching out through our Request a Quote form.</p>
<p>At {_esc(company)}, we're a team of storytellers, designers, strategists, and developers passionate about building experiences that connect and convert.</p>
<p>Our team will review your requirements and get back to you shortly with a customized proposal.</p>
{website_html}
<p>Warm regards,<br/>
<strong>{_esc(contact)}</strong><br/>
Business Development Manager<br/>
{contact_html}</p>
</div>"""

    text_lines = [
        f"Hi {display_name},",
        "Thank you for reaching out through our Request a Quote form.",
        f"At {company}, we're a team of storytellers, designers, strategists, "
        "and developers passionate about building experiences that connect and convert.",
        "Our team will review your requirements and get back to you shortly "
        "with a customized proposal.",
    ]
    if website:
        text_lines.append(website)
    signature = ["Warm regards,", contact, "Business Development Manager"]
    if phone:
        signature.append(f"Phone: {phone}")
    if email:
        signature.append(f"Email: {email}")
    text_lines.append("\n".join(signature))

    return RenderedEmail(subject=subject, html=html_body, text="\n\n".join(text_lines))


def render_internal_notification(
    *,
    from_name: str | None,
    from_email: str,
    company: str | None = None,
    subject: str | None = None,
    recipients: list[str] | None = None,
    message: str | None = None,
) -> RenderedEmail:
    """Build the copy of an inquiry that goes to the internal team."""
    name = _clean(from_name)
    rows = [("Name", name), ("Email", from_email), ("Company", _clean(company))]
    if subject:
        rows.append(("Subject", _clean(subject)))
    if recipients:
        rows.append(("Sent to", ", ".join(recipients)))

    html_parts = [f"<p><strong>{label}:</strong> {_esc(value)}</p>" for label, value in rows]
    text_parts = [f"{label}: {value}" for label, value in rows]

    message = _clean(message)
    if message:
        message_html = _esc(message).replace("\n", "<br/>")
        html_parts.append(f"<p><strong>Message:</strong><br/>{message_html}</p>")
        text_parts.append(f"\nMessage:\n{message}")

    return RenderedEmail(
        subject=f"New inquiry: {name or from_email}",
        html="".join(html_parts),
        text="\n".join(text_parts),
    )
