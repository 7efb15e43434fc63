"""Mail dispatch: one ``send`` contract over interchangeable transports.

``SmtpDispatcher`` keeps a single authenticated SMTP session open for the
process lifetime (verified at startup).  ``SendGridDispatcher`` talks to the
SendGrid v3 Web API and authenticates every call with a fixed API key.
Both read attachment bytes at send time and both raise ``DeliveryError``
when the transport refuses the message.
"""

import asyncio
import base64
import logging
from dataclasses import dataclass, field
from email.message import EmailMessage
from email.utils import formataddr, make_msgid, parseaddr
from typing import Any, Protocol

import aiosmtplib
import httpx

from site_api.errors import DeliveryError, Misconfiguration
from site_api.services.http_client import get_shared_client
from site_api.services.mail.attachments import ResolvedAttachment, load_attachment_content

logger = logging.getLogger(__name__)


@dataclass
class MailMessage:
    from_email: str
    to: list[str]
    subject: str
    text: str
    html: str
    from_name: str = ""
    cc: list[str] = field(default_factory=list)
    reply_to: str | None = None
    attachments: list[ResolvedAttachment] = field(default_factory=list)


@dataclass
class DeliveryAck:
    """Transport acknowledgement for an accepted message."""

    message_id: str
    transport: str
    status_code: int | None = None
    rejected: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {"messageId": self.message_id, "statusCode": self.status_code}


class MailDispatcher(Protocol):
    name: str

    async def send(self, message: MailMessage) -> DeliveryAck: ...


async def _load_attachments(
    attachments: list[ResolvedAttachment], transport: str
) -> list[tuple[str, bytes, str]]:
    """Read every attachment; unreachable remote ones are dropped.

    A local file that vanished or became unreadable since resolution fails
    the send with a ``DeliveryError``.
    """
    loaded = []
    for attachment in attachments:
        try:
            result = await load_attachment_content(attachment)
        except OSError as e:
            raise DeliveryError(
                "Failed to read attachment",
                details=f"{attachment.filename}: {e.strerror or e}",
                transport=transport,
            ) from e
        if result is None:
            continue
        content, content_type = result
        loaded.append((attachment.filename, content, content_type))
    return loaded


class SmtpDispatcher:
    """Send over one persistent, authenticated SMTP session."""

    name = "smtp"

    def __init__(
        self,
        host: str,
        port: int = 587,
        username: str = "",
        password: str = "",
        use_tls: bool = False,
        timeout: float = 30.0,
    ) -> None:
        self.host = host
        self.port = port
        self.username = username
        self.password = password
        self.use_tls = use_tls
        self.timeout = timeout
        self._smtp: aiosmtplib.SMTP | None = None
        self._lock = asyncio.Lock()
        self.verified = False

    def _new_client(self) -> aiosmtplib.SMTP:
        return aiosmtplib.SMTP(
            hostname=self.host,
            port=self.port,
            username=self.username or None,
            password=self.password or None,
            use_tls=self.use_tls,
            timeout=self.timeout,
        )

    async def _ensure_connected(self) -> aiosmtplib.SMTP:
        if not self.host:
            raise Misconfiguration("SMTP_HOST not set")
        if self._smtp is None or not self._smtp.is_connected:
            smtp = self._new_client()
            await smtp.connect()  # logs in when credentials are configured
            self._smtp = smtp
        return self._smtp

    async def verify(self) -> bool:
        """Open the session and NOOP it. Returns False (and logs) on failure."""
        async with self._lock:
            try:
                smtp = await self._ensure_connected()
                await smtp.noop()
            except (aiosmtplib.SMTPException, OSError, Misconfiguration) as e:
                logger.warning("Mailer verify warning: %s", e)
                self.verified = False
                return False
        self.verified = True
        logger.info("SMTP mailer ready (%s:%d)", self.host, self.port)
        return True

    async def close(self) -> None:
        async with self._lock:
            if self._smtp is not None and self._smtp.is_connected:
                try:
                    await self._smtp.quit()
                except aiosmtplib.SMTPException:
                    self._smtp.close()
            self._smtp = None

    async def _build(self, message: MailMessage) -> EmailMessage:
        msg = EmailMessage()
        msg["From"] = formataddr((message.from_name, message.from_email))
        msg["To"] = ", ".join(message.to)
        if message.cc:
            msg["Cc"] = ", ".join(message.cc)
        if message.reply_to:
            msg["Reply-To"] = message.reply_to
        msg["Subject"] = message.subject
        domain = parseaddr(message.from_email)[1].rpartition("@")[2] or None
        msg["Message-ID"] = make_msgid(domain=domain)
        msg.set_content(message.text)
        msg.add_alternative(message.html, subtype="html")
        loaded = await _load_attachments(message.attachments, self.name)
        for filename, content, content_type in loaded:
            maintype, _, subtype = content_type.partition("/")
            msg.add_attachment(
                content,
                maintype=maintype,
                subtype=subtype or "octet-stream",
                filename=filename,
            )
        return msg

    async def send(self, message: MailMessage) -> DeliveryAck:
        msg = await self._build(message)
        async with self._lock:
            try:
                smtp = await self._ensure_connected()
                rejected, response = await smtp.send_message(msg)
            except aiosmtplib.SMTPRecipientsRefused as e:
                raise DeliveryError(
                    "All recipients were refused",
                    details=[str(r) for r in e.recipients],
                    transport=self.name,
                ) from e
            except aiosmtplib.SMTPResponseException as e:
                raise DeliveryError(
                    f"SMTP server rejected the message ({e.code})",
                    details=e.message,
                    transport=self.name,
                ) from e
            except (aiosmtplib.SMTPException, OSError) as e:
                # Drop the session so the next send reconnects
                self._smtp = None
                raise DeliveryError(
                    "Failed to send email", details=str(e), transport=self.name
                ) from e

        if rejected:
            logger.warning("SMTP refused some recipients: %s", ", ".join(rejected))
        logger.info("SMTP accepted %s: %s", msg["Message-ID"], response)
        return DeliveryAck(
            message_id=str(msg["Message-ID"]),
            transport=self.name,
            rejected=sorted(rejected),
        )


def _address(value: str) -> dict[str, str]:
    name, email = parseaddr(value)
    entry = {"email": email or value}
    if name:
        entry["name"] = name
    return entry


class SendGridDispatcher:
    """Send through the SendGrid v3 Web API (stateless, API-key auth)."""

    name = "sendgrid"

    def __init__(self, api_key: str, base_url: str = "https://api.sendgrid.com") -> None:
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")

    async def _payload(self, message: MailMessage) -> dict[str, Any]:
        personalization: dict[str, Any] = {"to": [_address(a) for a in message.to]}
        if message.cc:
            personalization["cc"] = [_address(a) for a in message.cc]

        sender: dict[str, str] = {"email": message.from_email}
        if message.from_name:
            sender["name"] = message.from_name

        payload: dict[str, Any] = {
            "personalizations": [personalization],
            "from": sender,
            "subject": message.subject,
            "content": [
                {"type": "text/plain", "value": message.text},
                {"type": "text/html", "value": message.html},
            ],
        }
        if message.reply_to:
            payload["reply_to"] = _address(message.reply_to)

        attachments = await _load_attachments(message.attachments, self.name)
        if attachments:
            payload["attachments"] = [
                {
                    "content": base64.b64encode(content).decode("ascii"),
                    "filename": filename,
                    "type": content_type,
                    "disposition": "attachment",
                }
                for filename, content, content_type in attachments
            ]
        return payload

    async def send(self, message: MailMessage) -> DeliveryAck:
        if not self.api_key:
            raise Misconfiguration("SENDGRID_API_KEY not set")

        payload = await self._payload(message)
        client = get_shared_client()
        try:
            resp = await client.post(
                f"{self.base_url}/v3/mail/send",
                headers={"Authorization": f"Bearer {self.api_key}"},
                json=payload,
            )
        except httpx.HTTPError as e:
            raise DeliveryError(
                "Failed to reach email API", details=str(e), transport=self.name
            ) from e

        if resp.status_code >= 300:
            try:
                details = resp.json().get("errors", resp.text)
            except ValueError:
                details = resp.text
            raise DeliveryError(
                f"Email API rejected the message ({resp.status_code})",
                details=details,
                transport=self.name,
            )

        message_id = resp.headers.get("x-message-id") or "sendgrid-api"
        logger.info("SendGrid accepted %s (%d)", message_id, resp.status_code)
        return DeliveryAck(
            message_id=message_id, transport=self.name, status_code=resp.status_code
        )
