"""Proposal and quote-request email endpoints.

``/proposal/send-proposal`` sends the proposal template over the SMTP
session; ``/sendMail/send-proposal`` sends the quote-reply template through
the email API and echoes the transport acknowledgement.  Both share the
same orchestrator and a per-IP rate limit.
"""

import logging
import time
from collections import defaultdict

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from site_api.config import get_settings
from site_api.dependencies import get_api_dispatcher, get_smtp_dispatcher
from site_api.models.inquiry import InquiryRequest, InquiryResponse
from site_api.services.mail.dispatcher import MailDispatcher
from site_api.services.mail.orchestrator import InquiryOrchestrator, TemplateVariant

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/proposal", tags=["mail"])
send_mail_router = APIRouter(prefix="/sendMail", tags=["mail"])

# In-memory rate limiter: {ip: [timestamps]}
_rate_limits: dict[str, list[float]] = defaultdict(list)

_RATE_LIMITED = {"error": "Too many requests, please try again later."}


def _check_rate_limit(ip: str) -> bool:
    """Return True if request is allowed, False if rate limited."""
    settings = get_settings()
    now = time.time()
    cutoff = now - settings.proposal_rate_window
    _rate_limits[ip] = [ts for ts in _rate_limits[ip] if ts > cutoff]
    if len(_rate_limits[ip]) >= settings.proposal_rate_limit:
        return False
    _rate_limits[ip].append(now)
    return True


def _client_ip(request: Request) -> str:
    return request.client.host if request.client else "unknown"


@router.post("/send-proposal", response_model=InquiryResponse, response_model_exclude_none=True)
async def send_proposal(
    inquiry: InquiryRequest,
    request: Request,
    dispatcher: MailDispatcher = Depends(get_smtp_dispatcher),
):
    """Send a proposal email to `to` (cc optional) and notify the team."""
    ip = _client_ip(request)
    if not _check_rate_limit(ip):
        logger.warning("Proposal rate limit hit from %s", ip)
        return JSONResponse(status_code=429, content=_RATE_LIMITED)

    orchestrator = InquiryOrchestrator(dispatcher, get_settings(), TemplateVariant.PROPOSAL)
    await orchestrator.handle(inquiry)
    return InquiryResponse(message="Dynamic proposal email sent.")


@send_mail_router.post(
    "/send-proposal", response_model=InquiryResponse, response_model_exclude_none=True
)
async def send_quote_reply(
    inquiry: InquiryRequest,
    request: Request,
    dispatcher: MailDispatcher = Depends(get_api_dispatcher),
):
    """Reply to a "Request a Quote" submission and notify the team."""
    ip = _client_ip(request)
    if not _check_rate_limit(ip):
        logger.warning("Quote request rate limit hit from %s", ip)
        return JSONResponse(status_code=429, content=_RATE_LIMITED)

    logger.info(
        "Quote request from %s (%d attachments)",
        inquiry.from_email or "<missing>",
        len(inquiry.attachments),
    )
    orchestrator = InquiryOrchestrator(dispatcher, get_settings(), TemplateVariant.QUOTE_REPLY)
    outcome = await orchestrator.handle(inquiry)
    return InquiryResponse(
        message="Email sent to user and internal team notified.",
        info=outcome.user_ack.to_dict() if outcome.user_ack else None,
    )
