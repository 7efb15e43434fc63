"""
Site API

FastAPI backend serving the company blog and sending proposal / quote emails.
"""

import logging
import logging.config
import time
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from typing import Any

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from site_api.config import get_settings
from site_api.errors import register_exception_handlers
from site_api.middleware import RequestIDMiddleware, SecurityHeadersMiddleware
from site_api.routers import blog, proposal
from site_api.services.blog_store import check_storage_connectivity
from site_api.services.http_client import close_shared_client
from site_api.services.mail.dispatcher import SendGridDispatcher, SmtpDispatcher

settings = get_settings()

logging.config.dictConfig(
    {
        "version": 1,
        "disable_existing_loggers": False,
        "filters": {
            "request_id": {"()": "site_api.middleware.RequestIDLogFilter"},
        },
        "formatters": {
            "default": {
                "format": "%(asctime)s [%(levelname)s] %(name)s [%(request_id)s]: %(message)s",
            },
        },
        "handlers": {
            "console": {
                "class": "logging.StreamHandler",
                "formatter": "default",
                "filters": ["request_id"],
            },
        },
        "root": {"level": settings.log_level, "handlers": ["console"]},
    }
)

logger = logging.getLogger(__name__)

# Health check cache: (result_dict, timestamp)
_health_cache: tuple[dict[str, Any], float] | None = None
_HEALTH_CACHE_TTL = 30  # seconds


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan: build mail transports, verify SMTP, clean up."""
    s = get_settings()
    smtp = SmtpDispatcher(
        host=s.smtp_host,
        port=s.smtp_port,
        username=s.smtp_user,
        password=s.smtp_pass,
        use_tls=s.smtp_secure,
        timeout=s.smtp_timeout,
    )
    app.state.smtp_dispatcher = smtp
    app.state.api_dispatcher = SendGridDispatcher(
        api_key=s.sendgrid_api_key, base_url=s.sendgrid_api_url
    )
    if not s.sendgrid_api_key:
        logger.error("SENDGRID_API_KEY not set; /sendMail requests will fail")
    await smtp.verify()
    yield
    await smtp.close()
    await close_shared_client()


app = FastAPI(
    title="Site API",
    description="Blog content store and transactional proposal mail",
    version="0.1.0",
    lifespan=lifespan,
)

register_exception_handlers(app)

app.add_middleware(SecurityHeadersMiddleware)

# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
    allow_headers=["Content-Type", "Authorization", "X-Request-ID"],
)

# Request ID (added last, so outermost)
app.add_middleware(RequestIDMiddleware)

# Routers
app.include_router(blog.router, prefix="/api")
app.include_router(proposal.router, prefix="/api")
app.include_router(proposal.send_mail_router, prefix="/api")


def _check_config() -> str:
    """Verify required configuration is loaded. Returns 'ok' or 'fail'."""
    s = get_settings()
    if s.azure_storage_account and s.blog_container and s.from_email:
        return "ok"
    return "fail"


def _check_smtp() -> str:
    smtp = getattr(app.state, "smtp_dispatcher", None)
    return "ok" if smtp is not None and smtp.verified else "fail"


def _run_health_checks() -> dict[str, Any]:
    """Run all health checks, returning the full response body."""
    global _health_cache
    now = time.time()
    if _health_cache is not None:
        cached_result, cached_at = _health_cache
        if now - cached_at < _HEALTH_CACHE_TTL:
            return cached_result

    checks = {
        "config": _check_config(),
        "storage": "ok" if check_storage_connectivity() else "fail",
        "smtp": _check_smtp(),
    }
    failed = [k for k, v in checks.items() if v != "ok"]

    if failed:
        overall = "degraded"
        logger.warning("Health check degraded: failed %s", ", ".join(failed))
    else:
        overall = "ok"

    result: dict[str, Any] = {
        "status": overall,
        "service": "site-api",
        "version": "0.1.0",
        "checks": checks,
    }
    _health_cache = (result, now)
    return result


@app.get("/api/health")
async def health_check() -> JSONResponse:
    """Health check verifying service dependencies."""
    result = _run_health_checks()
    status_code = 200 if result["status"] in ("ok", "degraded") else 503
    return JSONResponse(content=result, status_code=status_code)
