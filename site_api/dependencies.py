"""FastAPI dependencies for the mail dispatchers built in the app lifespan.

Tests swap these out through ``app.dependency_overrides``.
"""

from fastapi import Request

from site_api.services.mail.dispatcher import MailDispatcher


def get_smtp_dispatcher(request: Request) -> MailDispatcher:
    return request.app.state.smtp_dispatcher


def get_api_dispatcher(request: Request) -> MailDispatcher:
    return request.app.state.api_dispatcher
