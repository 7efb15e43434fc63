"""Route tests for /api/proposal/send-proposal and /api/sendMail/send-proposal."""

import pytest
from httpx import ASGITransport, AsyncClient

from site_api.dependencies import get_api_dispatcher, get_smtp_dispatcher
from site_api.errors import DeliveryError
from site_api.main import app

PROPOSAL_URL = "/api/proposal/send-proposal"
QUOTE_URL = "/api/sendMail/send-proposal"


@pytest.fixture
def use_dispatcher():
    """Route both dispatcher dependencies to the given fake."""

    def _use(dispatcher):
        app.dependency_overrides[get_smtp_dispatcher] = lambda: dispatcher
        app.dependency_overrides[get_api_dispatcher] = lambda: dispatcher
        return dispatcher

    return _use


@pytest.fixture
async def client():
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


class TestSendProposal:
    async def test_success(self, mock_settings, fake_dispatcher, use_dispatcher, client):
        use_dispatcher(fake_dispatcher)

        resp = await client.post(
            PROPOSAL_URL,
            json={
                "fromName": "Sam Lee",
                "fromEmail": "sam@example.com",
                "to": ["client@example.org"],
                "highlights": "Fast, Friendly",
            },
        )

        assert resp.status_code == 200
        assert resp.json() == {"success": True, "message": "Dynamic proposal email sent."}
        assert fake_dispatcher.calls == 2
        assert "<li>Friendly</li>" in fake_dispatcher.sent[0].html

    async def test_unparseable_attachment_url_is_skipped(
        self, mock_settings, fake_dispatcher, use_dispatcher, client
    ):
        (mock_settings.attachment_dir / "deck.pdf").write_bytes(b"%PDF")
        use_dispatcher(fake_dispatcher)

        resp = await client.post(
            PROPOSAL_URL,
            json={
                "fromEmail": "sam@example.com",
                "to": "client@example.org",
                "attachments": ["https://[broken/x.pdf", "deck.pdf"],
            },
        )

        assert resp.status_code == 200
        assert fake_dispatcher.calls == 2
        assert [a.filename for a in fake_dispatcher.sent[0].attachments] == ["deck.pdf"]

    async def test_missing_sender_is_400_and_nothing_sent(
        self, mock_settings, fake_dispatcher, use_dispatcher, client
    ):
        use_dispatcher(fake_dispatcher)

        resp = await client.post(PROPOSAL_URL, json={"to": "client@example.org"})

        assert resp.status_code == 400
        assert "fromEmail" in resp.json()["error"]
        assert fake_dispatcher.calls == 0

    async def test_transport_rejection_is_500_with_details(
        self, mock_settings, dispatcher_factory, use_dispatcher, client
    ):
        use_dispatcher(
            dispatcher_factory(
                fail_on={1},
                error=DeliveryError("SMTP server rejected the message (550)", details="no"),
            )
        )

        resp = await client.post(
            PROPOSAL_URL,
            json={"fromEmail": "sam@example.com", "to": "client@example.org"},
        )

        assert resp.status_code == 500
        assert resp.json() == {
            "error": "SMTP server rejected the message (550)",
            "details": "no",
        }

    async def test_missing_from_email_setting_is_500(
        self, mock_settings, fake_dispatcher, use_dispatcher, client
    ):
        mock_settings.from_email = ""
        use_dispatcher(fake_dispatcher)

        resp = await client.post(
            PROPOSAL_URL,
            json={"fromEmail": "sam@example.com", "to": "client@example.org"},
        )

        assert resp.status_code == 500
        assert resp.json()["error"].startswith("Server misconfiguration:")

    async def test_rate_limited_after_threshold(
        self, mock_settings, fake_dispatcher, use_dispatcher, client
    ):
        mock_settings.proposal_rate_limit = 2
        use_dispatcher(fake_dispatcher)
        body = {"fromEmail": "sam@example.com", "to": "client@example.org"}

        first = await client.post(PROPOSAL_URL, json=body)
        second = await client.post(PROPOSAL_URL, json=body)
        third = await client.post(PROPOSAL_URL, json=body)

        assert first.status_code == 200
        assert second.status_code == 200
        assert third.status_code == 429
        assert third.json() == {"error": "Too many requests, please try again later."}
        assert fake_dispatcher.calls == 4


class TestSendQuoteReply:
    async def test_success_echoes_transport_ack(
        self, mock_settings, fake_dispatcher, use_dispatcher, client
    ):
        use_dispatcher(fake_dispatcher)

        resp = await client.post(
            QUOTE_URL,
            json={"fromName": "Priya Sharma", "fromEmail": "priya@example.com"},
        )

        assert resp.status_code == 200
        body = resp.json()
        assert body["message"] == "Email sent to user and internal team notified."
        assert body["info"] == {"messageId": "fake-1", "statusCode": 202}
        assert fake_dispatcher.sent[0].to == ["priya@example.com"]

    async def test_internal_failure_still_succeeds(
        self, mock_settings, dispatcher_factory, use_dispatcher, client
    ):
        dispatcher = use_dispatcher(
            dispatcher_factory(fail_on={2}, error=DeliveryError("internal bounced"))
        )

        resp = await client.post(QUOTE_URL, json={"fromEmail": "priya@example.com"})

        assert resp.status_code == 200
        assert dispatcher.calls == 2

    async def test_invalid_email_is_400(
        self, mock_settings, fake_dispatcher, use_dispatcher, client
    ):
        use_dispatcher(fake_dispatcher)

        resp = await client.post(QUOTE_URL, json={"fromEmail": "nope"})

        assert resp.status_code == 400
        assert fake_dispatcher.calls == 0

    async def test_provider_error_list_is_returned(
        self, mock_settings, dispatcher_factory, use_dispatcher, client
    ):
        errors = [{"message": "Invalid from address"}]
        use_dispatcher(
            dispatcher_factory(
                fail_on={1},
                error=DeliveryError("Email API rejected the message (400)", details=errors),
            )
        )

        resp = await client.post(QUOTE_URL, json={"fromEmail": "priya@example.com"})

        assert resp.status_code == 500
        assert resp.json()["details"] == errors
