"""Shared fixtures for site-api tests."""

from types import SimpleNamespace
from unittest.mock import MagicMock

import pytest

from site_api.services.mail.dispatcher import DeliveryAck, MailMessage


@pytest.fixture(autouse=True)
def _reset_global_state():
    """Reset all module-level singletons and caches between tests."""
    yield

    # 1. Settings LRU cache
    from site_api.config import get_settings

    get_settings.cache_clear()

    # 2. Blob storage singleton
    import site_api.services.blog_store as store_mod

    store_mod._container_client = None

    # 3. HTTP client singleton
    import site_api.services.http_client as http_mod

    http_mod._client = None

    # 4. LLM client singleton
    import site_api.services.llm as llm_mod

    llm_mod._client = None

    # 5. Rate limiter state
    import site_api.routers.proposal as proposal_mod

    proposal_mod._rate_limits.clear()

    # 6. Health cache + dependency overrides
    import site_api.main as main_mod

    main_mod._health_cache = None
    main_mod.app.dependency_overrides.clear()


@pytest.fixture
def mock_settings(monkeypatch, tmp_path):
    """Provide a Settings object with safe test defaults."""
    from site_api.config import Settings, get_settings

    test_settings = Settings(
        azure_storage_account="teststorage",
        blog_container="test-blogs",
        managed_identity_client_id="test-client-id",
        foundry_openai_endpoint="https://test.openai.azure.com/openai/v1/",
        foundry_api_key="test-key",
        foundry_deployment="gpt-4.1",
        default_language="en",
        translation_languages=["hi"],
        smtp_host="smtp.test.local",
        smtp_user="mailer@example.com",
        smtp_pass="secret",  # noqa: S106
        sendgrid_api_key="SG.test-key",
        sendgrid_api_url="https://sendgrid.test",
        from_email="hello@example.com",
        company_name="BrightLayer",
        company_website="https://brightlayer.example.com",
        internal_notify_email="",
        default_internal_email="contact@example.com",
        attachment_dir=tmp_path,
        proposal_rate_limit=10,
        proposal_rate_window=60,
    )

    get_settings.cache_clear()
    monkeypatch.setattr("site_api.config.get_settings", lambda: test_settings)

    # Patch get_settings in all modules that import it directly
    # (from site_api.config import get_settings creates a local binding that
    # the site_api.config monkeypatch above does not affect)
    for mod_path in [
        "site_api.main",
        "site_api.services.blog_store",
        "site_api.services.llm",
        "site_api.services.translation",
        "site_api.routers.proposal",
    ]:
        monkeypatch.setattr(f"{mod_path}.get_settings", lambda: test_settings)

    return test_settings


class FakeDispatcher:
    """Records every message; optionally fails the Nth send."""

    name = "fake"

    def __init__(self, fail_on: set[int] | None = None, error: Exception | None = None):
        self.sent: list[MailMessage] = []
        self.calls = 0
        self.fail_on = fail_on or set()
        self.error = error

    async def send(self, message: MailMessage) -> DeliveryAck:
        self.calls += 1
        if self.calls in self.fail_on:
            raise self.error
        self.sent.append(message)
        return DeliveryAck(
            message_id=f"fake-{self.calls}", transport=self.name, status_code=202
        )


@pytest.fixture
def fake_dispatcher():
    return FakeDispatcher()


@pytest.fixture
def dispatcher_factory():
    """Build a FakeDispatcher with custom failure behaviour."""
    return FakeDispatcher


class _MemoryBlob:
    def __init__(self, container: "MemoryContainer", name: str):
        self._container = container
        self.name = name

    def download_blob(self):
        from azure.core.exceptions import ResourceNotFoundError

        if self.name not in self._container.blobs:
            raise ResourceNotFoundError("BlobNotFound")
        downloader = MagicMock()
        downloader.readall.return_value = self._container.blobs[self.name]
        downloader.properties.etag = self._container.etags.get(self.name, '"0"')
        self._container.downloads.append(self.name)
        return downloader

    def upload_blob(self, data, overwrite=False, etag=None, match_condition=None, **kwargs):
        from azure.core import MatchConditions
        from azure.core.exceptions import ResourceExistsError, ResourceModifiedError

        blobs, etags = self._container.blobs, self._container.etags
        if not overwrite and self.name in blobs:
            raise ResourceExistsError("BlobAlreadyExists")
        if match_condition is MatchConditions.IfNotModified and etags.get(self.name) != etag:
            raise ResourceModifiedError("ConditionNotMet")
        self._container.uploads.append(self.name)
        blobs[self.name] = data.encode() if isinstance(data, str) else data
        etags[self.name] = f'"{len(self._container.uploads)}"'

    def delete_blob(self):
        from azure.core.exceptions import ResourceNotFoundError

        if self.name not in self._container.blobs:
            raise ResourceNotFoundError("BlobNotFound")
        del self._container.blobs[self.name]
        self._container.etags.pop(self.name, None)


class MemoryContainer:
    """Dict-backed stand-in for an azure ContainerClient."""

    def __init__(self):
        self.blobs: dict[str, bytes] = {}
        self.etags: dict[str, str] = {}
        self.uploads: list[str] = []
        self.downloads: list[str] = []

    def get_blob_client(self, name: str) -> _MemoryBlob:
        return _MemoryBlob(self, name)

    def list_blobs(self, name_starts_with: str | None = None, **kwargs):
        return [
            SimpleNamespace(name=name)
            for name in sorted(self.blobs)
            if name_starts_with is None or name.startswith(name_starts_with)
        ]


@pytest.fixture
def memory_container(monkeypatch):
    """Back the blog store with an in-memory container."""
    container = MemoryContainer()
    monkeypatch.setattr(
        "site_api.services.blog_store._get_container_client", lambda: container
    )
    return container
