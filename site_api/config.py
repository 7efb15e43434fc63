"""Application configuration via environment variables."""

from functools import lru_cache
from pathlib import Path

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings loaded from environment."""

    # App
    debug: bool = False
    environment: str = "development"
    log_level: str = "INFO"

    # CORS
    cors_origins: list[str] = [
        "http://localhost:5173",
        "https://thebrightlayer.com",
    ]

    # Azure Blob Storage (blog documents)
    azure_storage_account: str = "sitecontentstorage"
    blog_container: str = "blogs"

    # Azure User-Assigned Managed Identity
    managed_identity_client_id: str = ""

    # Microsoft Foundry (LLM translation via OpenAI-compatible API)
    foundry_openai_endpoint: str = ""
    foundry_api_key: str = ""
    foundry_deployment: str = "gpt-4.1"

    # Translation
    default_language: str = "en"
    translation_languages: list[str] = ["hi"]
    translation_max_tokens: int = 4000

    # SMTP session transport (/proposal)
    smtp_host: str = ""
    smtp_port: int = 587
    smtp_secure: bool = False  # implicit TLS (465); STARTTLS is negotiated otherwise
    smtp_user: str = ""
    smtp_pass: str = ""
    smtp_timeout: float = 30.0

    # Hosted email API transport (/sendMail)
    sendgrid_api_key: str = ""
    sendgrid_api_url: str = "https://api.sendgrid.com"

    # Verified sender + company signature
    from_email: str = ""
    company_name: str = "BrightLayer"
    company_website: str = ""
    company_phone: str = ""

    # Business contact shown in quote replies
    biz_contact_name: str = ""
    biz_phone: str = ""
    biz_email: str = ""
    biz_website: str = "https://thebrightlayer.com"

    # Internal notification recipients (comma-separated)
    internal_notify_email: str = ""
    default_internal_email: str = "contact@thebrightlayer.com"

    # Attachments are only ever read from this directory
    attachment_dir: Path = Path("files")

    # Proposal endpoints rate limit (per client IP)
    proposal_rate_limit: int = 10
    proposal_rate_window: int = 60  # seconds

    model_config = {"env_file": ".env", "extra": "ignore"}


@lru_cache
def get_settings() -> Settings:
    return Settings()
