"""
core/config.py -- Centralized application configuration via pydantic-settings.

All environment variable reads happen here. No module should call os.getenv()
or os.environ.get() directly -- import get_settings() instead.

Singleton via lru_cache: get_settings() instantiates Settings once at first
call and returns the cached instance on every subsequent call. In tests, call
get_settings.cache_clear() between cases that inject different environments.

Mail settings are not read by the writer or mailer directly. main.py asks
Settings.mail_settings() for an explicit MailSettings value and passes it in
at construction, so nothing downstream depends on process-wide mail state.

Layer rule: core/ is the kernel. This module may not import from output/.
MailSettings lives here for that reason; output/mailer.py re-exports it.
"""

from dataclasses import dataclass
from functools import lru_cache

from pydantic import model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


DEFAULT_MAIL_SUBJECT = "Defender Status Overview"


@dataclass(frozen=True)
class MailSettings:
    """Everything the SMTP transport needs. Transport security is always required."""

    to: str
    sender: str
    server: str
    port: int
    username: str
    password: str
    subject: str = DEFAULT_MAIL_SUBJECT
    require_tls: bool = True


class Settings(BaseSettings):
    """Settings loaded from environment variables and an optional .env file.

    All fields have defaults so Settings() can be instantiated in tests
    without a real .env file. Field names map to upper-cased env vars, e.g.
    `max_concurrency` reads from MAX_CONCURRENCY.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ------------------------------------------------------------------
    # Core
    # ------------------------------------------------------------------

    debug: bool = False
    output_dir: str = "reports"

    # ------------------------------------------------------------------
    # Collection
    # ------------------------------------------------------------------

    max_concurrency: int = 5
    ping_count: int = 2
    ping_timeout: int = 2
    query_timeout: int = 60

    # ------------------------------------------------------------------
    # Mail (optional -- empty string means not configured)
    # ------------------------------------------------------------------

    smtp_server: str = ""
    smtp_port: int = 587
    smtp_username: str = ""
    smtp_password: str = ""
    mail_from: str = ""
    mail_to: str = ""
    mail_subject: str = DEFAULT_MAIL_SUBJECT

    @model_validator(mode="after")
    def validate_limits(self) -> "Settings":
        if self.max_concurrency < 1:
            raise ValueError("MAX_CONCURRENCY must be at least 1.")
        if self.ping_count < 1:
            raise ValueError("PING_COUNT must be at least 1.")
        if self.ping_timeout < 1 or self.query_timeout < 1:
            raise ValueError("PING_TIMEOUT and QUERY_TIMEOUT must be positive.")
        return self

    def mail_settings(self) -> MailSettings:
        """Return the SMTP configuration, or raise ValueError naming missing fields."""
        required = {
            "SMTP_SERVER": self.smtp_server,
            "SMTP_USERNAME": self.smtp_username,
            "SMTP_PASSWORD": self.smtp_password,
            "MAIL_FROM": self.mail_from,
            "MAIL_TO": self.mail_to,
        }
        missing = [name for name, value in required.items() if not value]
        if missing:
            raise ValueError(f"Email delivery requires: {', '.join(missing)}")
        return MailSettings(
            to=self.mail_to,
            sender=self.mail_from,
            server=self.smtp_server,
            port=self.smtp_port,
            username=self.smtp_username,
            password=self.smtp_password,
            subject=self.mail_subject,
        )


@lru_cache
def get_settings() -> Settings:
    """Return the application Settings singleton."""
    return Settings()
