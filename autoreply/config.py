"""
Service configuration loaded from environment variables / .env
"""
from typing import List, Literal
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded once at startup and never mutated."""

    # Mailbox identity (also used as the SMTP login and reply From address)
    email_user: str
    email_pass: str

    # IMAP
    imap_host: str
    imap_port: int = 993
    imap_mailbox: str = "INBOX"
    imap_timeout: float = 10.0

    # SMTP
    smtp_host: str
    smtp_port: int = 465
    smtp_security: Literal["ssl", "starttls", "plain"] = "ssl"
    smtp_timeout: float = 30.0

    # Active hours, half-open window [hour_start, hour_end) that may wrap midnight
    hour_start: int = Field(default=17, ge=0, le=23)
    hour_end: int = Field(default=8, ge=0, le=23)
    timezone: str = "Asia/Jakarta"

    debug_mode: bool = False
    debug_time_check: int = Field(default=30, gt=0, description="Polling interval in debug mode (seconds)")
    prod_time_check: int = Field(default=60, gt=0, description="Polling interval in production (seconds)")

    ignore_domains: List[str] = Field(
        default_factory=lambda: ["@stripe.com", "@amazon.com.au"],
        description="Sender address suffixes that never get an auto-reply",
    )

    service_name: str = "GasPro Detection"

    log_file: str = "logs.txt"
    log_level: str = "INFO"

    model_config = SettingsConfigDict(env_file=".env", extra="ignore", frozen=True)

    @field_validator("timezone")
    @classmethod
    def _known_timezone(cls, value: str) -> str:
        try:
            ZoneInfo(value)
        except (ZoneInfoNotFoundError, ValueError) as e:
            raise ValueError(f"Unknown timezone: {value}") from e
        return value

    @field_validator("ignore_domains")
    @classmethod
    def _lowercase_domains(cls, value: List[str]) -> List[str]:
        return [domain.strip().lower() for domain in value if domain.strip()]

    @property
    def check_interval(self) -> int:
        """Seconds to wait between the end of one cycle and the start of the next"""
        return self.debug_time_check if self.debug_mode else self.prod_time_check

    @property
    def tz(self) -> ZoneInfo:
        return ZoneInfo(self.timezone)

    @property
    def service_address(self) -> str:
        return self.email_user.strip().lower()
