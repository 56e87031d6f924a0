"""
Pydantic configuration models for TenderWatch.

These models provide type-safe configuration with validation for:
- Application settings
- Source adapters (credentials, endpoints, filters)
- Scheduler and reminder timing
- Notification channels
"""

from __future__ import annotations

from datetime import time
from enum import Enum
from pathlib import Path
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import BaseModel, Field, field_validator


# =============================================================================
# Enums
# =============================================================================


class Source(str, Enum):
    """Tender sources monitored by the pipeline."""

    ANBUD = "anbud"
    DOFFIN = "doffin"
    TED = "ted"
    MERCELL = "mercell"

    @property
    def display_name(self) -> str:
        return SOURCE_DISPLAY_NAMES[self]


SOURCE_DISPLAY_NAMES: dict[Source, str] = {
    Source.ANBUD: "Anbud",
    Source.DOFFIN: "Doffin",
    Source.TED: "TED",
    Source.MERCELL: "Mercell",
}


def default_enabled_sources() -> dict[Source, bool]:
    return {
        Source.ANBUD: True,
        Source.DOFFIN: True,
        Source.TED: True,
        Source.MERCELL: False,
    }


# =============================================================================
# Backend Configuration
# =============================================================================


class BackendConfig(BaseModel):
    """HTTP and browser backend settings shared by all sources."""

    timeout_seconds: float = Field(
        default=30.0,
        ge=1.0,
        le=300.0,
        description="Request and navigation timeout in seconds",
    )
    headless: bool = Field(
        default=True,
        description="Run browser backends in headless mode",
    )
    max_retries: int = Field(
        default=3,
        ge=1,
        le=10,
        description="Maximum HTTP attempts for transient failures",
    )
    user_agent: str | None = Field(
        default=None,
        description="Override the default user agent",
    )


# =============================================================================
# Source Configuration
# =============================================================================


class AnbudConfig(BaseModel):
    """Authenticated table scrape of anbuddirekte.no."""

    username: str | None = Field(default=None, description="Login e-mail")
    password: str | None = Field(default=None, description="Login password")
    login_url: str = "https://www.anbuddirekte.no/Members/Login.aspx"
    listing_url: str = "https://www.anbuddirekte.no/Members/Tenders/ContractNotices.aspx"
    base_url: str = "https://www.anbuddirekte.no"
    detail_limit: int = Field(
        default=20,
        ge=0,
        le=200,
        description="Listings per run that get a detail page fetch",
    )

    @property
    def has_credentials(self) -> bool:
        return bool(self.username and self.password)


class DoffinConfig(BaseModel):
    """Public client-rendered search on doffin.no."""

    search_url: str = "https://doffin.no/search"
    base_url: str = "https://doffin.no"
    settle_ms: int = Field(
        default=5000,
        ge=0,
        le=60000,
        description="Time to wait for client-side rendering",
    )
    budget_ceiling_nok: int = Field(
        default=1_000_000,
        ge=0,
        description="Maximum amount for the budget filter stage",
    )


class TedConfig(BaseModel):
    """Structured search against the TED notices API."""

    api_url: str = "https://tedweb.api.ted.europa.eu/private-search/api/v1/notices/search"
    notice_url: str = "https://ted.europa.eu/en/notice/-/detail/{publication_number}"
    country: str = Field(default="NOR", min_length=3, max_length=3)
    min_publication_date: str = Field(
        default="20250101",
        pattern=r"^\d{8}$",
        description="Earliest publication date (YYYYMMDD)",
    )
    limit: int = Field(default=50, ge=1, le=250)
    scope: str = "ACTIVE"


class SourcesConfig(BaseModel):
    """Per-source settings and default enable flags."""

    enabled: dict[Source, bool] = Field(default_factory=default_enabled_sources)
    anbud: AnbudConfig = Field(default_factory=AnbudConfig)
    doffin: DoffinConfig = Field(default_factory=DoffinConfig)
    ted: TedConfig = Field(default_factory=TedConfig)

    @field_validator("enabled")
    @classmethod
    def fill_missing_sources(cls, value: dict[Source, bool]) -> dict[Source, bool]:
        merged = default_enabled_sources()
        merged.update(value)
        return merged


# =============================================================================
# Scheduler Configuration
# =============================================================================


class SchedulerConfig(BaseModel):
    """Scrape cycle settings."""

    interval_minutes: int = Field(
        default=30,
        ge=1,
        le=1440,
        description="Minutes between scrape cycles",
    )
    run_on_start: bool = Field(
        default=True,
        description="Run one cycle immediately when the scheduler starts",
    )
    source_timeout_seconds: float = Field(
        default=600.0,
        ge=10.0,
        description="Upper bound for a single source adapter call",
    )


class ReminderConfig(BaseModel):
    """Deadline reminder timing."""

    enabled: bool = True
    hourly: bool = Field(
        default=True,
        description="Check reminders every hour in addition to the daily check",
    )
    daily_time: time = Field(
        default=time(9, 0),
        description="Time of day for the daily reminder check",
    )
    timezone: str = Field(
        default="Europe/Oslo",
        description="Timezone for the daily check",
    )

    @field_validator("timezone")
    @classmethod
    def validate_timezone(cls, value: str) -> str:
        try:
            ZoneInfo(value)
        except (ZoneInfoNotFoundError, ValueError) as e:
            raise ValueError(f"Unknown timezone: {value}") from e
        return value


# =============================================================================
# Notification Configuration
# =============================================================================


class EmailConfig(BaseModel):
    """SMTP e-mail channel."""

    enabled: bool = False
    smtp_host: str = "localhost"
    smtp_port: int = Field(default=587, ge=1, le=65535)
    username: str | None = None
    password: str | None = None
    use_tls: bool = True
    sender: str | None = None
    recipients: list[str] = Field(default_factory=list)
    max_items: int = Field(default=10, ge=1, le=100)
    notify_errors: bool = False
    timeout_seconds: float = Field(default=30.0, ge=1.0)

    @field_validator("recipients", mode="before")
    @classmethod
    def split_recipients(cls, value: object) -> object:
        if isinstance(value, str):
            return [part.strip() for part in value.split(",") if part.strip()]
        return value


class TelegramConfig(BaseModel):
    """Telegram bot channel."""

    enabled: bool = False
    bot_token: str | None = None
    chat_id: str | None = None
    max_items: int = Field(default=5, ge=1, le=50)
    notify_errors: bool = True


class NotificationConfig(BaseModel):
    """Notification fan-out settings."""

    email: EmailConfig = Field(default_factory=EmailConfig)
    telegram: TelegramConfig = Field(default_factory=TelegramConfig)
    dashboard_url: str | None = Field(
        default=None,
        description="Link appended to summaries",
    )


# =============================================================================
# Database Configuration
# =============================================================================


class DatabaseConfig(BaseModel):
    """Database connection settings."""

    url: str = Field(
        default="sqlite:///data/tenderwatch.db",
        description="SQLAlchemy database URL",
    )
    echo: bool = Field(
        default=False,
        description="Echo SQL statements (debugging)",
    )


# =============================================================================
# Logging Configuration
# =============================================================================


class LoggingConfig(BaseModel):
    """Logging settings."""

    level: str = Field(
        default="INFO",
        description="Log level (DEBUG, INFO, WARNING, ERROR)",
    )
    file: Path | None = Field(
        default=Path("logs/tenderwatch.log"),
        description="Log file path",
    )
    json_format: bool = Field(
        default=True,
        description="Use JSON format for file logs",
    )
    rich_console: bool = Field(
        default=True,
        description="Use Rich for console output",
    )


# =============================================================================
# Application Configuration
# =============================================================================


class AppConfig(BaseModel):
    """Root application configuration.

    This is the main configuration object loaded from app.yaml.
    """

    data_dir: Path = Field(
        default=Path("data"),
        description="Data storage directory",
    )

    database: DatabaseConfig = Field(default_factory=DatabaseConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    scheduler: SchedulerConfig = Field(default_factory=SchedulerConfig)
    reminders: ReminderConfig = Field(default_factory=ReminderConfig)
    backend: BackendConfig = Field(default_factory=BackendConfig)
    sources: SourcesConfig = Field(default_factory=SourcesConfig)
    notifications: NotificationConfig = Field(default_factory=NotificationConfig)

    def ensure_directories(self) -> None:
        """Create required directories if they don't exist."""
        self.data_dir.mkdir(parents=True, exist_ok=True)

        if self.logging.file:
            self.logging.file.parent.mkdir(parents=True, exist_ok=True)
