"""Configuration loading and validation."""

from .models import (
    # Enums
    Source,
    # Config models
    AppConfig,
    AnbudConfig,
    BackendConfig,
    DatabaseConfig,
    DoffinConfig,
    EmailConfig,
    LoggingConfig,
    NotificationConfig,
    ReminderConfig,
    SchedulerConfig,
    SourcesConfig,
    TedConfig,
    TelegramConfig,
)
from .loader import ConfigError, load_app_config

__all__ = [
    # Enums
    "Source",
    # Config models
    "AppConfig",
    "AnbudConfig",
    "BackendConfig",
    "DatabaseConfig",
    "DoffinConfig",
    "EmailConfig",
    "LoggingConfig",
    "NotificationConfig",
    "ReminderConfig",
    "SchedulerConfig",
    "SourcesConfig",
    "TedConfig",
    "TelegramConfig",
    # Loaders
    "ConfigError",
    "load_app_config",
]
