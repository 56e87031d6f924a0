"""Database persistence layer."""

from .db import create_db_engine, create_session_factory, init_db, session_scope
from .gateway import PersistenceFailure, ReminderEntry, SqlGateway
from .models import (
    Base,
    Favorite,
    Note,
    Priority,
    Reminder,
    SentReminder,
    SourceSetting,
    Tag,
    TenderRecord,
)
from .repo import ReminderRepository, SourceSettingRepository, TenderRepository

__all__ = [
    "create_db_engine",
    "create_session_factory",
    "init_db",
    "session_scope",
    "Base",
    "Favorite",
    "Note",
    "Priority",
    "Reminder",
    "SentReminder",
    "SourceSetting",
    "Tag",
    "TenderRecord",
    "PersistenceFailure",
    "ReminderEntry",
    "SqlGateway",
    "ReminderRepository",
    "SourceSettingRepository",
    "TenderRepository",
]
