"""
Storage gateway used by the scheduler, the reminder engine and the CLI.

Each operation runs in its own transaction and returns plain domain
objects, so callers never hold ORM instances past a session.
"""

from __future__ import annotations

from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime
from typing import Generator, Iterable

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from ..core.config.models import Source
from ..core.logging import get_logger
from ..core.normalize.canonical import Tender
from .db import create_db_engine, create_session_factory, session_scope
from .models import Base
from .repo import (
    AnnotationRepository,
    ReminderRepository,
    SourceSettingRepository,
    TenderRepository,
    from_db_time,
    record_to_tender,
)

logger = get_logger("persistence.gateway")


class PersistenceFailure(Exception):
    """Storage read or write failed."""
    pass


@dataclass(frozen=True)
class ReminderEntry:
    """Reminder configuration for one tender."""

    tender_id: str
    thresholds: tuple[int, ...]
    created_at: datetime | None = None


def normalize_thresholds(thresholds: Iterable[int]) -> list[int]:
    """Distinct positive day counts, ascending."""
    return sorted({int(d) for d in thresholds if int(d) > 0})


class SqlGateway:
    """SQLAlchemy-backed implementation of the storage operations."""

    def __init__(self, session_factory: sessionmaker[Session]):
        self._session_factory = session_factory

    @classmethod
    def from_url(cls, url: str, echo: bool = False, create_schema: bool = True) -> "SqlGateway":
        """Build a gateway on its own engine.

        Args:
            url: SQLAlchemy database URL
            echo: Whether to log SQL statements
            create_schema: Create missing tables first
        """
        engine = create_db_engine(url, echo=echo)
        if create_schema:
            Base.metadata.create_all(bind=engine)
        return cls(create_session_factory(engine))

    @contextmanager
    def _session(self) -> Generator[Session, None, None]:
        try:
            with session_scope(self._session_factory) as session:
                yield session
        except SQLAlchemyError as e:
            logger.error(f"Storage error: {e}")
            raise PersistenceFailure(str(e)) from e

    # -------------------------------------------------------------------------
    # Tenders
    # -------------------------------------------------------------------------

    def upsert(self, records: Iterable[Tender]) -> list[Tender]:
        """Store records and return the ones not seen before.

        Raises:
            PersistenceFailure: If the transaction fails (nothing is written)
        """
        with self._session() as session:
            return TenderRepository(session).upsert_many(records)

    def query_by_source_and_id(self, source: Source, tender_id: str) -> Tender | None:
        with self._session() as session:
            record = TenderRepository(session).get(source, tender_id)
            return record_to_tender(record) if record else None

    def get_tenders(self, tender_ids: Iterable[str]) -> dict[str, Tender]:
        """Look up tenders by id across sources.

        Reminders are keyed by bare tender id, which relies on ids being
        unique across sources: TED ids carry a ``ted_`` prefix, derived ids a
        ``<source>_`` prefix, and Anbud ids are ``NOR`` notice numbers. If
        two sources ever share an id, the first stored row wins and the
        clash is logged.
        """
        with self._session() as session:
            records = TenderRepository(session).get_many_by_ids(tender_ids)
            found: dict[str, Tender] = {}
            for record in sorted(records, key=lambda r: r.pk):
                if record.tender_id in found:
                    logger.warning(
                        f"Tender id {record.tender_id} exists in {found[record.tender_id].source.value} "
                        f"and {record.source}; using {found[record.tender_id].source.value}"
                    )
                    continue
                found[record.tender_id] = record_to_tender(record)
            return found

    def list_tenders(self, source: Source | None = None, limit: int = 50) -> list[Tender]:
        with self._session() as session:
            return [record_to_tender(r) for r in TenderRepository(session).list(source, limit)]

    # -------------------------------------------------------------------------
    # Annotations
    # -------------------------------------------------------------------------

    @contextmanager
    def _annotating(self, source: Source, tender_id: str):
        with self._session() as session:
            record = TenderRepository(session).get(source, tender_id)
            if record is None:
                raise KeyError(f"{source.value}/{tender_id}")
            yield AnnotationRepository(session), record

    def add_favorite(self, source: Source, tender_id: str) -> bool:
        """Mark a stored tender as favorite.

        Raises:
            KeyError: If the tender isn't stored
        """
        with self._annotating(source, tender_id) as (repo, record):
            return repo.add_favorite(record)

    def add_note(self, source: Source, tender_id: str, body: str) -> None:
        with self._annotating(source, tender_id) as (repo, record):
            repo.add_note(record, body)

    def add_tag(self, source: Source, tender_id: str, name: str) -> bool:
        with self._annotating(source, tender_id) as (repo, record):
            return repo.add_tag(record, name)

    def set_priority(self, source: Source, tender_id: str, level: str) -> None:
        with self._annotating(source, tender_id) as (repo, record):
            repo.set_priority(record, level)

    def get_annotations(self, source: Source, tender_id: str) -> dict:
        """Favorite flag, notes, tags and priority of a stored tender."""
        with self._annotating(source, tender_id) as (_, record):
            return {
                "favorite": record.favorite is not None,
                "notes": [note.body for note in record.notes],
                "tags": sorted(tag.name for tag in record.tags),
                "priority": record.priority.level if record.priority else None,
            }

    # -------------------------------------------------------------------------
    # Reminders
    # -------------------------------------------------------------------------

    def read_reminders(self) -> list[ReminderEntry]:
        with self._session() as session:
            return [
                ReminderEntry(
                    tender_id=r.tender_id,
                    thresholds=tuple(normalize_thresholds(r.thresholds)),
                    created_at=from_db_time(r.created_at),
                )
                for r in ReminderRepository(session).get_all()
            ]

    def set_reminder(self, tender_id: str, thresholds: Iterable[int]) -> ReminderEntry:
        """Create or replace the reminder for a tender.

        Raises:
            ValueError: If no positive threshold is given
        """
        days = normalize_thresholds(thresholds)
        if not days:
            raise ValueError("At least one positive threshold is required")
        with self._session() as session:
            reminder = ReminderRepository(session).set(tender_id, days)
            return ReminderEntry(tender_id, tuple(days), from_db_time(reminder.created_at))

    def remove_reminder(self, tender_id: str) -> bool:
        """Delete a reminder together with its sent markers."""
        with self._session() as session:
            return ReminderRepository(session).remove(tender_id)

    def read_sent_markers(self) -> set[tuple[str, int]]:
        with self._session() as session:
            return ReminderRepository(session).sent_markers()

    def append_sent_marker(self, tender_id: str, threshold_days: int) -> None:
        with self._session() as session:
            ReminderRepository(session).add_marker(tender_id, threshold_days)

    # -------------------------------------------------------------------------
    # Source toggles
    # -------------------------------------------------------------------------

    def read_enabled_sources(self) -> dict[Source, bool]:
        """Persisted toggles; unknown source names are ignored."""
        with self._session() as session:
            stored = SourceSettingRepository(session).get_all()
        known = {source.value for source in Source}
        return {Source(name): enabled for name, enabled in stored.items() if name in known}

    def write_enabled_sources(self, mapping: dict[Source, bool]) -> None:
        with self._session() as session:
            SourceSettingRepository(session).set_many(
                {Source(source).value: bool(enabled) for source, enabled in mapping.items()}
            )
