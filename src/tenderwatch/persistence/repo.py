"""
Repository pattern for database operations.

Provides clean abstractions for CRUD operations on the ORM models,
including the insert-or-update rule that decides which tenders are new.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Iterable, Sequence

from sqlalchemy import delete, select, update
from sqlalchemy.orm import Session

from ..core.config.models import Source
from ..core.normalize.canonical import Tender
from ..core.normalize.dates import utcnow
from .models import (
    Favorite,
    Note,
    Priority,
    Reminder,
    SentReminder,
    SourceSetting,
    Tag,
    TenderRecord,
)

# Fields overwritten when an already-known tender is seen again
DESCRIPTIVE_FIELDS = (
    "title",
    "description",
    "category",
    "buyer",
    "location",
    "price",
    "link",
    "notice_type",
    "status",
)


def to_db_time(value: datetime | None) -> datetime | None:
    """Aware datetime -> naive UTC for storage."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


def from_db_time(value: datetime | None) -> datetime | None:
    """Naive UTC from storage -> aware UTC."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def record_to_tender(record: TenderRecord) -> Tender:
    return Tender(
        id=record.tender_id,
        title=record.title,
        source=Source(record.source),
        description=record.description,
        category=record.category,
        buyer=record.buyer,
        location=record.location,
        price=record.price,
        link=record.link,
        deadline=from_db_time(record.deadline),
        published_at=from_db_time(record.published_at),
        scraped_at=from_db_time(record.scraped_at) or utcnow(),
        notice_type=record.notice_type,
        status=record.status,
        id_is_stable=record.id_is_stable,
    )


# =============================================================================
# Tender Repository
# =============================================================================


class TenderRepository:
    """Repository for tender upserts and lookups."""

    def __init__(self, session: Session):
        self.session = session

    def get(self, source: Source, tender_id: str) -> TenderRecord | None:
        stmt = select(TenderRecord).where(
            TenderRecord.source == source.value,
            TenderRecord.tender_id == tender_id,
        )
        return self.session.execute(stmt).scalar_one_or_none()

    def get_many_by_ids(self, tender_ids: Iterable[str]) -> Sequence[TenderRecord]:
        ids = list(set(tender_ids))
        if not ids:
            return []
        stmt = select(TenderRecord).where(TenderRecord.tender_id.in_(ids))
        return self.session.execute(stmt).scalars().all()

    def list(self, source: Source | None = None, limit: int = 50) -> Sequence[TenderRecord]:
        stmt = select(TenderRecord)
        if source is not None:
            stmt = stmt.where(TenderRecord.source == source.value)
        stmt = stmt.order_by(TenderRecord.scraped_at.desc(), TenderRecord.pk.desc()).limit(limit)
        return self.session.execute(stmt).scalars().all()

    def _existing_ids(self, source: Source, tender_ids: set[str]) -> set[str]:
        if not tender_ids:
            return set()
        stmt = select(TenderRecord.tender_id).where(
            TenderRecord.source == source.value,
            TenderRecord.tender_id.in_(tender_ids),
        )
        return set(self.session.execute(stmt).scalars().all())

    def _existing_titles(self, source: Source, titles: set[str]) -> set[str]:
        if not titles:
            return set()
        stmt = select(TenderRecord.normalized_title).where(
            TenderRecord.source == source.value,
            TenderRecord.normalized_title.in_(titles),
        )
        return set(self.session.execute(stmt).scalars().all())

    def _derived_by_title(self, source: Source, titles: set[str]) -> dict[str, TenderRecord]:
        if not titles:
            return {}
        stmt = select(TenderRecord).where(
            TenderRecord.source == source.value,
            TenderRecord.id_is_stable.is_(False),
            TenderRecord.normalized_title.in_(titles),
        )
        return {record.normalized_title: record for record in self.session.execute(stmt).scalars()}

    def upsert_many(self, tenders: Iterable[Tender]) -> list[Tender]:
        """Insert or update tenders and report which ones are new.

        A tender is new when no stored tender shares its (source, id) and,
        for tenders with a derived id, no stored tender of the same source
        has the same normalized title. Newness is decided against the state
        before this call; later duplicates inside the batch are dropped.

        Known tenders get their descriptive fields overwritten. A derived-id
        tender that only matches by title is not written, so an enriched
        row is never replaced by a poorer copy. A stable-id tender whose
        title matches a stored derived-id row of the same source takes that
        row over (the row is re-keyed) and is not new.

        Returns:
            The new tenders, in input order
        """
        batch: list[Tender] = []
        seen_keys: set[tuple[str, str]] = set()
        seen_titles: set[tuple[str, str]] = set()

        for tender in tenders:
            title_key = (tender.source.value, tender.normalized_title)
            if tender.key in seen_keys:
                continue
            if not tender.id_is_stable and title_key in seen_titles:
                continue
            seen_keys.add(tender.key)
            seen_titles.add(title_key)
            batch.append(tender)

        existing_ids: dict[Source, set[str]] = {}
        existing_titles: dict[Source, set[str]] = {}
        derived_rows: dict[Source, dict[str, TenderRecord]] = {}
        for source in {t.source for t in batch}:
            of_source = [t for t in batch if t.source == source]
            existing_ids[source] = self._existing_ids(source, {t.id for t in of_source})
            existing_titles[source] = self._existing_titles(
                source,
                {t.normalized_title for t in of_source if not t.id_is_stable},
            )
            derived_rows[source] = self._derived_by_title(
                source,
                {t.normalized_title for t in of_source if t.id_is_stable},
            )

        new: list[Tender] = []
        for tender in batch:
            if tender.id in existing_ids[tender.source]:
                self._update(tender)
                continue
            if not tender.id_is_stable and tender.normalized_title in existing_titles[tender.source]:
                continue
            if tender.id_is_stable:
                derived = derived_rows[tender.source].pop(tender.normalized_title, None)
                if derived is not None:
                    self._rekey(derived, tender)
                    continue
            self._insert(tender)
            new.append(tender)

        self.session.flush()
        return new

    def _insert(self, tender: Tender) -> None:
        record = TenderRecord(
            source=tender.source.value,
            tender_id=tender.id,
            normalized_title=tender.normalized_title,
            deadline=to_db_time(tender.deadline),
            published_at=to_db_time(tender.published_at),
            scraped_at=to_db_time(tender.scraped_at),
            id_is_stable=tender.id_is_stable,
        )
        for field_name in DESCRIPTIVE_FIELDS:
            setattr(record, field_name, getattr(tender, field_name))
        self.session.add(record)

    def _update(self, tender: Tender) -> None:
        record = self.get(tender.source, tender.id)
        if record is None:
            return
        self._apply(record, tender)

    def _rekey(self, record: TenderRecord, tender: Tender) -> None:
        """Move a derived-id row and its reminders onto the stable id."""
        old_id = record.tender_id
        record.tender_id = tender.id
        record.id_is_stable = True
        self._apply(record, tender)

        self.session.execute(
            update(Reminder).where(Reminder.tender_id == old_id).values(tender_id=tender.id)
        )
        self.session.execute(
            update(SentReminder).where(SentReminder.tender_id == old_id).values(tender_id=tender.id)
        )

    def _apply(self, record: TenderRecord, tender: Tender) -> None:
        for field_name in DESCRIPTIVE_FIELDS:
            setattr(record, field_name, getattr(tender, field_name))
        record.normalized_title = tender.normalized_title
        record.deadline = to_db_time(tender.deadline)
        record.published_at = to_db_time(tender.published_at)
        record.scraped_at = to_db_time(tender.scraped_at)


# =============================================================================
# Annotation Repository
# =============================================================================


class AnnotationRepository:
    """Favorites, notes, tags and priorities on stored tenders."""

    def __init__(self, session: Session):
        self.session = session

    def add_favorite(self, record: TenderRecord) -> bool:
        if record.favorite is not None:
            return False
        record.favorite = Favorite()
        self.session.flush()
        return True

    def add_note(self, record: TenderRecord, body: str) -> Note:
        note = Note(body=body)
        record.notes.append(note)
        self.session.flush()
        return note

    def add_tag(self, record: TenderRecord, name: str) -> bool:
        name = name.strip().lower()
        if any(tag.name == name for tag in record.tags):
            return False
        record.tags.append(Tag(name=name))
        self.session.flush()
        return True

    def set_priority(self, record: TenderRecord, level: str) -> None:
        if record.priority is None:
            record.priority = Priority(level=level)
        else:
            record.priority.level = level
        self.session.flush()


# =============================================================================
# Reminder Repository
# =============================================================================


class ReminderRepository:
    """Repository for reminder configs and sent markers."""

    def __init__(self, session: Session):
        self.session = session

    def get_all(self) -> Sequence[Reminder]:
        stmt = select(Reminder).order_by(Reminder.created_at)
        return self.session.execute(stmt).scalars().all()

    def set(self, tender_id: str, thresholds: list[int]) -> Reminder:
        reminder = self.session.get(Reminder, tender_id)
        if reminder is None:
            reminder = Reminder(tender_id=tender_id, thresholds=thresholds)
            self.session.add(reminder)
        else:
            reminder.thresholds = thresholds
        self.session.flush()
        return reminder

    def remove(self, tender_id: str) -> bool:
        """Delete a reminder and its sent markers."""
        reminder = self.session.get(Reminder, tender_id)
        self.session.execute(delete(SentReminder).where(SentReminder.tender_id == tender_id))
        if reminder is None:
            return False
        self.session.delete(reminder)
        return True

    def sent_markers(self) -> set[tuple[str, int]]:
        stmt = select(SentReminder.tender_id, SentReminder.threshold_days)
        return {(row[0], row[1]) for row in self.session.execute(stmt).all()}

    def add_marker(self, tender_id: str, threshold_days: int) -> bool:
        if self.session.get(SentReminder, (tender_id, threshold_days)) is not None:
            return False
        self.session.add(SentReminder(tender_id=tender_id, threshold_days=threshold_days))
        self.session.flush()
        return True


# =============================================================================
# Source Setting Repository
# =============================================================================


class SourceSettingRepository:
    """Repository for persisted source toggles."""

    def __init__(self, session: Session):
        self.session = session

    def get_all(self) -> dict[str, bool]:
        rows = self.session.execute(select(SourceSetting)).scalars().all()
        return {row.source: row.enabled for row in rows}

    def set_many(self, mapping: dict[str, bool]) -> None:
        for source, enabled in mapping.items():
            setting = self.session.get(SourceSetting, source)
            if setting is None:
                self.session.add(SourceSetting(source=source, enabled=enabled))
            else:
                setting.enabled = enabled
        self.session.flush()
