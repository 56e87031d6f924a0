"""
SQLAlchemy ORM models for TenderWatch.

Defines the database schema:
- Tenders: canonical listings keyed by (source, tender_id)
- Favorites, Notes, Tags, Priorities: user annotations on a tender
- Reminders and SentReminders: deadline reminder config and delivery log
- SourceSettings: persisted enable/disable toggles
"""

from __future__ import annotations

from datetime import datetime
from typing import Any

from sqlalchemy import (
    JSON,
    Boolean,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship

from ..core.normalize.dates import utcnow


def _naive_utcnow() -> datetime:
    # Stored naive; the gateway re-attaches UTC on read
    return utcnow().replace(tzinfo=None)


# =============================================================================
# Base Class
# =============================================================================


class Base(DeclarativeBase):
    """Base class for all ORM models."""

    type_annotation_map = {
        dict[str, Any]: JSON,
        list[int]: JSON,
    }


# =============================================================================
# Mixins
# =============================================================================


class TimestampMixin:
    """Mixin providing created_at and updated_at columns."""

    created_at: Mapped[datetime] = mapped_column(
        DateTime,
        default=_naive_utcnow,
        nullable=False,
    )
    updated_at: Mapped[datetime | None] = mapped_column(
        DateTime,
        default=None,
        onupdate=_naive_utcnow,
        nullable=True,
    )


# =============================================================================
# Tender Model
# =============================================================================


class TenderRecord(Base, TimestampMixin):
    """Persisted tender listing."""

    __tablename__ = "tenders"

    pk: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    source: Mapped[str] = mapped_column(String(20), nullable=False, index=True)
    tender_id: Mapped[str] = mapped_column(String(200), nullable=False)

    title: Mapped[str] = mapped_column(String(1000), nullable=False)
    normalized_title: Mapped[str] = mapped_column(String(1000), nullable=False, index=True)
    description: Mapped[str] = mapped_column(Text, nullable=False, default="")
    category: Mapped[str] = mapped_column(String(500), nullable=False, default="")
    buyer: Mapped[str] = mapped_column(String(500), nullable=False, default="")
    location: Mapped[str] = mapped_column(String(500), nullable=False, default="")
    price: Mapped[str] = mapped_column(String(200), nullable=False, default="")
    link: Mapped[str] = mapped_column(String(2000), nullable=False, default="")
    notice_type: Mapped[str] = mapped_column(String(200), nullable=False, default="")
    status: Mapped[str] = mapped_column(String(100), nullable=False, default="")

    deadline: Mapped[datetime | None] = mapped_column(DateTime, nullable=True, index=True)
    published_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    scraped_at: Mapped[datetime] = mapped_column(DateTime, nullable=False)

    id_is_stable: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    favorite: Mapped["Favorite | None"] = relationship(
        "Favorite",
        back_populates="tender",
        cascade="all, delete-orphan",
        uselist=False,
    )
    notes: Mapped[list["Note"]] = relationship(
        "Note",
        back_populates="tender",
        cascade="all, delete-orphan",
    )
    tags: Mapped[list["Tag"]] = relationship(
        "Tag",
        back_populates="tender",
        cascade="all, delete-orphan",
    )
    priority: Mapped["Priority | None"] = relationship(
        "Priority",
        back_populates="tender",
        cascade="all, delete-orphan",
        uselist=False,
    )

    __table_args__ = (
        UniqueConstraint("source", "tender_id", name="uq_tender_source_id"),
        Index("ix_tender_source_title", "source", "normalized_title"),
    )

    def __repr__(self) -> str:
        return f"<TenderRecord(source='{self.source}', tender_id='{self.tender_id}', title='{self.title[:50]}')>"


# =============================================================================
# User Annotation Models
# =============================================================================


class Favorite(Base):
    """Tender marked as favorite."""

    __tablename__ = "favorites"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    tender_pk: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("tenders.pk", ondelete="CASCADE"),
        nullable=False,
        unique=True,
    )
    created_at: Mapped[datetime] = mapped_column(DateTime, default=_naive_utcnow, nullable=False)

    tender: Mapped["TenderRecord"] = relationship("TenderRecord", back_populates="favorite")


class Note(Base, TimestampMixin):
    """Free-text note on a tender."""

    __tablename__ = "notes"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    tender_pk: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("tenders.pk", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    body: Mapped[str] = mapped_column(Text, nullable=False)

    tender: Mapped["TenderRecord"] = relationship("TenderRecord", back_populates="notes")


class Tag(Base):
    """Label attached to a tender."""

    __tablename__ = "tags"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    tender_pk: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("tenders.pk", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    name: Mapped[str] = mapped_column(String(100), nullable=False)

    tender: Mapped["TenderRecord"] = relationship("TenderRecord", back_populates="tags")

    __table_args__ = (
        UniqueConstraint("tender_pk", "name", name="uq_tag_tender_name"),
    )


class Priority(Base):
    """Priority level (low/medium/high) of a tender."""

    __tablename__ = "priorities"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    tender_pk: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("tenders.pk", ondelete="CASCADE"),
        nullable=False,
        unique=True,
    )
    level: Mapped[str] = mapped_column(String(20), nullable=False, default="medium")

    tender: Mapped["TenderRecord"] = relationship("TenderRecord", back_populates="priority")


# =============================================================================
# Reminder Models
# =============================================================================


class Reminder(Base):
    """Deadline reminder configuration for one tender."""

    __tablename__ = "reminders"

    tender_id: Mapped[str] = mapped_column(String(200), primary_key=True)
    thresholds: Mapped[list[int]] = mapped_column(JSON, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=_naive_utcnow, nullable=False)

    def __repr__(self) -> str:
        return f"<Reminder(tender_id='{self.tender_id}', thresholds={self.thresholds})>"


class SentReminder(Base):
    """Delivery marker: one row per (tender, threshold) ever sent."""

    __tablename__ = "sent_reminders"

    tender_id: Mapped[str] = mapped_column(String(200), primary_key=True)
    threshold_days: Mapped[int] = mapped_column(Integer, primary_key=True)
    sent_at: Mapped[datetime] = mapped_column(DateTime, default=_naive_utcnow, nullable=False)


# =============================================================================
# Settings Models
# =============================================================================


class SourceSetting(Base, TimestampMixin):
    """Persisted enable flag for a source."""

    __tablename__ = "source_settings"

    source: Mapped[str] = mapped_column(String(20), primary_key=True)
    enabled: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
