"""SQLAlchemy ORM models.

``Preset`` and ``PresetRevision`` are owned by this service. ``Form`` and
``FormField`` mirror the form editor's tables and are only ever read.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

from sqlalchemy import JSON, Boolean, CheckConstraint, DateTime, ForeignKey, Index, Integer, String, Text, UniqueConstraint
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship

JSONDocument = JSON().with_variant(JSONB(), "postgresql")

# Largest value an INTEGER column holds.
MAX_INTEGER = 2**31 - 1


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Base(DeclarativeBase):
    pass


class Preset(Base):
    """Mutable head of a lineage: the live snapshot plus its version number."""

    __tablename__ = "presets"
    __table_args__ = (
        CheckConstraint("snapshot_version >= 1", name="ck_presets_snapshot_version_positive"),
        Index("ix_presets_tenant_updated", "tenant_id", "updated_at"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    tenant_id: Mapped[int] = mapped_column(Integer, nullable=False, index=True)
    name: Mapped[str] = mapped_column(String(120), nullable=False)
    category: Mapped[str] = mapped_column(String(80), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    snapshot_version: Mapped[int] = mapped_column(Integer, nullable=False)
    snapshot: Mapped[Any] = mapped_column(JSONDocument, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow, onupdate=_utcnow, nullable=False
    )

    revisions: Mapped[list[PresetRevision]] = relationship(
        back_populates="preset",
        cascade="all, delete-orphan",
        order_by="PresetRevision.version",
    )

    # Every UPDATE is conditional on the version that was read; the caller
    # sets the next value explicitly.
    __mapper_args__ = {
        "version_id_col": snapshot_version,
        "version_id_generator": False,
    }


class PresetRevision(Base):
    """Immutable archived payload of a preset at a past version."""

    __tablename__ = "preset_revisions"
    __table_args__ = (
        CheckConstraint("version >= 1", name="ck_preset_revisions_version_positive"),
        UniqueConstraint("preset_id", "version", name="uq_preset_revisions_preset_version"),
        Index("ix_preset_revisions_tenant_preset", "tenant_id", "preset_id"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    tenant_id: Mapped[int] = mapped_column(Integer, nullable=False)
    preset_id: Mapped[int] = mapped_column(ForeignKey("presets.id", ondelete="CASCADE"), nullable=False)
    version: Mapped[int] = mapped_column(Integer, nullable=False)
    snapshot: Mapped[Any] = mapped_column(JSONDocument, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow, nullable=False)
    created_by_user_id: Mapped[int | None] = mapped_column(Integer, nullable=True)

    preset: Mapped[Preset] = relationship(back_populates="revisions")


class Form(Base):
    """Read model of a form owned by the form editor."""

    __tablename__ = "forms"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    tenant_id: Mapped[int] = mapped_column(Integer, nullable=False, index=True)
    name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    title: Mapped[str | None] = mapped_column(String(255), nullable=True)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    status: Mapped[str | None] = mapped_column(String(32), nullable=True)
    config: Mapped[Any] = mapped_column(JSONDocument, nullable=True)

    fields: Mapped[list[FormField]] = relationship(
        back_populates="form",
        order_by="FormField.order",
    )


class FormField(Base):
    __tablename__ = "form_fields"
    __table_args__ = (
        Index("ix_form_fields_form_order", "form_id", "order"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    form_id: Mapped[int] = mapped_column(ForeignKey("forms.id", ondelete="CASCADE"), nullable=False)
    tenant_id: Mapped[int] = mapped_column(Integer, nullable=False)
    key: Mapped[str] = mapped_column(String(120), nullable=False)
    label: Mapped[str] = mapped_column(String(255), nullable=False)
    type: Mapped[str] = mapped_column(String(32), nullable=False, default="TEXT")
    placeholder: Mapped[str | None] = mapped_column(String(255), nullable=True)
    help_text: Mapped[str | None] = mapped_column(Text, nullable=True)
    required: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    order: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    config: Mapped[Any] = mapped_column(JSONDocument, nullable=True)

    form: Mapped[Form] = relationship(back_populates="fields")
