"""Pydantic request/response models for the API."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from preset_vault.core.snapshot import snapshot_field_count
from preset_vault.db.models import MAX_INTEGER


# --- Presets ---


class PresetCreate(BaseModel):
    """Create a preset from a source form."""

    form_id: int = Field(..., ge=1, le=MAX_INTEGER)
    name: str = Field(..., min_length=1, max_length=120)
    category: str = Field(..., min_length=1, max_length=80)
    description: str | None = Field(default=None, max_length=2000)

    @field_validator("name", "category")
    @classmethod
    def _not_blank(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("must not be blank")
        return value


class PresetUpdate(BaseModel):
    """Refresh a preset from a source form."""

    form_id: int = Field(..., ge=1, le=MAX_INTEGER)


class RollbackRequest(BaseModel):
    """Make an archived revision live again."""

    target_version: int = Field(..., ge=1, le=MAX_INTEGER)


class RevisionSummary(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    version: int
    created_at: datetime
    created_by_user_id: int | None = None


class RevisionResponse(RevisionSummary):
    """Revision with its archived snapshot."""

    snapshot: Any


class PresetSummary(BaseModel):
    """Preset row for list views."""

    id: int
    name: str
    category: str
    description: str | None = None
    snapshot_version: int
    field_count: int = 0
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_preset(cls, preset: Any, **extra: Any) -> PresetSummary:
        return cls(
            id=preset.id,
            name=preset.name,
            category=preset.category,
            description=preset.description,
            snapshot_version=preset.snapshot_version,
            field_count=snapshot_field_count(preset.snapshot),
            created_at=preset.created_at,
            updated_at=preset.updated_at,
            **extra,
        )


class PresetResponse(PresetSummary):
    """Preset with its live snapshot and revision history (newest first)."""

    snapshot: Any
    revisions: list[RevisionSummary] = Field(default_factory=list)

    @classmethod
    def from_history(cls, preset: Any, revisions: list[Any]) -> PresetResponse:
        return cls.from_preset(
            preset,
            snapshot=preset.snapshot,
            revisions=[RevisionSummary.model_validate(r) for r in revisions],
        )


# --- Import ---


class ImportResponse(BaseModel):
    """Outcome of an envelope import."""

    model_config = ConfigDict(from_attributes=True)

    preset_id: int
    name: str
    snapshot_version: int
    imported_revisions_count: int
