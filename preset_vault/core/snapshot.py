"""Freezes a form definition into a storable snapshot document."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


@dataclass(frozen=True)
class FieldDefinition:
    """One field of a source form, as handed over by the form provider."""

    key: str
    label: str
    type: str
    placeholder: str | None = None
    help_text: str | None = None
    required: bool = False
    order: int = 0
    is_active: bool = True
    config: Any = None


@dataclass(frozen=True)
class FormDefinition:
    """A source form with its fields already in display order."""

    id: int
    tenant_id: int
    name: str | None = None
    title: str | None = None
    description: str | None = None
    status: str | None = None
    config: Any = None
    fields: list[FieldDefinition] = field(default_factory=list)


def _field_snapshot(f: FieldDefinition) -> dict[str, Any]:
    entry: dict[str, Any] = {
        "key": f.key,
        "label": f.label,
        "type": f.type,
        "placeholder": f.placeholder,
        "helpText": f.help_text,
        "required": f.required,
        "order": f.order,
        "isActive": f.is_active,
    }
    if f.config is not None:
        entry["config"] = f.config
    return entry


def build_snapshot(form: FormDefinition) -> dict[str, Any]:
    """Build the snapshot document for a form.

    Two sections: ``form`` (metadata) and ``fields`` (ordered). Values pass
    through untouched; no validation beyond this shape.
    """
    return {
        "form": {
            "name": form.name,
            "title": form.title,
            "description": form.description,
            "status": form.status,
            "config": form.config,
        },
        "fields": [_field_snapshot(f) for f in form.fields],
    }


def snapshot_field_count(snapshot: Any) -> int:
    """Number of fields in a snapshot of any shape; 0 if it has no field list."""
    if not isinstance(snapshot, dict):
        return 0
    fields = snapshot.get("fields")
    return len(fields) if isinstance(fields, list) else 0
