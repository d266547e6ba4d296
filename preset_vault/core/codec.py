"""Import/Export codec for the preset envelope (format version 1).

Envelope shape::

    {
      "format": "form-preset",
      "formatVersion": 1,
      "exportedAt": "2026-01-01T12:00:00Z",
      "preset": {"name", "category"?, "description"?, "snapshotVersion", "snapshot"},
      "revisions"?: [{"version", "snapshot", "createdAt"}]
    }

Unknown keys are tolerated at every level and ``snapshot`` values are never
inspected.
"""

from __future__ import annotations

import json
from collections.abc import Mapping, Sequence
from datetime import datetime, timezone
from typing import Annotated, Any, Literal

from pydantic import AfterValidator, BaseModel, ConfigDict, Field, StringConstraints
from pydantic import ValidationError as SchemaError

from preset_vault.core.errors import ImportRevisionLimitError, ImportTooLargeError, InvalidImportError
from preset_vault.db.models import MAX_INTEGER, Preset, PresetRevision

FORMAT_NAME = "form-preset"
FORMAT_VERSION = 1

NameStr = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1, max_length=120)]
CategoryStr = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1, max_length=80)]
DescriptionStr = Annotated[str, StringConstraints(strip_whitespace=True, max_length=2000)]
Version = Annotated[int, Field(strict=True, ge=1, le=MAX_INTEGER)]


def _not_null(value: Any) -> Any:
    if value is None:
        raise ValueError("snapshot must not be null")
    return value


Snapshot = Annotated[Any, AfterValidator(_not_null)]


class EnvelopePreset(BaseModel):
    model_config = ConfigDict(extra="allow", populate_by_name=True)

    name: NameStr
    category: CategoryStr | None = None
    description: DescriptionStr | None = None
    snapshot_version: Version = Field(alias="snapshotVersion")
    snapshot: Snapshot


class EnvelopeRevision(BaseModel):
    model_config = ConfigDict(extra="allow", populate_by_name=True)

    version: Version
    snapshot: Snapshot
    created_at: datetime | None = Field(default=None, alias="createdAt")


class PresetEnvelope(BaseModel):
    model_config = ConfigDict(extra="allow", populate_by_name=True)

    format: Literal["form-preset"]
    format_version: Literal[1] = Field(alias="formatVersion")
    exported_at: datetime = Field(alias="exportedAt")
    preset: EnvelopePreset
    revisions: list[EnvelopeRevision] | None = None


def _isoformat(value: datetime) -> str:
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).isoformat().replace("+00:00", "Z")


def _schema_issues(exc: SchemaError) -> list[dict[str, str]]:
    return [
        {
            "path": ".".join(str(p) for p in err["loc"]),
            "code": err["type"],
            "message": err["msg"],
        }
        for err in exc.errors()
    ]


def encode_envelope(
    preset: Preset,
    revisions: Sequence[PresetRevision] | None = None,
    exported_at: datetime | None = None,
) -> dict[str, Any]:
    """Build the export document for a preset.

    ``revisions`` must already be ordered ascending by version; ``None``
    leaves the key out entirely.
    """
    body: dict[str, Any] = {"name": preset.name}
    if preset.category:
        body["category"] = preset.category
    if preset.description is not None:
        body["description"] = preset.description
    body["snapshotVersion"] = preset.snapshot_version
    body["snapshot"] = preset.snapshot

    envelope: dict[str, Any] = {
        "format": FORMAT_NAME,
        "formatVersion": FORMAT_VERSION,
        "exportedAt": _isoformat(exported_at or datetime.now(timezone.utc)),
        "preset": body,
    }
    if revisions is not None:
        envelope["revisions"] = [
            {
                "version": r.version,
                "snapshot": r.snapshot,
                "createdAt": _isoformat(r.created_at),
            }
            for r in revisions
        ]
    return envelope


def dump_envelope(envelope: Mapping[str, Any]) -> str:
    """Serialize an envelope the way it is offered for download."""
    return json.dumps(envelope, indent=2, ensure_ascii=False)


def export_filename(preset_id: int, when: datetime | None = None) -> str:
    when = when or datetime.now(timezone.utc)
    return f"preset-{preset_id}-{when:%Y%m%d-%H%M}.json"


def payload_size(payload: bytes | str | Mapping[str, Any]) -> int:
    """Serialized size in bytes (UTF-8). Mappings are measured in compact JSON."""
    if isinstance(payload, bytes):
        return len(payload)
    if isinstance(payload, str):
        return len(payload.encode("utf-8"))
    try:
        return len(json.dumps(payload, separators=(",", ":"), ensure_ascii=False).encode("utf-8"))
    except (TypeError, ValueError, RecursionError) as exc:
        raise InvalidImportError("Import payload is not JSON-serializable") from exc


def decode_envelope(
    payload: bytes | str | Mapping[str, Any],
    max_bytes: int,
    max_revisions: int,
) -> PresetEnvelope:
    """Validate an incoming envelope.

    Order matters: the byte ceiling is enforced before anything is parsed,
    the revision ceiling before the schema.
    """
    size = payload_size(payload)
    if size > max_bytes:
        raise ImportTooLargeError(
            f"Import JSON too large (max {max_bytes} bytes)",
            {"max_bytes": max_bytes, "size": size},
        )

    if isinstance(payload, Mapping):
        data: Any = payload
    else:
        try:
            data = json.loads(payload)
        except (ValueError, RecursionError) as exc:
            raise InvalidImportError("Invalid JSON") from exc

    if not isinstance(data, Mapping):
        raise InvalidImportError("Import JSON must be an object")

    raw_revisions = data.get("revisions")
    if isinstance(raw_revisions, list) and len(raw_revisions) > max_revisions:
        raise ImportRevisionLimitError(
            f"Too many revisions (max {max_revisions})",
            {"max_revisions": max_revisions, "count": len(raw_revisions)},
        )

    try:
        envelope = PresetEnvelope.model_validate(dict(data))
    except SchemaError as exc:
        raise InvalidImportError(
            "Import JSON does not match schema",
            {"issues": _schema_issues(exc)},
        ) from exc

    seen: set[int] = set()
    for revision in envelope.revisions or []:
        if revision.version in seen:
            raise InvalidImportError(
                f"Duplicate revision version in import: {revision.version}",
                {"version": revision.version},
            )
        seen.add(revision.version)
        if revision.version >= envelope.preset.snapshot_version:
            raise InvalidImportError(
                f"Revision version {revision.version} must be lower than "
                f"snapshotVersion {envelope.preset.snapshot_version}",
                {"version": revision.version},
            )

    return envelope
