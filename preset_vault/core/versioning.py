"""Create, update, rollback, export and import for presets.

A preset's lineage is ``v1 .. v(n-1)`` as archived revisions plus ``vn`` as
the live payload on the preset row. Every mutation archives the live payload
at its current version, installs a new one and bumps the version by one, all
inside a single transaction. Rollback is just another forward step whose new
payload happens to be copied from an old revision.
"""

from __future__ import annotations

import copy
from collections.abc import Mapping
from dataclasses import dataclass
from functools import lru_cache
from typing import Any

import structlog

from preset_vault.config import get_settings
from preset_vault.core.codec import decode_envelope, encode_envelope
from preset_vault.core.conflicts import translate_conflicts
from preset_vault.core.errors import InvalidVersionError, RevisionNotFoundError
from preset_vault.core.snapshot import build_snapshot
from preset_vault.core.sources import FormSource, SqlFormSource
from preset_vault.db.client import Database, get_database
from preset_vault.db.models import Preset, PresetRevision
from preset_vault.db.preset_store import PresetStore

logger = structlog.get_logger()

DEFAULT_IMPORT_CATEGORY = "Imported"


@dataclass
class PresetHistory:
    """A preset together with its archived revisions, highest version first."""

    preset: Preset
    revisions: list[PresetRevision]


@dataclass
class ImportResult:
    preset_id: int
    name: str
    snapshot_version: int
    imported_revisions_count: int


class PresetVersionManager:
    """Owns version numbering and archival for presets."""

    def __init__(
        self,
        db: Database,
        forms: FormSource | None = None,
        max_import_bytes: int = 2 * 1024 * 1024,
        max_revisions: int = 50,
    ) -> None:
        self.db = db
        self.forms = forms or SqlFormSource()
        self.max_import_bytes = max_import_bytes
        self.max_revisions = max_revisions

    # --- Reads ---

    def list_presets(self, tenant_id: int) -> list[Preset]:
        """List a tenant's presets, most recently updated first."""
        with self.db.session() as session:
            return PresetStore(session).list_presets(tenant_id)

    def get_preset(self, tenant_id: int, preset_id: int) -> PresetHistory:
        """Get a preset with its revision list."""
        with self.db.session() as session:
            store = PresetStore(session)
            preset = store.get_preset(tenant_id, preset_id)
            return PresetHistory(preset, store.list_revisions(tenant_id, preset.id))

    def list_revisions(self, tenant_id: int, preset_id: int) -> list[PresetRevision]:
        with self.db.session() as session:
            store = PresetStore(session)
            preset = store.get_preset(tenant_id, preset_id)
            return store.list_revisions(tenant_id, preset.id)

    def get_revision(self, tenant_id: int, preset_id: int, version: int) -> PresetRevision:
        """Get one archived revision, snapshot included."""
        with self.db.session() as session:
            store = PresetStore(session)
            preset = store.get_preset(tenant_id, preset_id)
            revision = store.get_revision(tenant_id, preset.id, version)
        if revision is None:
            raise RevisionNotFoundError(
                f"Revision {version} not found",
                {"preset_id": preset_id, "version": version},
            )
        return revision

    # --- Mutations ---

    def create_from_source(
        self,
        tenant_id: int,
        form_id: int,
        name: str,
        category: str,
        description: str | None = None,
    ) -> Preset:
        """Create a preset at version 1 from a form's current definition."""
        with self.db.transaction() as session:
            form = self.forms.fetch(session, tenant_id, form_id)
            preset = PresetStore(session).add_preset(
                tenant_id=tenant_id,
                name=name,
                category=category,
                description=description,
                snapshot=build_snapshot(form),
            )

        logger.info(
            "preset.created",
            preset_id=preset.id,
            tenant_id=tenant_id,
            form_id=form_id,
            fields=len(form.fields),
        )
        return preset

    def update_from_source(
        self,
        tenant_id: int,
        preset_id: int,
        form_id: int,
        user_id: int | None = None,
    ) -> PresetHistory:
        """Replace the live snapshot with a fresh one built from a form.

        The previous payload is archived at the version it had.
        """
        with translate_conflicts("update", preset_id=preset_id, tenant_id=tenant_id):
            with self.db.transaction() as session:
                store = PresetStore(session)
                preset = store.get_preset(tenant_id, preset_id)
                form = self.forms.fetch(session, tenant_id, form_id)
                archived_version = preset.snapshot_version
                store.archive_revision(preset, user_id=user_id)
                store.install_snapshot(preset, build_snapshot(form))
                revisions = store.list_revisions(tenant_id, preset.id)

        logger.info(
            "preset.updated",
            preset_id=preset_id,
            tenant_id=tenant_id,
            form_id=form_id,
            archived_version=archived_version,
            version=preset.snapshot_version,
        )
        return PresetHistory(preset, revisions)

    def rollback(
        self,
        tenant_id: int,
        preset_id: int,
        target_version: int,
        user_id: int | None = None,
    ) -> PresetHistory:
        """Make an archived revision's snapshot live again.

        The lineage still moves forward: the replaced payload is archived at
        the current version and the preset gets a new, higher version.
        """
        with translate_conflicts("rollback", preset_id=preset_id, tenant_id=tenant_id):
            with self.db.transaction() as session:
                store = PresetStore(session)
                preset = store.get_preset(tenant_id, preset_id)

                if target_version == preset.snapshot_version:
                    raise InvalidVersionError(
                        "Cannot roll back to the current version",
                        {"current_version": preset.snapshot_version},
                    )

                target = store.get_revision(tenant_id, preset.id, target_version)
                if target is None:
                    raise RevisionNotFoundError(
                        f"Revision {target_version} not found",
                        {"preset_id": preset_id, "version": target_version},
                    )

                archived_version = preset.snapshot_version
                store.archive_revision(preset, user_id=user_id)
                store.install_snapshot(preset, copy.deepcopy(target.snapshot))
                revisions = store.list_revisions(tenant_id, preset.id)

        logger.info(
            "preset.rolled_back",
            preset_id=preset_id,
            tenant_id=tenant_id,
            target_version=target_version,
            archived_version=archived_version,
            version=preset.snapshot_version,
        )
        return PresetHistory(preset, revisions)

    def delete_preset(self, tenant_id: int, preset_id: int) -> None:
        """Delete a preset and its whole history."""
        with translate_conflicts("delete", preset_id=preset_id, tenant_id=tenant_id):
            with self.db.transaction() as session:
                store = PresetStore(session)
                store.delete_preset(store.get_preset(tenant_id, preset_id))

    # --- Export / import ---

    def export_preset(
        self,
        tenant_id: int,
        preset_id: int,
        include_revisions: bool = False,
    ) -> dict[str, Any]:
        """Export a preset as an envelope.

        Point-in-time read, no transaction. At most ``max_revisions`` of the
        most recent revisions are included, ascending by version.
        """
        with self.db.session() as session:
            store = PresetStore(session)
            preset = store.get_preset(tenant_id, preset_id)
            revisions = None
            if include_revisions:
                recent = store.list_revisions(tenant_id, preset.id, limit=self.max_revisions)
                revisions = list(reversed(recent))
            envelope = encode_envelope(preset, revisions)

        logger.info(
            "preset.exported",
            preset_id=preset_id,
            tenant_id=tenant_id,
            version=preset.snapshot_version,
            revisions=len(revisions) if revisions is not None else None,
        )
        return envelope

    def import_preset(
        self,
        tenant_id: int,
        payload: bytes | str | Mapping[str, Any],
        user_id: int | None = None,
    ) -> ImportResult:
        """Create a brand-new preset for ``tenant_id`` from an envelope.

        The envelope's version is kept verbatim; its revisions are re-hosted
        under the importing tenant and attributed to ``user_id``.
        """
        envelope = decode_envelope(payload, self.max_import_bytes, self.max_revisions)
        ordered = sorted(envelope.revisions or [], key=lambda r: r.version)

        with translate_conflicts("import", tenant_id=tenant_id):
            with self.db.transaction() as session:
                store = PresetStore(session)
                preset = store.add_preset(
                    tenant_id=tenant_id,
                    name=envelope.preset.name,
                    category=envelope.preset.category or DEFAULT_IMPORT_CATEGORY,
                    description=envelope.preset.description,
                    snapshot=envelope.preset.snapshot,
                    snapshot_version=envelope.preset.snapshot_version,
                )
                count = store.bulk_insert_revisions(
                    preset,
                    [(r.version, r.snapshot) for r in ordered],
                    user_id=user_id,
                )

        logger.info(
            "preset.imported",
            preset_id=preset.id,
            tenant_id=tenant_id,
            version=preset.snapshot_version,
            revisions=count,
        )
        return ImportResult(
            preset_id=preset.id,
            name=preset.name,
            snapshot_version=preset.snapshot_version,
            imported_revisions_count=count,
        )


@lru_cache
def get_version_manager() -> PresetVersionManager:
    """Get cached version manager instance."""
    settings = get_settings()
    return PresetVersionManager(
        get_database(),
        SqlFormSource(),
        max_import_bytes=settings.import_max_bytes,
        max_revisions=settings.import_max_revisions,
    )
