"""Store layer for presets and their revisions.

Every method is tenant-scoped. A ``PresetStore`` is bound to one session, so
the caller decides whether it runs inside a transaction.
"""

from __future__ import annotations

from collections.abc import Iterable
from typing import Any

import structlog
from sqlalchemy import insert, select
from sqlalchemy.orm import Session

from preset_vault.core.errors import PresetNotFoundError, TenantMismatchError
from preset_vault.db.models import Preset, PresetRevision

logger = structlog.get_logger()


class PresetStore:
    """Store operations for presets and revisions."""

    def __init__(self, session: Session) -> None:
        self.session = session

    def get_preset(self, tenant_id: int, preset_id: int) -> Preset:
        """Load a preset, telling "absent" apart from "owned by another tenant"."""
        preset = self.session.get(Preset, preset_id)
        if preset is None:
            raise PresetNotFoundError(f"Preset {preset_id} not found", {"preset_id": preset_id})
        if preset.tenant_id != tenant_id:
            logger.warning(
                "preset.tenant_mismatch",
                preset_id=preset_id,
                tenant_id=tenant_id,
                owner_tenant_id=preset.tenant_id,
            )
            raise TenantMismatchError(
                "Preset does not belong to this tenant",
                resource="preset",
                details={"preset_id": preset_id},
            )
        return preset

    def list_presets(self, tenant_id: int) -> list[Preset]:
        """All presets of a tenant, most recently updated first."""
        stmt = (
            select(Preset)
            .where(Preset.tenant_id == tenant_id)
            .order_by(Preset.updated_at.desc(), Preset.id.desc())
        )
        return list(self.session.scalars(stmt))

    def add_preset(
        self,
        tenant_id: int,
        name: str,
        category: str,
        snapshot: Any,
        snapshot_version: int = 1,
        description: str | None = None,
    ) -> Preset:
        """Insert a new preset and flush so its id is assigned."""
        preset = Preset(
            tenant_id=tenant_id,
            name=name,
            category=category,
            description=description,
            snapshot_version=snapshot_version,
            snapshot=snapshot,
        )
        self.session.add(preset)
        self.session.flush()
        return preset

    def archive_revision(self, preset: Preset, user_id: int | None = None) -> PresetRevision:
        """Copy the preset's live payload into a revision at its current version.

        Flushes immediately so a uniqueness violation surfaces here, before
        the live row is touched.
        """
        revision = PresetRevision(
            tenant_id=preset.tenant_id,
            preset_id=preset.id,
            version=preset.snapshot_version,
            snapshot=preset.snapshot,
            created_by_user_id=user_id,
        )
        self.session.add(revision)
        self.session.flush()
        return revision

    def install_snapshot(self, preset: Preset, snapshot: Any) -> Preset:
        """Make ``snapshot`` live and advance the version by one.

        The UPDATE only matches if nobody else moved the version since it was read.
        """
        preset.snapshot = snapshot
        preset.snapshot_version = preset.snapshot_version + 1
        self.session.flush()
        return preset

    def bulk_insert_revisions(
        self,
        preset: Preset,
        revisions: Iterable[tuple[int, Any]],
        user_id: int | None = None,
    ) -> int:
        """Insert ``(version, snapshot)`` pairs for a preset in one statement."""
        rows = [
            {
                "tenant_id": preset.tenant_id,
                "preset_id": preset.id,
                "version": version,
                "snapshot": snapshot,
                "created_by_user_id": user_id,
            }
            for version, snapshot in revisions
        ]
        if not rows:
            return 0
        self.session.execute(insert(PresetRevision), rows)
        return len(rows)

    def get_revision(self, tenant_id: int, preset_id: int, version: int) -> PresetRevision | None:
        stmt = select(PresetRevision).where(
            PresetRevision.tenant_id == tenant_id,
            PresetRevision.preset_id == preset_id,
            PresetRevision.version == version,
        )
        return self.session.scalars(stmt).one_or_none()

    def list_revisions(
        self,
        tenant_id: int,
        preset_id: int,
        limit: int | None = None,
    ) -> list[PresetRevision]:
        """Revisions of a preset, highest version first."""
        stmt = (
            select(PresetRevision)
            .where(PresetRevision.tenant_id == tenant_id, PresetRevision.preset_id == preset_id)
            .order_by(PresetRevision.version.desc(), PresetRevision.id.desc())
        )
        if limit is not None:
            stmt = stmt.limit(limit)
        return list(self.session.scalars(stmt))

    def delete_preset(self, preset: Preset) -> None:
        """Delete a preset together with all of its revisions."""
        self.session.delete(preset)
        self.session.flush()
        logger.info("preset.deleted", preset_id=preset.id, tenant_id=preset.tenant_id)
