"""Concurrent writers against a file-backed database.

Each scenario lets a competing transaction commit in the window between the
outer operation reading the preset and writing its changes.
"""

import pytest
from sqlalchemy import text

from preset_vault.core.errors import PresetConflictError
from preset_vault.core.sources import SqlFormSource
from preset_vault.core.versioning import PresetVersionManager
from preset_vault.db.client import Database

TENANT = 1


class InterleavingSource(SqlFormSource):
    """Runs ``competitor`` once, right after the preset was read."""

    def __init__(self, competitor):
        self.competitor = competitor
        self.fired = False

    def fetch(self, session, tenant_id, form_id):
        if not self.fired:
            self.fired = True
            self.competitor()
        return super().fetch(session, tenant_id, form_id)


@pytest.fixture
def file_db(tmp_path):
    database = Database(f"sqlite:///{tmp_path / 'vault.db'}")
    database.create_schema()
    yield database
    database.dispose()


@pytest.fixture
def seeded(file_db, form_factory):
    form_id = form_factory(file_db).create()
    plain = PresetVersionManager(file_db)
    preset = plain.create_from_source(TENANT, form_id, name="Shared", category="Ops")
    plain.update_from_source(TENANT, preset.id, form_id)
    return plain, preset.id, form_id


class TestConcurrentWriters:
    def test_competing_update_wins_and_loser_gets_conflict(self, file_db, seeded):
        plain, preset_id, form_id = seeded
        source = InterleavingSource(lambda: plain.update_from_source(TENANT, preset_id, form_id, user_id=1))
        racer = PresetVersionManager(file_db, source)

        with pytest.raises(PresetConflictError):
            racer.update_from_source(TENANT, preset_id, form_id, user_id=2)

        history = plain.get_preset(TENANT, preset_id)
        assert history.preset.snapshot_version == 3
        assert [r.version for r in history.revisions] == [2, 1]
        assert history.revisions[0].created_by_user_id == 1

    def test_competing_rollback_against_update(self, file_db, seeded):
        plain, preset_id, form_id = seeded
        source = InterleavingSource(lambda: plain.rollback(TENANT, preset_id, 1, user_id=1))
        racer = PresetVersionManager(file_db, source)

        with pytest.raises(PresetConflictError):
            racer.update_from_source(TENANT, preset_id, form_id, user_id=2)

        history = plain.get_preset(TENANT, preset_id)
        assert history.preset.snapshot_version == 3
        assert [r.version for r in history.revisions] == [2, 1]

    def test_version_moved_without_revision_is_stale(self, file_db, seeded):
        plain, preset_id, form_id = seeded

        def bump():
            with file_db.transaction() as session:
                session.execute(
                    text("UPDATE presets SET snapshot_version = snapshot_version + 1 WHERE id = :id"),
                    {"id": preset_id},
                )

        racer = PresetVersionManager(file_db, InterleavingSource(bump))
        with pytest.raises(PresetConflictError):
            racer.update_from_source(TENANT, preset_id, form_id)

        history = plain.get_preset(TENANT, preset_id)
        assert history.preset.snapshot_version == 3
        assert [r.version for r in history.revisions] == [1]

    def test_sequential_writers_do_not_conflict(self, file_db, seeded):
        plain, preset_id, form_id = seeded
        other = PresetVersionManager(file_db)
        plain.update_from_source(TENANT, preset_id, form_id)
        other.update_from_source(TENANT, preset_id, form_id)
        history = other.rollback(TENANT, preset_id, 2)
        assert history.preset.snapshot_version == 5
        assert [r.version for r in history.revisions] == [4, 3, 2, 1]
