"""Test fixtures — in-memory SQLite database, form factory and API client."""

from __future__ import annotations

from typing import Any

import pytest
from fastapi.testclient import TestClient

from preset_vault.config import Settings
from preset_vault.core.sources import SqlFormSource
from preset_vault.core.versioning import PresetVersionManager
from preset_vault.db.client import Database
from preset_vault.db.models import Form, FormField

TENANT_ID = 1
OTHER_TENANT_ID = 2
USER_ID = 7

DEFAULT_FIELDS: list[dict[str, Any]] = [
    {"key": "full_name", "label": "Full name", "type": "TEXT", "required": True},
    {"key": "email", "label": "Email", "type": "EMAIL", "placeholder": "you@example.com"},
    {
        "key": "topic",
        "label": "Topic",
        "type": "SELECT",
        "config": {"options": ["sales", "support"]},
    },
]


class FormFactory:
    """Writes rows into the form editor's tables the way the editor would."""

    def __init__(self, db: Database) -> None:
        self.db = db

    def create(
        self,
        tenant_id: int = TENANT_ID,
        fields: list[dict[str, Any]] | None = None,
        **attrs: Any,
    ) -> int:
        with self.db.transaction() as session:
            form = Form(
                tenant_id=tenant_id,
                name=attrs.get("name", "contact"),
                title=attrs.get("title", "Contact us"),
                description=attrs.get("description"),
                status=attrs.get("status", "PUBLISHED"),
                config=attrs.get("config", {"theme": "light"}),
            )
            session.add(form)
            session.flush()
            for i, spec in enumerate(DEFAULT_FIELDS if fields is None else fields):
                session.add(self._field(form.id, tenant_id, i, spec))
            return form.id

    def add_field(self, form_id: int, key: str, label: str, **attrs: Any) -> None:
        with self.db.transaction() as session:
            form = session.get(Form, form_id)
            order = attrs.pop("order", 100 + len(form.fields))
            session.add(self._field(form_id, form.tenant_id, order, {"key": key, "label": label, **attrs}))

    def retitle(self, form_id: int, title: str) -> None:
        with self.db.transaction() as session:
            session.get(Form, form_id).title = title

    @staticmethod
    def _field(form_id: int, tenant_id: int, order: int, spec: dict[str, Any]) -> FormField:
        spec = dict(spec)
        return FormField(
            form_id=form_id,
            tenant_id=tenant_id,
            key=spec.pop("key"),
            label=spec.pop("label"),
            type=spec.pop("type", "TEXT"),
            order=spec.pop("order", order),
            **spec,
        )


@pytest.fixture
def db() -> Database:
    """Fresh in-memory database with the full schema."""
    database = Database("sqlite://")
    database.create_schema()
    yield database
    database.dispose()


@pytest.fixture
def form_factory():
    """The factory class, for tests that build their own database."""
    return FormFactory


@pytest.fixture
def forms(db) -> FormFactory:
    return FormFactory(db)


@pytest.fixture
def form_id(forms) -> int:
    return forms.create()


@pytest.fixture
def manager(db) -> PresetVersionManager:
    return PresetVersionManager(db, SqlFormSource(), max_import_bytes=64 * 1024, max_revisions=50)


@pytest.fixture
def make_preset(manager, form_id):
    """Create a preset for TENANT_ID, optionally advanced by ``updates`` form refreshes."""

    def _make(updates: int = 0, name: str = "Contact", category: str = "Support", fid: int | None = None):
        source = fid or form_id
        preset = manager.create_from_source(TENANT_ID, source, name=name, category=category)
        for _ in range(updates):
            manager.update_from_source(TENANT_ID, preset.id, source, user_id=USER_ID)
        return preset.id

    return _make


@pytest.fixture
def settings() -> Settings:
    return Settings(database_url="sqlite://", auto_create_schema=False, _env_file=None)


@pytest.fixture
def app(manager, settings):
    """FastAPI test app with the version manager bound to the test database."""
    from preset_vault.core.versioning import get_version_manager
    from preset_vault.main import create_app

    _app = create_app(settings)
    _app.dependency_overrides[get_version_manager] = lambda: manager

    yield _app

    _app.dependency_overrides.clear()


@pytest.fixture
def client(app) -> TestClient:
    """HTTP test client authenticated as TENANT_ID / USER_ID."""
    return TestClient(
        app,
        raise_server_exceptions=False,
        headers={"X-Tenant-ID": str(TENANT_ID), "X-User-ID": str(USER_ID)},
    )
