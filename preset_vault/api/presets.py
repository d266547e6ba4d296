"""Preset endpoints: CRUD, update-from-form, rollback, revisions, export and import."""

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends, Path, Query, Request, Response
from starlette.concurrency import run_in_threadpool

from preset_vault.api.deps import AuthContext, get_auth_context
from preset_vault.api.models import (
    ImportResponse,
    PresetCreate,
    PresetResponse,
    PresetSummary,
    PresetUpdate,
    RevisionResponse,
    RevisionSummary,
    RollbackRequest,
)
from preset_vault.core.codec import dump_envelope, export_filename
from preset_vault.core.errors import ImportTooLargeError
from preset_vault.core.versioning import PresetVersionManager, get_version_manager
from preset_vault.db.models import MAX_INTEGER

router = APIRouter()

RowId = Annotated[int, Path(le=MAX_INTEGER)]


@router.get("", response_model=list[PresetSummary])
def list_presets(
    auth: AuthContext = Depends(get_auth_context),
    manager: PresetVersionManager = Depends(get_version_manager),
) -> list[PresetSummary]:
    """List the tenant's presets, most recently updated first."""
    return [PresetSummary.from_preset(p) for p in manager.list_presets(auth.tenant_id)]


@router.post("", response_model=PresetResponse, status_code=201)
def create_preset(
    data: PresetCreate,
    auth: AuthContext = Depends(get_auth_context),
    manager: PresetVersionManager = Depends(get_version_manager),
) -> PresetResponse:
    """Create a preset at version 1 from a form."""
    preset = manager.create_from_source(
        tenant_id=auth.tenant_id,
        form_id=data.form_id,
        name=data.name,
        category=data.category,
        description=data.description,
    )
    return PresetResponse.from_history(preset, [])


@router.post("/import", response_model=ImportResponse, status_code=201)
async def import_preset(
    request: Request,
    auth: AuthContext = Depends(get_auth_context),
    manager: PresetVersionManager = Depends(get_version_manager),
) -> ImportResponse:
    """Import an exported envelope as a new preset.

    The body is read raw so the byte ceiling applies to what was sent, and
    an oversized declared ``Content-Length`` is refused before reading.
    """
    declared = request.headers.get("content-length", "")
    if declared.isdigit() and int(declared) > manager.max_import_bytes:
        raise ImportTooLargeError(
            f"Import JSON too large (max {manager.max_import_bytes} bytes)",
            {"max_bytes": manager.max_import_bytes, "size": int(declared)},
        )

    body = await request.body()
    result = await run_in_threadpool(manager.import_preset, auth.tenant_id, body, auth.user_id)
    return ImportResponse.model_validate(result)


@router.get("/{preset_id}", response_model=PresetResponse)
def get_preset(
    preset_id: RowId,
    auth: AuthContext = Depends(get_auth_context),
    manager: PresetVersionManager = Depends(get_version_manager),
) -> PresetResponse:
    """Get a preset with its live snapshot and revision list."""
    history = manager.get_preset(auth.tenant_id, preset_id)
    return PresetResponse.from_history(history.preset, history.revisions)


@router.delete("/{preset_id}", status_code=204)
def delete_preset(
    preset_id: RowId,
    auth: AuthContext = Depends(get_auth_context),
    manager: PresetVersionManager = Depends(get_version_manager),
) -> Response:
    """Delete a preset and all of its revisions."""
    manager.delete_preset(auth.tenant_id, preset_id)
    return Response(status_code=204)


@router.post("/{preset_id}/update", response_model=PresetResponse)
def update_preset(
    preset_id: RowId,
    data: PresetUpdate,
    auth: AuthContext = Depends(get_auth_context),
    manager: PresetVersionManager = Depends(get_version_manager),
) -> PresetResponse:
    """Archive the live snapshot and replace it with the form's current state."""
    history = manager.update_from_source(
        tenant_id=auth.tenant_id,
        preset_id=preset_id,
        form_id=data.form_id,
        user_id=auth.user_id,
    )
    return PresetResponse.from_history(history.preset, history.revisions)


@router.post("/{preset_id}/rollback", response_model=PresetResponse)
def rollback_preset(
    preset_id: RowId,
    data: RollbackRequest,
    auth: AuthContext = Depends(get_auth_context),
    manager: PresetVersionManager = Depends(get_version_manager),
) -> PresetResponse:
    """Make an archived revision live again under a new version number."""
    history = manager.rollback(
        tenant_id=auth.tenant_id,
        preset_id=preset_id,
        target_version=data.target_version,
        user_id=auth.user_id,
    )
    return PresetResponse.from_history(history.preset, history.revisions)


@router.get("/{preset_id}/revisions", response_model=list[RevisionSummary])
def list_revisions(
    preset_id: RowId,
    auth: AuthContext = Depends(get_auth_context),
    manager: PresetVersionManager = Depends(get_version_manager),
) -> list[RevisionSummary]:
    revisions = manager.list_revisions(auth.tenant_id, preset_id)
    return [RevisionSummary.model_validate(r) for r in revisions]


@router.get("/{preset_id}/revisions/{version}", response_model=RevisionResponse)
def get_revision(
    preset_id: RowId,
    version: RowId,
    auth: AuthContext = Depends(get_auth_context),
    manager: PresetVersionManager = Depends(get_version_manager),
) -> RevisionResponse:
    """Get one archived revision with its snapshot."""
    revision = manager.get_revision(auth.tenant_id, preset_id, version)
    return RevisionResponse.model_validate(revision)


@router.get("/{preset_id}/export")
def export_preset(
    preset_id: RowId,
    include_revisions: bool = Query(default=False),
    auth: AuthContext = Depends(get_auth_context),
    manager: PresetVersionManager = Depends(get_version_manager),
) -> Response:
    """Download a preset as a JSON envelope."""
    envelope = manager.export_preset(auth.tenant_id, preset_id, include_revisions=include_revisions)
    return Response(
        content=dump_envelope(envelope),
        media_type="application/json",
        headers={
            "Content-Disposition": f'attachment; filename="{export_filename(preset_id)}"',
            "Cache-Control": "no-store",
        },
    )
