"""Where snapshots come from: the form editor's tables."""

from __future__ import annotations

from typing import Protocol

import structlog
from sqlalchemy import select
from sqlalchemy.orm import Session

from preset_vault.core.errors import FormNotFoundError, TenantMismatchError
from preset_vault.core.snapshot import FieldDefinition, FormDefinition
from preset_vault.db.models import Form, FormField

logger = structlog.get_logger()


class FormSource(Protocol):
    """Loads a form definition for a tenant.

    Raises ``FormNotFoundError`` when the form does not exist and
    ``TenantMismatchError`` when it belongs to another tenant.
    """

    def fetch(self, session: Session, tenant_id: int, form_id: int) -> FormDefinition: ...


class SqlFormSource:
    """Reads the form editor's tables inside the caller's session."""

    def fetch(self, session: Session, tenant_id: int, form_id: int) -> FormDefinition:
        form = session.get(Form, form_id)
        if form is None:
            raise FormNotFoundError(f"Form {form_id} not found", {"form_id": form_id})
        if form.tenant_id != tenant_id:
            logger.warning(
                "form.tenant_mismatch",
                form_id=form_id,
                tenant_id=tenant_id,
                owner_tenant_id=form.tenant_id,
            )
            raise TenantMismatchError(
                "Form does not belong to this tenant",
                resource="form",
                details={"form_id": form_id},
            )

        fields = session.scalars(
            select(FormField)
            .where(FormField.form_id == form.id, FormField.tenant_id == tenant_id)
            .order_by(FormField.order.asc(), FormField.id.asc())
        )
        return FormDefinition(
            id=form.id,
            tenant_id=form.tenant_id,
            name=form.name,
            title=form.title,
            description=form.description,
            status=form.status,
            config=form.config,
            fields=[
                FieldDefinition(
                    key=f.key,
                    label=f.label,
                    type=f.type,
                    placeholder=f.placeholder,
                    help_text=f.help_text,
                    required=f.required,
                    order=f.order,
                    is_active=f.is_active,
                    config=f.config,
                )
                for f in fields
            ],
        )
