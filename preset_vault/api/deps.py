"""Request-scoped dependencies: caller identity."""

from __future__ import annotations

from dataclasses import dataclass

from fastapi import Header

from preset_vault.core.errors import UnauthorizedError
from preset_vault.db.models import MAX_INTEGER


@dataclass(frozen=True)
class AuthContext:
    tenant_id: int
    user_id: int


def _positive_int(value: str | None, header: str) -> int:
    if value is None or not value.strip():
        raise UnauthorizedError(f"Missing {header} header", {"header": header})
    try:
        parsed = int(value)
    except ValueError:
        raise UnauthorizedError(f"Invalid {header} header", {"header": header})
    if not 1 <= parsed <= MAX_INTEGER:
        raise UnauthorizedError(f"Invalid {header} header", {"header": header})
    return parsed


def get_auth_context(
    x_tenant_id: str | None = Header(default=None, alias="X-Tenant-ID"),
    x_user_id: str | None = Header(default=None, alias="X-User-ID"),
) -> AuthContext:
    """Resolve the calling tenant and user.

    Upstream auth is expected to have set both headers. Deployments with a
    real identity provider override this dependency.
    """
    return AuthContext(
        tenant_id=_positive_int(x_tenant_id, "X-Tenant-ID"),
        user_id=_positive_int(x_user_id, "X-User-ID"),
    )
