"""API client for the Preset Vault REST API."""

from __future__ import annotations

import re
from typing import Any

import httpx

_FILENAME = re.compile(r'filename="?([^";]+)"?')


class PresetClientError(RuntimeError):
    """Non-2xx response from the API."""

    def __init__(self, status_code: int, detail: Any) -> None:
        self.status_code = status_code
        self.detail = detail
        super().__init__(f"API error ({status_code}): {detail}")


class PresetClient:
    """HTTP client wrapping all Preset Vault API endpoints."""

    def __init__(
        self,
        base_url: str = "http://localhost:8400",
        tenant_id: int | None = None,
        user_id: int | None = None,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        headers = {}
        if tenant_id is not None:
            headers["X-Tenant-ID"] = str(tenant_id)
        if user_id is not None:
            headers["X-User-ID"] = str(user_id)
        self._client = httpx.Client(
            base_url=f"{self.base_url}/api/v1",
            headers=headers,
            timeout=30,
            transport=transport,
        )

    def _check(self, resp: httpx.Response) -> httpx.Response:
        if resp.status_code >= 400:
            try:
                detail = resp.json().get("detail", resp.text)
            except ValueError:
                detail = resp.text
            raise PresetClientError(resp.status_code, detail)
        return resp

    def _handle(self, resp: httpx.Response) -> Any:
        return self._check(resp).json()

    # --- Presets ---

    def list_presets(self) -> list[dict]:
        return self._handle(self._client.get("/presets"))

    def get_preset(self, preset_id: int) -> dict:
        return self._handle(self._client.get(f"/presets/{preset_id}"))

    def create_preset(self, data: dict) -> dict:
        return self._handle(self._client.post("/presets", json=data))

    def update_preset(self, preset_id: int, form_id: int) -> dict:
        return self._handle(self._client.post(f"/presets/{preset_id}/update", json={"form_id": form_id}))

    def rollback(self, preset_id: int, target_version: int) -> dict:
        return self._handle(self._client.post(
            f"/presets/{preset_id}/rollback",
            json={"target_version": target_version},
        ))

    def delete_preset(self, preset_id: int) -> None:
        self._check(self._client.delete(f"/presets/{preset_id}"))

    # --- Revisions ---

    def list_revisions(self, preset_id: int) -> list[dict]:
        return self._handle(self._client.get(f"/presets/{preset_id}/revisions"))

    def get_revision(self, preset_id: int, version: int) -> dict:
        return self._handle(self._client.get(f"/presets/{preset_id}/revisions/{version}"))

    # --- Export / import ---

    def export_preset(self, preset_id: int, include_revisions: bool = False) -> tuple[str, str]:
        """Return ``(filename, json_text)`` of the downloaded envelope."""
        resp = self._check(self._client.get(
            f"/presets/{preset_id}/export",
            params={"include_revisions": str(include_revisions).lower()},
        ))
        match = _FILENAME.search(resp.headers.get("content-disposition", ""))
        filename = match.group(1) if match else f"preset-{preset_id}.json"
        return filename, resp.text

    def import_preset(self, payload: bytes) -> dict:
        return self._handle(self._client.post(
            "/presets/import",
            content=payload,
            headers={"Content-Type": "application/json"},
        ))
