"""Preset Vault CLI — preset-vault command."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, BinaryIO

import click

from preset_vault.cli.client import PresetClient


def _format_table(rows: list[dict], columns: list[str]) -> str:
    """Simple table formatter."""
    if not rows:
        return "No results."
    widths = {c: len(c) for c in columns}
    for row in rows:
        for c in columns:
            widths[c] = max(widths[c], len(_cell(row.get(c))))

    header = "  ".join(c.upper().ljust(widths[c]) for c in columns)
    separator = "  ".join("-" * widths[c] for c in columns)
    lines = [header, separator]
    for row in rows:
        lines.append("  ".join(_cell(row.get(c)).ljust(widths[c]) for c in columns))
    return "\n".join(lines)


def _cell(value: Any) -> str:
    return "" if value is None else str(value)


@click.group()
@click.option("--api", default="http://localhost:8400", envvar="PRESET_VAULT_API", help="API base URL")
@click.option("--tenant", "tenant_id", type=int, required=True, envvar="PRESET_VAULT_TENANT", help="Tenant id")
@click.option("--user", "user_id", type=int, required=True, envvar="PRESET_VAULT_USER", help="Acting user id")
@click.option("--format", "output_format", type=click.Choice(["table", "json"]), default="table")
@click.pass_context
def cli(ctx: click.Context, api: str, tenant_id: int, user_id: int, output_format: str) -> None:
    """Preset Vault CLI — versioned form presets."""
    ctx.obj = PresetClient(base_url=api, tenant_id=tenant_id, user_id=user_id)
    ctx.meta["output_format"] = output_format


def _output(ctx: click.Context, data: Any, columns: list[str] | None = None) -> None:
    fmt = ctx.meta.get("output_format", "table")
    if fmt == "table" and isinstance(data, list) and columns:
        click.echo(_format_table(data, columns))
    else:
        click.echo(json.dumps(data, indent=2, default=str))


# --- Preset commands ---


@cli.group()
def preset() -> None:
    """Manage presets."""


@preset.command("list")
@click.pass_context
def preset_list(ctx: click.Context) -> None:
    """List presets, most recently updated first."""
    client: PresetClient = ctx.obj
    data = client.list_presets()
    _output(ctx, data, ["id", "name", "category", "snapshot_version", "field_count", "updated_at"])


@preset.command("show")
@click.argument("preset_id", type=int)
@click.pass_context
def preset_show(ctx: click.Context, preset_id: int) -> None:
    """Show a preset with its snapshot and revisions."""
    client: PresetClient = ctx.obj
    _output(ctx, client.get_preset(preset_id))


@preset.command("create")
@click.option("--form", "form_id", type=int, required=True, help="Source form id")
@click.option("--name", required=True)
@click.option("--category", required=True)
@click.option("--description", default=None)
@click.pass_context
def preset_create(
    ctx: click.Context, form_id: int, name: str, category: str, description: str | None
) -> None:
    """Create a preset from a form."""
    client: PresetClient = ctx.obj
    data: dict[str, Any] = {"form_id": form_id, "name": name, "category": category}
    if description is not None:
        data["description"] = description
    _output(ctx, client.create_preset(data))


@preset.command("update")
@click.argument("preset_id", type=int)
@click.option("--form", "form_id", type=int, required=True, help="Source form id")
@click.pass_context
def preset_update(ctx: click.Context, preset_id: int, form_id: int) -> None:
    """Refresh a preset from a form's current definition."""
    client: PresetClient = ctx.obj
    result = client.update_preset(preset_id, form_id)
    click.echo(f"Preset {preset_id} is now at version {result['snapshot_version']}")


@preset.command("rollback")
@click.argument("preset_id", type=int)
@click.argument("target_version", type=int)
@click.pass_context
def preset_rollback(ctx: click.Context, preset_id: int, target_version: int) -> None:
    """Restore the snapshot of an earlier version."""
    client: PresetClient = ctx.obj
    result = client.rollback(preset_id, target_version)
    click.echo(
        f"Rolled back preset {preset_id} to v{target_version}; "
        f"now at version {result['snapshot_version']}"
    )


@preset.command("revisions")
@click.argument("preset_id", type=int)
@click.option("--version", "version_num", type=int, default=None, help="Show one revision in full")
@click.pass_context
def preset_revisions(ctx: click.Context, preset_id: int, version_num: int | None) -> None:
    """List revisions, or show one with its snapshot."""
    client: PresetClient = ctx.obj
    if version_num is not None:
        _output(ctx, client.get_revision(preset_id, version_num))
        return
    data = client.list_revisions(preset_id)
    _output(ctx, data, ["version", "created_at", "created_by_user_id"])


@preset.command("export")
@click.argument("preset_id", type=int)
@click.option("--revisions/--no-revisions", "include_revisions", default=False)
@click.option("--output", "-o", "output", default=None, help="File to write, '-' for stdout")
@click.pass_context
def preset_export(ctx: click.Context, preset_id: int, include_revisions: bool, output: str | None) -> None:
    """Export a preset as a JSON envelope."""
    client: PresetClient = ctx.obj
    filename, text = client.export_preset(preset_id, include_revisions=include_revisions)
    if output == "-":
        click.echo(text)
        return
    target = Path(output or filename)
    target.write_text(text, encoding="utf-8")
    click.echo(f"Exported preset {preset_id} to {target}")


@preset.command("import")
@click.argument("source", type=click.File("rb"))
@click.pass_context
def preset_import(ctx: click.Context, source: BinaryIO) -> None:
    """Import an exported envelope as a new preset."""
    client: PresetClient = ctx.obj
    result = client.import_preset(source.read())
    click.echo(
        f"Imported preset {result['preset_id']} '{result['name']}' at version "
        f"{result['snapshot_version']} ({result['imported_revisions_count']} revisions)"
    )


@preset.command("delete")
@click.argument("preset_id", type=int)
@click.confirmation_option(prompt="Delete this preset and all of its revisions?")
@click.pass_context
def preset_delete(ctx: click.Context, preset_id: int) -> None:
    """Delete a preset and its history."""
    client: PresetClient = ctx.obj
    client.delete_preset(preset_id)
    click.echo(f"Deleted preset {preset_id}")


if __name__ == "__main__":
    cli()
