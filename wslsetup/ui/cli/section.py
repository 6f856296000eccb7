"""
CLI commands for managed startup-file sections.

Thin wrappers over ``wslsetup.core.services.startup_file``.
"""

from __future__ import annotations

import json
import sys
from pathlib import Path

import click


def _resolve_paths(ctx: click.Context):
    """Load the profile's resolved paths or exit with the config error."""
    from wslsetup.core.config.loader import ConfigError
    from wslsetup.core.use_cases.status import resolve_paths

    try:
        _profile, paths = resolve_paths(ctx.obj.get("profile_path"), ctx.obj.get("home"))
    except ConfigError as e:
        click.secho(f"❌ {e}", fg="red")
        sys.exit(1)
    return paths


def _startup(ctx: click.Context):
    from wslsetup.core.services.startup_file import StartupFile

    paths = _resolve_paths(ctx)
    return StartupFile(paths.startup_file, paths.backup_file)


@click.group()
def section() -> None:
    """Sections — list, apply, remove managed startup-file blocks."""


@section.command("list")
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def list_cmd(ctx: click.Context, as_json: bool) -> None:
    """List managed sections with their line numbers."""
    startup = _startup(ctx)
    found = startup.sections()

    if as_json:
        click.echo(json.dumps({
            "path": str(startup.path),
            "sections": [
                {"name": s.name, "start_line": s.start_line, "end_line": s.end_line}
                for s in found
            ],
        }, indent=2))
        return

    click.secho(f"📋 Managed sections in {startup.path}:", fg="cyan", bold=True)
    if not found:
        click.echo("   No managed sections found")
        return
    for info in found:
        click.echo(f"   {info.start_line}: {info.name}")


@section.command("apply")
@click.argument("name")
@click.option("--body", default=None, help="Section body text.")
@click.option(
    "--file", "body_file",
    type=click.Path(exists=True, dir_okay=False),
    default=None,
    help="Read the section body from a file.",
)
@click.pass_context
def apply_cmd(ctx: click.Context, name: str, body: str | None, body_file: str | None) -> None:
    """Add or replace the NAME section at the end of the startup file.

    Examples:

        wslsetup section apply "MY PATHS" --body 'export PATH="$HOME/bin:$PATH"'

        wslsetup section apply "WORK" --file ~/work.sh
    """
    from wslsetup.core.services.sections import SectionError

    if (body is None) == (body_file is None):
        click.secho("❌ Give exactly one of --body or --file", fg="red")
        sys.exit(2)
    if body_file is not None:
        body = Path(body_file).read_text(encoding="utf-8")

    startup = _startup(ctx)
    try:
        change = startup.apply_section(name, body or "")
    except SectionError as e:
        click.secho(f"❌ {e}", fg="red")
        sys.exit(1)

    if change.backup_created:
        click.echo(f"   Original backed up to {startup.backup_path}")
    verb = "Replaced" if change.replaced else "Added"
    click.secho(f"✅ {verb} section '{name}' in {startup.path}", fg="green")


@section.command("remove")
@click.argument("name")
@click.pass_context
def remove_cmd(ctx: click.Context, name: str) -> None:
    """Remove the NAME section from the startup file."""
    from wslsetup.core.services.sections import SectionError

    startup = _startup(ctx)
    try:
        removed = startup.remove_section(name)
    except SectionError as e:
        click.secho(f"❌ {e}", fg="red")
        sys.exit(1)

    if removed:
        click.secho(f"✅ Removed section '{name}' from {startup.path}", fg="green")
    else:
        click.secho(f"⚠️  No section '{name}' in {startup.path}", fg="yellow")
