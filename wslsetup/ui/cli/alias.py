"""
CLI commands for the alias file.

Thin wrappers over ``wslsetup.core.services.startup_file.AliasFile``.
"""

from __future__ import annotations

import json
import sys

import click


def _alias_file(ctx: click.Context):
    from wslsetup.core.config.loader import ConfigError
    from wslsetup.core.services.startup_file import AliasFile
    from wslsetup.core.use_cases.status import resolve_paths

    try:
        _profile, paths = resolve_paths(ctx.obj.get("profile_path"), ctx.obj.get("home"))
    except ConfigError as e:
        click.secho(f"❌ {e}", fg="red")
        sys.exit(1)
    return AliasFile(paths.aliases_file)


@click.group()
def alias() -> None:
    """Aliases — list and add shell aliases."""


@alias.command("list")
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def list_cmd(ctx: click.Context, as_json: bool) -> None:
    """List alias declarations."""
    aliases = _alias_file(ctx)
    found = aliases.aliases()

    if as_json:
        click.echo(json.dumps({
            "path": str(aliases.path),
            "exists": aliases.exists(),
            "aliases": [{"name": n, "command": c} for n, c in found],
        }, indent=2))
        return

    if not aliases.exists():
        click.secho(f"⚠️  {aliases.path} not found", fg="yellow")
        return

    click.secho(f"📋 Aliases in {aliases.path}:", fg="cyan", bold=True)
    if not found:
        click.echo("   No aliases found")
    for name, command in found:
        click.echo(f"   ✓ {name} = {command}")


@alias.command("add")
@click.argument("name")
@click.argument("command")
@click.pass_context
def add_cmd(ctx: click.Context, name: str, command: str) -> None:
    """Declare alias NAME for COMMAND unless NAME already exists.

    An existing alias is left untouched.
    """
    from wslsetup.core.services.sections import SectionError

    aliases = _alias_file(ctx)
    try:
        added = aliases.ensure_alias(name, command)
    except SectionError as e:
        click.secho(f"❌ {e}", fg="red")
        sys.exit(1)

    if added:
        click.secho(f"✅ Added alias '{name}' to {aliases.path}", fg="green")
    else:
        click.secho(f"⚠️  Alias '{name}' already exists, left unchanged", fg="yellow")
