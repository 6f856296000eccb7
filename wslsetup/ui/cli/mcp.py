"""
CLI commands for assistant tool servers (``mcp.json``).

Thin wrappers over ``wslsetup.core.services.mcp``.
"""

from __future__ import annotations

import json
import sys
from pathlib import Path

import click


def _load(mcp_file: str | None):
    from wslsetup.core.config.loader import ConfigError
    from wslsetup.core.services.mcp import load_mcp_servers

    try:
        return load_mcp_servers(Path(mcp_file) if mcp_file else None)
    except ConfigError as e:
        click.secho(f"❌ {e}", fg="red")
        sys.exit(1)


_file_option = click.option(
    "--file", "mcp_file",
    type=click.Path(dir_okay=False),
    default=None,
    help="MCP document (default: the bundled mcp.json).",
)


@click.group()
def mcp() -> None:
    """MCP — list and register assistant tool servers."""


@mcp.command("list")
@_file_option
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
def list_cmd(mcp_file: str | None, as_json: bool) -> None:
    """List the servers in the MCP document."""
    servers = _load(mcp_file)

    if as_json:
        click.echo(json.dumps({"mcpServers": {
            s.name: s.model_dump(exclude={"name"}) for s in servers
        }}, indent=2))
        return

    click.secho(f"🔌 {len(servers)} MCP server(s):", fg="cyan", bold=True)
    for server in servers:
        click.echo(f"   • {server.name}: {' '.join([server.command, *server.args])}")


@mcp.command("register")
@_file_option
@click.option(
    "--scope",
    type=click.Choice(["user", "local", "project"]),
    default="user",
    show_default=True,
    help="Scope passed to 'claude mcp add'.",
)
@click.option("--dry-run", is_flag=True, help="Show the commands without running them.")
@click.pass_context
def register(ctx: click.Context, mcp_file: str | None, scope: str, dry_run: bool) -> None:
    """Register each server with the Claude CLI.

    Servers the CLI already knows are skipped.
    """
    from wslsetup.adapters.registry import default_registry
    from wslsetup.core.config.loader import ConfigError
    from wslsetup.core.engine.pipeline import StepContext
    from wslsetup.core.services.mcp import ASSISTANT_CLI, register_servers
    from wslsetup.core.use_cases.status import resolve_paths

    servers = _load(mcp_file)
    try:
        _profile, paths = resolve_paths(ctx.obj.get("profile_path"), ctx.obj.get("home"))
    except ConfigError as e:
        click.secho(f"❌ {e}", fg="red")
        sys.exit(1)

    registry = default_registry()
    probe_ctx = StepContext(paths=paths, registry=registry, dry_run=True)
    if not probe_ctx.command_exists(ASSISTANT_CLI):
        click.secho(
            f"❌ '{ASSISTANT_CLI}' not found. Run: wslsetup run --only claude-code",
            fg="red",
        )
        sys.exit(1)

    receipts = register_servers(
        servers,
        registry,
        home=paths.home,
        scope=scope,
        dry_run=dry_run,
        nvm_dir=paths.nvm_dir,
    )

    for receipt in receipts:
        name = receipt.action_id.split(":")[1]
        if receipt.failed:
            click.secho(f"   ❌ {name}: {receipt.error}", fg="red")
        elif receipt.metadata.get("dry_run"):
            click.echo(f"   ⊘ [dry-run] {receipt.metadata.get('command', name)}")
        elif receipt.skipped:
            click.secho(f"   ⏭️  {name}: already registered", fg="yellow")
        else:
            click.secho(f"   ✅ {name} registered", fg="green")

    failed = next((r for r in receipts if r.failed), None)
    if failed is not None:
        sys.exit(failed.return_code or 1)
