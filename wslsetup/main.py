"""
wslsetup — CLI entrypoint.

Usage:
    wslsetup                 # run the full setup
    wslsetup run --dry-run
    wslsetup status
    python -m wslsetup.main --help
"""

from __future__ import annotations

import json
import os
import sys
from pathlib import Path

import click

from wslsetup import __version__
from wslsetup.core.observability.logging_config import (
    LOG_FILE_ENV_VAR,
    LOG_FILE_LEVEL_ENV_VAR,
    LOG_LEVEL_ENV_VAR,
    setup_logging,
)


@click.group(invoke_without_command=True)
@click.version_option(version=__version__, prog_name="wslsetup")
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose output.")
@click.option("--quiet", "-q", is_flag=True, help="Suppress non-essential output.")
@click.option("--debug", is_flag=True, help="Enable debug logging (very verbose).")
@click.option(
    "--profile",
    "-p",
    "profile_path",
    type=click.Path(exists=False, dir_okay=False),
    default=None,
    help="Profile YAML (default: WSLSETUP_PROFILE or the built-in profile).",
)
@click.option(
    "--home",
    "home",
    type=click.Path(exists=False, file_okay=False),
    default=None,
    help="Home directory to configure (default: WSLSETUP_HOME or your home).",
)
@click.pass_context
def cli(
    ctx: click.Context,
    verbose: bool,
    quiet: bool,
    debug: bool,
    profile_path: str | None,
    home: str | None,
) -> None:
    """wslsetup — install developer tools and configure bash, idempotently."""
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    ctx.obj["quiet"] = quiet
    ctx.obj["debug"] = debug
    ctx.obj["profile_path"] = Path(profile_path) if profile_path else None
    ctx.obj["home"] = Path(home) if home else None

    # ── Logging setup (once, at process start) ──────────────────
    if debug:
        level = "DEBUG"
    elif verbose:
        level = "INFO"
    elif quiet:
        level = "ERROR"
    else:
        level = os.environ.get(LOG_LEVEL_ENV_VAR, "WARNING")

    setup_logging(
        level=level,
        log_file=os.environ.get(LOG_FILE_ENV_VAR),
        log_file_level=os.environ.get(LOG_FILE_LEVEL_ENV_VAR),
    )

    # Bare `wslsetup` runs the whole setup
    if ctx.invoked_subcommand is None:
        ctx.invoke(run)


# ── Run ─────────────────────────────────────────────────────────


def _print_outcome(outcome, verbose: bool, installs: bool = True) -> None:
    """One status block per step, as each finishes."""
    if not outcome.ran:
        return

    status = outcome.status
    if status == "failed":
        failure = outcome.failure
        click.secho(f"   ❌ {outcome.label} failed", fg="red")
        if failure is not None and failure.error:
            for line in failure.error.splitlines()[-10:]:
                click.echo(f"     │ {line}")
        return

    if status == "installed":
        click.secho(f"   ✅ {outcome.label} installed", fg="green")
    elif status == "planned":
        click.secho(f"   ⊘ [dry-run] would install {outcome.label}", fg="yellow")
    elif status == "skipped" and outcome.install is not None:
        click.secho(f"   ⚠️  {outcome.install.output}", fg="yellow")
    elif outcome.install is None and installs:
        click.secho(f"   ✅ {outcome.label} is already installed", fg="green")

    if outcome.configure is not None:
        for change in outcome.configure.metadata.get("changes", []):
            click.echo(f"   ✅ {change}")
    if outcome.version:
        click.echo(f"   📋 {outcome.version}")
    if verbose and outcome.install is not None and outcome.install.output:
        for line in outcome.install.output.splitlines()[:10]:
            click.echo(f"     │ {line}")


@cli.command()
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.option("--dry-run", is_flag=True, help="Show what would happen, change nothing.")
@click.option("--only", "only", multiple=True, help="Run only these steps (repeatable).")
@click.option("--skip", "skip", multiple=True, help="Skip these steps (repeatable).")
@click.pass_context
def run(
    ctx: click.Context,
    as_json: bool = False,
    dry_run: bool = False,
    only: tuple[str, ...] = (),
    skip: tuple[str, ...] = (),
) -> None:
    """Install tools and apply shell configuration.

    Examples:

        wslsetup run

        wslsetup run --dry-run

        wslsetup run --only starship --only aliases
    """
    from wslsetup.core.use_cases.setup import run_setup

    quiet = ctx.obj.get("quiet", False)
    verbose = ctx.obj.get("verbose", False)
    chatty = not as_json and not quiet

    if chatty:
        mode_label = "[dry-run] " if dry_run else ""
        click.secho(f"🚀 {mode_label}Starting setup...", fg="cyan", bold=True)
        click.echo("=" * 50)

    installers: set[str] = set()

    def before(step) -> None:
        spec = getattr(step, "spec", None)
        if spec is not None and spec.methods:
            installers.add(step.name)
        if chatty:
            click.secho(f"\n📦 {step.label}...", bold=True)

    def after(outcome) -> None:
        if chatty:
            _print_outcome(outcome, verbose, installs=outcome.name in installers)

    result = run_setup(
        profile_path=ctx.obj.get("profile_path"),
        home=ctx.obj.get("home"),
        only=list(only) or None,
        skip=list(skip) or None,
        dry_run=dry_run,
        stream_output=chatty,
        before_step=before,
        on_step=after,
    )

    if as_json:
        click.echo(json.dumps(result.to_dict(), indent=2))
        sys.exit(result.exit_code)

    if result.error:
        click.secho(f"❌ {result.error}", fg="red")
        sys.exit(1)

    report = result.report
    assert report is not None

    click.echo()
    click.echo("=" * 50)
    if report.all_ok:
        done = "Dry run complete" if dry_run else "Setup completed successfully!"
        click.secho(f"🎉 {done}", fg="green", bold=True)
    else:
        click.secho(f"💥 Setup halted at '{report.halted_at}'", fg="red", bold=True)
        if report.not_run:
            click.echo(f"   {report.not_run} step(s) not run. Fix the error and run again;")
            click.echo("   completed steps are skipped or re-applied idempotently.")
    click.echo("=" * 50)
    click.echo(
        f"   Steps: {report.succeeded} ok, {report.skipped} skipped, "
        f"{report.failed} failed, {report.not_run} not run"
    )

    if report.all_ok and not dry_run and not quiet:
        _print_managed(ctx)
        click.echo()
        click.secho("🔄 Next steps:", bold=True)
        click.echo("   1. Restart your terminal or run: source ~/.bashrc")
        click.echo("   2. New terminals will start in your working directory")

    click.echo()
    if report.exit_code:
        sys.exit(report.exit_code)


def _print_managed(ctx: click.Context) -> None:
    from wslsetup.core.use_cases.status import get_status

    result = get_status(
        profile_path=ctx.obj.get("profile_path"),
        home=ctx.obj.get("home"),
    )
    if result.error:
        return
    assert result.paths is not None

    click.echo()
    click.secho(f"📋 Managed sections in {result.paths.startup_file}:", bold=True)
    if result.sections:
        for section in result.sections:
            click.echo(f"   {section.start_line}: {section.name}")
    else:
        click.echo("   No managed sections found")

    click.echo()
    click.secho(f"📋 Aliases in {result.paths.aliases_file}:", bold=True)
    if result.aliases:
        for name, command in result.aliases:
            click.echo(f"   ✓ {name} = {command}")
    elif result.aliases_exists:
        click.echo("   No aliases found")
    else:
        click.echo(f"   {result.paths.aliases_file.name} not found")

    if result.backup_exists:
        click.echo()
        click.echo(f"   Original startup file backed up to {result.paths.backup_file}")


# ── Status ──────────────────────────────────────────────────────


@cli.command()
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def status(ctx: click.Context, as_json: bool) -> None:
    """Show managed sections, aliases, backup and completions."""
    from wslsetup.core.use_cases.status import get_status

    result = get_status(
        profile_path=ctx.obj.get("profile_path"),
        home=ctx.obj.get("home"),
    )

    if as_json:
        click.echo(json.dumps(result.to_dict(), indent=2))
        sys.exit(1 if result.error else 0)

    if result.error:
        click.secho(f"❌ {result.error}", fg="red")
        sys.exit(1)

    assert result.paths is not None and result.profile is not None
    click.secho(f"\n📋 Profile: {result.profile.name}", fg="cyan", bold=True)

    marker = "" if result.startup_exists else " (missing)"
    click.secho(f"\n   Startup file: {result.paths.startup_file}{marker}", bold=True)
    if result.sections:
        for section in result.sections:
            click.echo(
                f"     • {section.name}  (lines {section.start_line}-{section.end_line})"
            )
    else:
        click.echo("     No managed sections found")

    backup = "✓" if result.backup_exists else "✗ not yet created"
    click.echo(f"   Backup: {result.paths.backup_file} {backup}")

    click.secho(f"\n   Aliases: {result.paths.aliases_file}", bold=True)
    if result.aliases:
        for name, command in result.aliases:
            click.echo(f"     • {name} = {command}")
    else:
        click.echo("     No aliases found")

    click.secho(f"\n   Completions: {result.paths.completions_dir}", bold=True)
    if result.completions:
        for name in result.completions:
            click.echo(f"     • {name}")
    else:
        click.echo("     No completion scripts")
    click.echo()


@cli.command()
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def steps(ctx: click.Context, as_json: bool) -> None:
    """List the profile's steps and whether each tool is present."""
    from wslsetup.core.config.loader import ConfigError
    from wslsetup.core.use_cases.status import resolve_paths, step_presence

    try:
        profile, paths = resolve_paths(ctx.obj.get("profile_path"), ctx.obj.get("home"))
    except ConfigError as e:
        click.secho(f"❌ {e}", fg="red")
        sys.exit(1)

    rows = step_presence(profile, paths)

    if as_json:
        click.echo(json.dumps({"profile": profile.name, "steps": rows}, indent=2))
        return

    click.secho(f"\n📋 {profile.name}: {len(rows)} steps", fg="cyan", bold=True)
    for row in rows:
        if not row["installs"]:
            click.echo(f"   ⚙️  {row['name']:<14} {row['label']} (configuration only)")
        elif row["present"]:
            click.secho(f"   ✓  {row['name']:<14} ", fg="green", nl=False)
            click.echo(row["label"])
        else:
            click.secho(f"   ✗  {row['name']:<14} ", fg="red", nl=False)
            click.echo(row["label"])
    click.echo()


# ── History ─────────────────────────────────────────────────────


@cli.command()
@click.option("-n", "count", default=10, show_default=True, help="Number of runs to show.")
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def history(ctx: click.Context, count: int, as_json: bool) -> None:
    """Show recent setup runs from the ledger."""
    from wslsetup.core.config.loader import ConfigError
    from wslsetup.core.persistence.audit import AuditWriter
    from wslsetup.core.use_cases.status import resolve_paths

    try:
        _profile, paths = resolve_paths(ctx.obj.get("profile_path"), ctx.obj.get("home"))
    except ConfigError as e:
        click.secho(f"❌ {e}", fg="red")
        sys.exit(1)

    entries = AuditWriter(state_dir=paths.state_dir).read_recent(count)

    if as_json:
        click.echo(json.dumps([e.model_dump(mode="json") for e in entries], indent=2))
        return

    if not entries:
        click.echo("No runs recorded yet.")
        return

    for entry in entries:
        color = "green" if entry.status == "ok" else "red"
        click.secho(f"   {entry.status:<6}", fg=color, nl=False)
        click.echo(
            f" {entry.timestamp}  {entry.operation_id}  "
            f"{entry.steps_succeeded}/{entry.steps_total} steps"
        )
        if entry.halted_at:
            click.echo(f"          halted at {entry.halted_at}")


# ── Sub-groups ──────────────────────────────────────────────────

from wslsetup.ui.cli.alias import alias  # noqa: E402
from wslsetup.ui.cli.mcp import mcp  # noqa: E402
from wslsetup.ui.cli.section import section  # noqa: E402

cli.add_command(section)
cli.add_command(alias)
cli.add_command(mcp)


if __name__ == "__main__":
    cli()
