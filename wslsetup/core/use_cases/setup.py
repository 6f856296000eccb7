"""
Setup use case — run a profile end to end.

Loads the profile, builds its steps, runs them through the fail-fast
pipeline and records the run in the ledger. The full vertical slice
from ``wslsetup`` on the command line to a configured machine.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path

from wslsetup.adapters.registry import AdapterRegistry, default_registry
from wslsetup.core.config.loader import ConfigError, load_profile, resolve_home
from wslsetup.core.engine.pipeline import (
    PipelineReport,
    Step,
    StepContext,
    StepOutcome,
    run_pipeline,
)
from wslsetup.core.engine.steps import build_steps
from wslsetup.core.models.profile import Profile
from wslsetup.core.persistence.audit import AuditEntry, AuditWriter

logger = logging.getLogger(__name__)


@dataclass
class SetupResult:
    """Result of a setup run."""

    report: PipelineReport | None = None
    profile: Profile | None = None
    home: Path | None = None
    audit_path: Path | None = None
    error: str | None = None

    @property
    def exit_code(self) -> int:
        if self.error:
            return 1
        return self.report.exit_code if self.report else 0

    def to_dict(self) -> dict:
        result: dict = {}
        if self.error:
            result["error"] = self.error
            return result

        result["profile"] = self.profile.name if self.profile else ""
        result["home"] = str(self.home)
        if self.report:
            result["report"] = self.report.to_dict()
        return result


def write_audit_entry(report: PipelineReport, profile: Profile, writer: AuditWriter) -> None:
    """Append a summary of ``report`` to the ledger."""
    errors = [o.failure.error for o in report.outcomes if o.failure and o.failure.error]
    writer.write(AuditEntry(
        operation_id=report.operation_id,
        operation_type="setup",
        profile=profile.name,
        status=report.status,
        exit_code=report.exit_code,
        steps_total=report.total,
        steps_succeeded=report.succeeded,
        steps_failed=report.failed,
        halted_at=report.halted_at,
        duration_ms=report.duration_ms,
        step_status={o.name: o.status for o in report.outcomes},
        errors=errors,
    ))


def run_setup(
    profile_path: Path | None = None,
    home: Path | None = None,
    only: list[str] | None = None,
    skip: list[str] | None = None,
    dry_run: bool = False,
    stream_output: bool = False,
    registry: AdapterRegistry | None = None,
    on_step: Callable[[StepOutcome], None] | None = None,
    before_step: Callable[[Step], None] | None = None,
) -> SetupResult:
    """Run the selected profile's steps against ``home``.

    Args:
        profile_path: Optional explicit profile YAML.
        home: Target home directory (default: flag/env/real home).
        only: Run just these steps.
        skip: Leave these steps out.
        dry_run: Report what would happen without changing anything.
        stream_output: Let installer output go straight to the terminal.
        registry: Optional pre-configured adapter registry.
        on_step: Progress callback, called once per step.
        before_step: Called just before each step runs.

    Returns:
        SetupResult with the pipeline report (or an error).
    """
    try:
        profile = load_profile(profile_path)
    except ConfigError as e:
        return SetupResult(error=str(e))

    target_home = resolve_home(home)
    try:
        steps = build_steps(profile, only=only, skip=skip)
    except ValueError as e:
        return SetupResult(profile=profile, home=target_home, error=str(e))

    paths = profile.paths.resolve(target_home)
    ctx = StepContext(
        paths=paths,
        registry=registry or default_registry(),
        dry_run=dry_run,
        stream_output=stream_output,
        timeout=profile.timeout,
    )

    logger.info(
        "Running profile '%s' (%d steps) for %s%s",
        profile.name, len(steps), target_home, " [dry-run]" if dry_run else "",
    )
    report = run_pipeline(steps, ctx, on_step=on_step, before_step=before_step)

    result = SetupResult(report=report, profile=profile, home=target_home)
    if not dry_run:
        writer = AuditWriter(state_dir=paths.state_dir)
        write_audit_entry(report, profile, writer)
        result.audit_path = writer.path

    return result
