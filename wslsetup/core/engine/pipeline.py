"""
Setup pipeline — the fail-fast orchestration loop.

A setup run is an ordered list of steps. Each step is asked whether its
tool is already present, installs it when absent, then configures it.
The first failed receipt halts the run: later steps are reported as not
run, and nothing already done is rolled back. Re-running is safe because
every step is idempotent.

Flow:
    steps → is_present? → install → configure → outcome → report
"""

from __future__ import annotations

import logging
import os
import shlex
import shutil
import subprocess
import time
import uuid
from abc import ABC, abstractmethod
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from datetime import UTC, datetime
from pathlib import Path

from wslsetup.adapters.registry import AdapterRegistry
from wslsetup.core.models.action import Action, Receipt
from wslsetup.core.models.profile import ResolvedPaths, expand_home
from wslsetup.core.services.startup_file import AliasFile, StartupFile

logger = logging.getLogger(__name__)

# Loads nvm (a shell function, not a binary) into every command's shell.
NVM_PREAMBLE = '[ -s "$NVM_DIR/nvm.sh" ] && . "$NVM_DIR/nvm.sh" >/dev/null 2>&1'

# A failing `curl` must fail `curl ... | sh`.
SHELL_PREAMBLE = f"{NVM_PREAMBLE}\nset -o pipefail"


# ── Context ─────────────────────────────────────────────────────


@dataclass
class StepContext:
    """Everything a step needs: paths, managed files and the registry."""

    paths: ResolvedPaths
    registry: AdapterRegistry
    operation_id: str = ""
    dry_run: bool = False
    stream_output: bool = False
    timeout: int | None = None
    startup: StartupFile = field(init=False)
    aliases: AliasFile = field(init=False)
    _counter: int = field(default=0, init=False, repr=False)

    def __post_init__(self) -> None:
        self.startup = StartupFile(self.paths.startup_file, self.paths.backup_file)
        self.aliases = AliasFile(self.paths.aliases_file)
        if not self.operation_id:
            self.operation_id = generate_operation_id()

    @property
    def home(self) -> Path:
        return self.paths.home

    @property
    def env(self) -> dict[str, str]:
        return {"HOME": str(self.paths.home), "NVM_DIR": str(self.paths.nvm_dir)}

    def expand(self, value: str) -> Path:
        """Resolve ``~`` and ``{workdir}``-style path placeholders."""
        names = {k: str(v) for k, v in self.paths.model_dump().items()}
        return expand_home(value.format_map(names), self.paths.home)

    def _next_id(self, step: str, kind: str) -> str:
        self._counter += 1
        return f"{self.operation_id}:{step}:{kind}-{self._counter}"

    def _dispatch(self, action: Action) -> Receipt:
        return self.registry.execute_action(
            action,
            working_dir=str(self.paths.home),
            env=self.env,
            timeout=self.timeout,
            dry_run=self.dry_run,
        )

    def run(
        self,
        step: str,
        command: str,
        capture: bool | None = None,
        max_output: int | None = None,
    ) -> Receipt:
        """Run a shell command for ``step`` through the registry."""
        params: dict = {
            "command": command,
            "preamble": SHELL_PREAMBLE,
            "capture": (not self.stream_output) if capture is None else capture,
        }
        if max_output is not None:
            params["max_output"] = max_output
        action = Action(
            id=self._next_id(step, "cmd"),
            adapter="shell",
            step=step,
            description=command,
            params=params,
        )
        return self._dispatch(action)

    def write_file(self, step: str, path: Path, content: str) -> Receipt:
        action = Action(
            id=self._next_id(step, "write"),
            adapter="filesystem",
            step=step,
            description=f"write {path}",
            params={"operation": "write", "path": str(path), "content": content},
        )
        return self._dispatch(action)

    def make_dir(self, step: str, path: Path) -> Receipt:
        action = Action(
            id=self._next_id(step, "mkdir"),
            adapter="filesystem",
            step=step,
            description=f"mkdir {path}",
            params={"operation": "mkdir", "path": str(path)},
        )
        return self._dispatch(action)

    def which(self, name: str) -> str | None:
        """Locate an executable or shell function.

        Checks PATH first, then asks a bash with nvm loaded, which is
        the only place node-managed tools (node, npm, corepack) exist
        before the user opens a new terminal.
        """
        found = shutil.which(name)
        if found:
            return found
        if not (self.paths.nvm_dir / "nvm.sh").is_file():
            return None
        bash = shutil.which("bash")
        if bash is None:
            return None
        try:
            result = subprocess.run(
                [bash, "-c", f"{NVM_PREAMBLE}\ncommand -v {shlex.quote(name)}"],
                capture_output=True,
                text=True,
                env={**os.environ, **self.env},
                timeout=30,
            )
        except (OSError, subprocess.TimeoutExpired) as e:
            logger.debug("Probe for %s failed: %s", name, e)
            return None
        if result.returncode != 0:
            return None
        return result.stdout.strip() or name

    def command_exists(self, name: str) -> bool:
        return self.which(name) is not None


# ── Steps ───────────────────────────────────────────────────────


class Step(ABC):
    """One unit of the setup run.

    Steps return receipts instead of raising. ``install`` only runs when
    ``is_present`` is False; ``configure`` runs every time and must be
    idempotent.
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Short identifier (e.g. 'starship')."""

    @property
    def label(self) -> str:
        return self.name

    @abstractmethod
    def is_present(self, ctx: StepContext) -> bool:
        """Whether the step's tool is already installed."""

    @abstractmethod
    def install(self, ctx: StepContext) -> Receipt:
        """Install the tool."""

    @abstractmethod
    def configure(self, ctx: StepContext) -> Receipt:
        """Apply configuration (sections, aliases, completions)."""

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} name={self.name!r}>"


# ── Results ─────────────────────────────────────────────────────


@dataclass
class StepOutcome:
    """Structured result of one step."""

    name: str
    label: str = ""
    ran: bool = True
    present_before: bool | None = None
    install: Receipt | None = None
    configure: Receipt | None = None
    duration_ms: int = 0

    @property
    def receipts(self) -> list[Receipt]:
        return [r for r in (self.install, self.configure) if r is not None]

    @property
    def failure(self) -> Receipt | None:
        for receipt in self.receipts:
            if receipt.failed:
                return receipt
        return None

    @property
    def failed(self) -> bool:
        return self.failure is not None

    @property
    def version(self) -> str | None:
        if self.configure is None:
            return None
        return self.configure.metadata.get("version")

    @property
    def status(self) -> str:
        if not self.ran:
            return "not_run"
        if self.failed:
            return "failed"
        if self.install is not None:
            if self.install.metadata.get("dry_run"):
                return "planned"
            if self.install.skipped:
                return "skipped"
            return "installed"
        return "present"

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "label": self.label,
            "status": self.status,
            "present_before": self.present_before,
            "version": self.version,
            "duration_ms": self.duration_ms,
            "install": self.install.model_dump(mode="json") if self.install else None,
            "configure": self.configure.model_dump(mode="json") if self.configure else None,
        }


@dataclass
class PipelineReport:
    """Result of a whole setup run."""

    operation_id: str = ""
    dry_run: bool = False
    outcomes: list[StepOutcome] = field(default_factory=list)
    halted_at: str | None = None
    duration_ms: int = 0

    @property
    def total(self) -> int:
        return len(self.outcomes)

    def _count(self, *statuses: str) -> int:
        return sum(1 for o in self.outcomes if o.status in statuses)

    @property
    def succeeded(self) -> int:
        return self._count("installed", "present", "planned")

    @property
    def failed(self) -> int:
        return self._count("failed")

    @property
    def skipped(self) -> int:
        return self._count("skipped")

    @property
    def not_run(self) -> int:
        return self._count("not_run")

    @property
    def all_ok(self) -> bool:
        return self.halted_at is None

    @property
    def status(self) -> str:
        return "ok" if self.all_ok else "failed"

    @property
    def failure(self) -> Receipt | None:
        for outcome in self.outcomes:
            if outcome.failure is not None:
                return outcome.failure
        return None

    @property
    def exit_code(self) -> int:
        """0 on success, else the failing command's exit status (or 1)."""
        failure = self.failure
        if failure is None:
            return 0
        code = failure.return_code
        if code is None or code == 0:
            return 1
        return code if 0 < code < 256 else 1

    def get(self, name: str) -> StepOutcome | None:
        for outcome in self.outcomes:
            if outcome.name == name:
                return outcome
        return None

    def to_dict(self) -> dict:
        return {
            "operation_id": self.operation_id,
            "dry_run": self.dry_run,
            "status": self.status,
            "halted_at": self.halted_at,
            "exit_code": self.exit_code,
            "total": self.total,
            "succeeded": self.succeeded,
            "failed": self.failed,
            "skipped": self.skipped,
            "not_run": self.not_run,
            "duration_ms": self.duration_ms,
            "steps": [o.to_dict() for o in self.outcomes],
        }


# ── Execution ───────────────────────────────────────────────────


def _crash_receipt(ctx: StepContext, step: Step, phase: str, exc: Exception) -> Receipt:
    return Receipt.failure(
        adapter="pipeline",
        action_id=f"{ctx.operation_id}:{step.name}:{phase}",
        error=f"{type(exc).__name__}: {exc}",
        metadata={"phase": phase, "exception": type(exc).__name__},
    )


def run_step(step: Step, ctx: StepContext) -> StepOutcome:
    """Check, install if absent, then configure one step."""
    outcome = StepOutcome(name=step.name, label=step.label)
    start = time.monotonic()

    try:
        outcome.present_before = step.is_present(ctx)
    except Exception as e:
        logger.error("Presence check for %s raised: %s", step.name, e)
        outcome.install = _crash_receipt(ctx, step, "detect", e)

    if outcome.present_before is False:
        try:
            outcome.install = step.install(ctx)
        except Exception as e:
            logger.error("Install of %s raised: %s", step.name, e)
            outcome.install = _crash_receipt(ctx, step, "install", e)

    if not outcome.failed:
        try:
            outcome.configure = step.configure(ctx)
        except Exception as e:
            logger.error("Configure of %s raised: %s", step.name, e)
            outcome.configure = _crash_receipt(ctx, step, "configure", e)

    outcome.duration_ms = int((time.monotonic() - start) * 1000)
    return outcome


def run_pipeline(
    steps: Iterable[Step],
    ctx: StepContext,
    on_step: Callable[[StepOutcome], None] | None = None,
    before_step: Callable[[Step], None] | None = None,
) -> PipelineReport:
    """Run steps in order, stopping at the first failure.

    Args:
        steps: Steps to run, in order.
        ctx: Shared step context.
        on_step: Called with each outcome as soon as it is known.
        before_step: Called just before a step runs.

    Returns:
        PipelineReport with one outcome per step, including the steps
        that never ran because of an earlier failure.
    """
    report = PipelineReport(operation_id=ctx.operation_id, dry_run=ctx.dry_run)
    start = time.monotonic()

    for step in steps:
        if report.halted_at is not None:
            outcome = StepOutcome(name=step.name, label=step.label, ran=False)
        else:
            logger.info("▶ %s", step.label)
            if before_step is not None:
                before_step(step)
            outcome = run_step(step, ctx)
            status_marker = "✗" if outcome.failed else "✓"
            logger.info("%s %s → %s", status_marker, step.name, outcome.status)
            if outcome.failed:
                report.halted_at = step.name
                logger.error("Setup halted at '%s': %s", step.name, outcome.failure.error)

        report.outcomes.append(outcome)
        if on_step is not None:
            on_step(outcome)

    report.duration_ms = int((time.monotonic() - start) * 1000)
    return report


def generate_operation_id() -> str:
    """Generate a unique operation ID."""
    now = datetime.now(UTC).strftime("%Y%m%d-%H%M%S")
    short = uuid.uuid4().hex[:6]
    return f"op-{now}-{short}"
