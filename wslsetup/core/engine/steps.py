"""
Profile steps — the Step implementation driven by profile YAML.

A ``StepSpec`` says how to detect a tool, how to install it (ordered
methods, first usable one wins), and what to configure afterwards:
directories, startup-file sections, aliases, completion scripts and a
version line for the summary.
"""

from __future__ import annotations

import logging

from wslsetup.core.engine.pipeline import Step, StepContext
from wslsetup.core.models.action import Receipt
from wslsetup.core.models.profile import CompletionSpec, InstallMethod, Profile, StepSpec
from wslsetup.core.services import sections
from wslsetup.core.services.startup_file import ensure_sourcing

logger = logging.getLogger(__name__)


class ProfileStep(Step):
    """A setup step described by a ``StepSpec``."""

    def __init__(self, spec: StepSpec):
        self._spec = spec

    @property
    def spec(self) -> StepSpec:
        return self._spec

    @property
    def name(self) -> str:
        return self._spec.name

    @property
    def label(self) -> str:
        return self._spec.display_name

    def _action_id(self, ctx: StepContext, phase: str) -> str:
        return f"{ctx.operation_id}:{self.name}:{phase}"

    # ── Detection ───────────────────────────────────────────────

    def is_present(self, ctx: StepContext) -> bool:
        if not self._spec.methods:
            return True  # configuration-only step
        detect = self._spec.detect
        if detect is None:
            return False
        if detect.command:
            return ctx.command_exists(detect.command)
        return ctx.expand(detect.path).exists()

    def select_method(self, ctx: StepContext) -> InstallMethod | None:
        """First method whose required executables are all available."""
        for method in self._spec.methods:
            missing = [r for r in method.requires if not ctx.command_exists(r)]
            if not missing:
                return method
            logger.debug("%s: method needs %s, trying next", self.name, ", ".join(missing))
        return None

    # ── Install ─────────────────────────────────────────────────

    def install(self, ctx: StepContext) -> Receipt:
        method = self.select_method(ctx)
        if method is None:
            needed = sorted({r for m in self._spec.methods for r in m.requires})
            reason = f"{' or '.join(needed)} not available, {self.label} installation skipped"
            logger.warning(reason)
            return Receipt.skip(
                adapter="step",
                action_id=self._action_id(ctx, "install"),
                reason=reason,
                metadata={"missing": needed},
            )

        outputs: list[str] = []
        for command in method.commands:
            receipt = ctx.run(self.name, command)
            if receipt.failed:
                return receipt
            if receipt.output:
                outputs.append(receipt.output)

        meta = {"commands": list(method.commands), "method_requires": list(method.requires)}
        if ctx.dry_run:
            return Receipt.skip(
                adapter="step",
                action_id=self._action_id(ctx, "install"),
                reason=f"[dry-run] would install {self.label}",
                metadata={**meta, "dry_run": True},
            )
        return Receipt.success(
            adapter="step",
            action_id=self._action_id(ctx, "install"),
            output="\n".join(outputs),
            metadata=meta,
        )

    # ── Configure ───────────────────────────────────────────────

    def configure(self, ctx: StepContext) -> Receipt:
        changes: list[str] = []

        for raw in self._spec.directories:
            path = ctx.expand(raw)
            receipt = ctx.make_dir(self.name, path)
            if receipt.failed:
                return receipt
            changes.append(f"directory {path}")

        for section in self._spec.sections:
            if section.unless_contains and ctx.startup.contains(section.unless_contains):
                changes.append(f"section '{section.name}' already configured")
                continue
            if ctx.dry_run:
                changes.append(f"would apply section '{section.name}'")
                continue
            change = ctx.startup.apply_section(section.name, section.body)
            verb = "replaced" if change.replaced else "added"
            changes.append(f"section '{section.name}' {verb}")
            if change.backup_created:
                changes.append(f"backup {ctx.startup.backup_path}")

        changes.extend(self._configure_aliases(ctx))

        for completion in self._spec.completions:
            result = self._write_completion(ctx, completion)
            if isinstance(result, Receipt):
                return result
            if result:
                changes.append(result)

        version = self._probe_version(ctx)

        return Receipt.success(
            adapter="step",
            action_id=self._action_id(ctx, "configure"),
            output="\n".join(changes),
            metadata={"changes": changes, "version": version, "dry_run": ctx.dry_run},
        )

    def _configure_aliases(self, ctx: StepContext) -> list[str]:
        changes: list[str] = []
        if ctx.dry_run:
            existing = ctx.aliases.read()
            for alias in self._spec.aliases:
                if not sections.has_alias(existing, alias.name):
                    changes.append(f"would add alias '{alias.name}'")
            if self._spec.source_aliases and not ctx.startup.contains(ctx.aliases.path.name):
                changes.append(f"would source {ctx.aliases.path.name}")
            return changes

        if self._spec.aliases or self._spec.source_aliases:
            ctx.aliases.ensure_exists()
        for alias in self._spec.aliases:
            if ctx.aliases.ensure_alias(alias.name, alias.command):
                changes.append(f"alias '{alias.name}' added")
            else:
                changes.append(f"alias '{alias.name}' already exists")
        if self._spec.source_aliases:
            if ensure_sourcing(ctx.startup, ctx.aliases.path, ctx.home):
                changes.append(f"{ctx.startup.path.name} now sources {ctx.aliases.path.name}")
        return changes

    def _write_completion(self, ctx: StepContext, completion: CompletionSpec) -> str | Receipt:
        """Regenerate one completion script; returns a change note or a failure.

        Generation failures are soft: the tool may not support completions
        in the installed version. Only a failed write halts the run.
        """
        missing = [r for r in completion.requires if not ctx.command_exists(r)]
        if missing:
            logger.debug("Skipping %s: %s not available", completion.file, ", ".join(missing))
            return ""

        target = ctx.paths.completions_dir / completion.file
        if completion.content:
            script = completion.content
        elif completion.completer:
            found = ctx.which(completion.completer)
            if found is None:
                logger.debug("Skipping %s: %s not found", completion.file, completion.completer)
                return ""
            script = f"complete -C '{found}' {completion.for_command}\n"
        else:
            generated = ctx.run(self.name, completion.command, capture=True, max_output=0)
            if generated.failed:
                logger.warning(
                    "Completion for %s not generated: %s", completion.file, generated.error
                )
                return ""
            if generated.skipped:
                return f"would write {target}"
            script = generated.output

        if not script.endswith("\n"):
            script += "\n"
        receipt = ctx.write_file(self.name, target, script)
        if receipt.failed:
            return receipt
        if receipt.skipped:
            return f"would write {target}"
        return f"completion {completion.file} written"

    def _probe_version(self, ctx: StepContext) -> str | None:
        if not self._spec.version_command or ctx.dry_run:
            return None
        receipt = ctx.run(self.name, self._spec.version_command, capture=True)
        if not receipt.ok or not receipt.output:
            return None
        return receipt.output.splitlines()[0].strip()


def build_steps(
    profile: Profile,
    only: list[str] | None = None,
    skip: list[str] | None = None,
) -> list[ProfileStep]:
    """Turn a profile into steps, honouring ``only``/``skip`` filters.

    Raises:
        ValueError: if a filter names a step the profile doesn't have.
    """
    known = set(profile.step_names)
    unknown = sorted({n for n in (only or []) + (skip or []) if n not in known})
    if unknown:
        raise ValueError(f"Unknown step(s): {', '.join(unknown)}")

    steps = []
    for spec in profile.steps:
        if only and spec.name not in only:
            continue
        if skip and spec.name in skip:
            continue
        steps.append(ProfileStep(spec))
    return steps
