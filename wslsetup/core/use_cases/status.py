"""
Status use case — what the setup has put on this machine.

Reports the managed startup-file sections (with line numbers), the
alias declarations, the one-time backup and generated completion files.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

from wslsetup.adapters.registry import default_registry
from wslsetup.core.config.loader import ConfigError, load_profile, resolve_home
from wslsetup.core.engine.pipeline import StepContext
from wslsetup.core.engine.steps import ProfileStep
from wslsetup.core.models.profile import Profile, ResolvedPaths
from wslsetup.core.services.sections import SectionInfo
from wslsetup.core.services.startup_file import AliasFile, StartupFile


@dataclass
class StatusResult:
    """Snapshot of managed configuration."""

    profile: Profile | None = None
    paths: ResolvedPaths | None = None
    startup_exists: bool = False
    backup_exists: bool = False
    sections: list[SectionInfo] = field(default_factory=list)
    aliases_exists: bool = False
    aliases: list[tuple[str, str]] = field(default_factory=list)
    completions: list[str] = field(default_factory=list)
    error: str | None = None

    def to_dict(self) -> dict:
        if self.error:
            return {"error": self.error}
        assert self.paths is not None
        return {
            "profile": self.profile.name if self.profile else "",
            "startup_file": {
                "path": str(self.paths.startup_file),
                "exists": self.startup_exists,
                "sections": [
                    {"name": s.name, "start_line": s.start_line, "end_line": s.end_line}
                    for s in self.sections
                ],
            },
            "backup": {
                "path": str(self.paths.backup_file),
                "exists": self.backup_exists,
            },
            "aliases_file": {
                "path": str(self.paths.aliases_file),
                "exists": self.aliases_exists,
                "aliases": [{"name": n, "command": c} for n, c in self.aliases],
            },
            "completions": self.completions,
        }


def resolve_paths(
    profile_path: Path | None = None,
    home: Path | None = None,
) -> tuple[Profile, ResolvedPaths]:
    """Load the profile and resolve its paths.

    Raises:
        ConfigError: if the profile can't be loaded.
    """
    profile = load_profile(profile_path)
    return profile, profile.paths.resolve(resolve_home(home))


def step_presence(profile: Profile, paths: ResolvedPaths) -> list[dict]:
    """Whether each step's tool is present (read-only probes)."""
    ctx = StepContext(paths=paths, registry=default_registry(), dry_run=True)
    rows = []
    for spec in profile.steps:
        step = ProfileStep(spec)
        rows.append({
            "name": step.name,
            "label": step.label,
            "installs": bool(spec.methods),
            "present": step.is_present(ctx),
        })
    return rows


def get_status(
    profile_path: Path | None = None,
    home: Path | None = None,
) -> StatusResult:
    try:
        profile, paths = resolve_paths(profile_path, home)
    except ConfigError as e:
        return StatusResult(error=str(e))

    startup = StartupFile(paths.startup_file, paths.backup_file)
    aliases = AliasFile(paths.aliases_file)

    completions: list[str] = []
    if paths.completions_dir.is_dir():
        completions = sorted(p.name for p in paths.completions_dir.iterdir() if p.is_file())

    return StatusResult(
        profile=profile,
        paths=paths,
        startup_exists=startup.exists(),
        backup_exists=startup.has_backup(),
        sections=startup.sections(),
        aliases_exists=aliases.exists(),
        aliases=aliases.aliases(),
        completions=completions,
    )
