"""
Profile model — what a setup run installs and configures.

A profile is an ordered list of step specs plus the paths of the files
the run manages. Profiles are loaded from YAML (the packaged
``default_profile.yml`` unless overridden) and validated here.
"""

from __future__ import annotations

from pathlib import Path

from pydantic import BaseModel, Field, model_validator


class ProfilePaths(BaseModel):
    """Managed file locations. ``~`` expands against the target home."""

    startup_file: str = "~/.bashrc"
    backup_file: str = "~/.bashrc.backup.original"
    aliases_file: str = "~/.bash_aliases"
    completions_dir: str = "~/.bash_completion.d"
    workdir: str = "~/repos"
    nvm_dir: str = "~/.nvm"
    state_dir: str = "~/.local/state/wslsetup"

    def resolve(self, home: Path) -> ResolvedPaths:
        """Expand every path against ``home``."""
        return ResolvedPaths(
            home=home,
            **{
                name: expand_home(value, home)
                for name, value in self.model_dump().items()
            },
        )


class ResolvedPaths(BaseModel):
    """Absolute paths for one run."""

    home: Path
    startup_file: Path
    backup_file: Path
    aliases_file: Path
    completions_dir: Path
    workdir: Path
    nvm_dir: Path
    state_dir: Path


class DetectRule(BaseModel):
    """How to tell that a step's tool is already installed."""

    command: str = ""     # executable name
    path: str = ""        # file or directory

    @model_validator(mode="after")
    def _one_probe(self) -> DetectRule:
        if bool(self.command) == bool(self.path):
            raise ValueError("detect needs exactly one of 'command' or 'path'")
        return self


class InstallMethod(BaseModel):
    """One way of installing a tool. The first usable method wins."""

    requires: list[str] = Field(default_factory=list)
    commands: list[str] = Field(default_factory=list)


class SectionSpec(BaseModel):
    """A named block to place in the startup file."""

    name: str
    body: str
    unless_contains: str = ""   # skip when the startup file already has this


class AliasSpec(BaseModel):
    name: str
    command: str


class CompletionSpec(BaseModel):
    """A generated completion script in the completions directory."""

    file: str
    command: str = ""       # shell command whose stdout is the script
    content: str = ""       # static script text
    completer: str = ""     # executable wired up with ``complete -C``
    for_command: str = ""   # command the completer serves
    requires: list[str] = Field(default_factory=list)

    @model_validator(mode="after")
    def _one_source(self) -> CompletionSpec:
        sources = [s for s in (self.command, self.content, self.completer) if s]
        if len(sources) != 1:
            raise ValueError(
                f"completion '{self.file}' needs exactly one of "
                "'command', 'content' or 'completer'"
            )
        if self.completer and not self.for_command:
            raise ValueError(f"completion '{self.file}' needs 'for_command'")
        return self


class StepSpec(BaseModel):
    """Declarative description of one setup step."""

    name: str
    label: str = ""
    detect: DetectRule | None = None
    methods: list[InstallMethod] = Field(default_factory=list)
    directories: list[str] = Field(default_factory=list)
    sections: list[SectionSpec] = Field(default_factory=list)
    aliases: list[AliasSpec] = Field(default_factory=list)
    source_aliases: bool = False
    completions: list[CompletionSpec] = Field(default_factory=list)
    version_command: str = ""

    @property
    def display_name(self) -> str:
        return self.label or self.name


class Profile(BaseModel):
    """A full setup profile."""

    name: str = "default"
    description: str = ""
    timeout: int | None = None
    paths: ProfilePaths = Field(default_factory=ProfilePaths)
    steps: list[StepSpec] = Field(default_factory=list)

    @model_validator(mode="after")
    def _unique_steps(self) -> Profile:
        seen: set[str] = set()
        for step in self.steps:
            if step.name in seen:
                raise ValueError(f"duplicate step name: {step.name}")
            seen.add(step.name)
        return self

    def get_step(self, name: str) -> StepSpec | None:
        for step in self.steps:
            if step.name == name:
                return step
        return None

    @property
    def step_names(self) -> list[str]:
        return [s.name for s in self.steps]


def expand_home(value: str, home: Path) -> Path:
    """Expand a leading ``~`` against ``home`` instead of the real one."""
    if value == "~":
        return home
    if value.startswith("~/"):
        return home / value[2:]
    return Path(value)
