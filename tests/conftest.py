"""
Shared test fixtures and configuration.
"""

import textwrap
from pathlib import Path

import pytest

from wslsetup.adapters.mock import MockAdapter
from wslsetup.adapters.registry import AdapterRegistry
from wslsetup.adapters.shell.filesystem import FilesystemAdapter
from wslsetup.core.engine.pipeline import StepContext
from wslsetup.core.models.profile import ProfilePaths


@pytest.fixture
def home(tmp_path: Path) -> Path:
    """An empty home directory for one test."""
    path = tmp_path / "home"
    path.mkdir()
    return path


@pytest.fixture
def mock_shell() -> MockAdapter:
    """Stands in for the shell adapter; every command succeeds."""
    return MockAdapter(adapter_name="shell", default_output="")


@pytest.fixture
def registry(mock_shell: MockAdapter) -> AdapterRegistry:
    """Mock shell plus the real filesystem adapter."""
    reg = AdapterRegistry()
    reg.register(mock_shell)
    reg.register(FilesystemAdapter())
    return reg


@pytest.fixture
def step_ctx(home: Path, registry: AdapterRegistry) -> StepContext:
    return StepContext(
        paths=ProfilePaths().resolve(home),
        registry=registry,
        operation_id="op-test",
    )


@pytest.fixture
def config_profile(tmp_path: Path) -> Path:
    """A profile with configuration-only steps (nothing to install)."""
    content = textwrap.dedent("""\
        name: test-profile
        description: Configuration only
        steps:
          - name: shell-config
            label: Shell configuration
            directories:
              - "{workdir}"
            sections:
              - name: TEST SETUP
                body: |
                  export HISTSIZE=10000
                  shopt -s histappend
          - name: aliases
            label: Bash aliases
            aliases:
              - name: p
                command: pnpm
              - name: c
                command: clear
            source_aliases: true
          - name: completions
            label: Completions
            directories:
              - "{completions_dir}"
            completions:
              - file: git_enhancements
                content: |
                  alias g='git'
    """)
    path = tmp_path / "profile.yml"
    path.write_text(content)
    return path
