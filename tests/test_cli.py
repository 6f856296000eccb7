"""
Tests for CLI commands — run, status, steps, sections, aliases, mcp, history.
"""

import json
import textwrap
from pathlib import Path

from click.testing import CliRunner

from wslsetup.main import cli


def _invoke(home: Path, profile: Path, *args: str):
    runner = CliRunner()
    return runner.invoke(cli, ["--home", str(home), "--profile", str(profile), *args])


class TestCLIGlobal:
    """Tests for global CLI behavior."""

    def test_help(self):
        result = CliRunner().invoke(cli, ["--help"])
        assert result.exit_code == 0
        assert "install developer tools" in result.output
        for command in ("run", "status", "steps", "section", "alias", "mcp", "history"):
            assert command in result.output

    def test_version(self):
        result = CliRunner().invoke(cli, ["--version"])
        assert result.exit_code == 0
        assert "0.1.0" in result.output

    def test_missing_profile(self, home: Path, tmp_path: Path):
        result = _invoke(home, tmp_path / "missing.yml", "run")
        assert result.exit_code == 1
        assert "Profile not found" in result.output


class TestRunCommand:
    """Tests for the setup run."""

    def test_bare_invocation_runs_setup(self, home: Path, config_profile: Path):
        result = _invoke(home, config_profile)
        assert result.exit_code == 0, result.output
        assert "Setup completed successfully!" in result.output
        assert (home / "repos").is_dir()

    def test_run_twice_is_idempotent(self, home: Path, config_profile: Path):
        first = _invoke(home, config_profile, "run")
        second = _invoke(home, config_profile, "run")

        assert first.exit_code == 0, first.output
        assert second.exit_code == 0, second.output
        bashrc = (home / ".bashrc").read_text()
        assert bashrc.count("# ===== TEST SETUP - START =====") == 1
        assert bashrc.count("# ===== BASH ALIASES SOURCING - START =====") == 1
        assert (home / ".bash_aliases").read_text() == "alias p='pnpm'\nalias c='clear'\n"
        assert "alias 'p' already exists" in second.output

    def test_summary_lists_managed_config(self, home: Path, config_profile: Path):
        result = _invoke(home, config_profile, "run")
        assert "📦 Shell configuration..." in result.output
        assert "TEST SETUP" in result.output
        assert "✓ p = pnpm" in result.output
        assert "Next steps" in result.output

    def test_dry_run_writes_nothing(self, home: Path, config_profile: Path):
        result = _invoke(home, config_profile, "run", "--dry-run")
        assert result.exit_code == 0, result.output
        assert "Dry run complete" in result.output
        assert "would apply section 'TEST SETUP'" in result.output
        assert list(home.iterdir()) == []

    def test_json(self, home: Path, config_profile: Path):
        result = _invoke(home, config_profile, "-q", "run", "--json")
        assert result.exit_code == 0, result.output
        data = json.loads(result.output)
        assert data["profile"] == "test-profile"
        assert data["report"]["status"] == "ok"
        assert [s["name"] for s in data["report"]["steps"]] == [
            "shell-config", "aliases", "completions",
        ]

    def test_only(self, home: Path, config_profile: Path):
        result = _invoke(home, config_profile, "run", "--only", "aliases")
        assert result.exit_code == 0, result.output
        assert (home / ".bash_aliases").is_file()
        assert not (home / "repos").exists()

    def test_unknown_step(self, home: Path, config_profile: Path):
        result = _invoke(home, config_profile, "run", "--skip", "nope")
        assert result.exit_code == 1
        assert "Unknown step(s): nope" in result.output

    def test_failure_halts_with_command_exit_code(self, home: Path, tmp_path: Path):
        profile = tmp_path / "failing.yml"
        profile.write_text(textwrap.dedent("""\
            name: failing
            steps:
              - name: broken
                methods:
                  - commands:
                      - exit 3
              - name: aliases
                aliases:
                  - name: c
                    command: clear
        """))

        result = _invoke(home, profile, "run")

        assert result.exit_code == 3
        assert "Setup halted at 'broken'" in result.output
        assert "1 step(s) not run" in result.output
        assert not (home / ".bash_aliases").exists()


class TestStatusCommand:
    """Tests for status and steps."""

    def test_status_after_run(self, home: Path, config_profile: Path):
        _invoke(home, config_profile, "run")
        result = _invoke(home, config_profile, "status")
        assert result.exit_code == 0
        assert "TEST SETUP" in result.output
        assert "p = pnpm" in result.output
        assert "git_enhancements" in result.output

    def test_status_json(self, home: Path, config_profile: Path):
        _invoke(home, config_profile, "run")
        result = _invoke(home, config_profile, "status", "--json")
        data = json.loads(result.output)
        names = [s["name"] for s in data["startup_file"]["sections"]]
        assert names == ["TEST SETUP", "BASH ALIASES SOURCING"]
        assert data["backup"]["exists"] is True
        assert data["completions"] == ["git_enhancements"]
        assert "steps" not in data

    def test_status_fresh_home(self, home: Path, config_profile: Path):
        result = _invoke(home, config_profile, "status")
        assert result.exit_code == 0
        assert "No managed sections found" in result.output

    def test_status_with_non_utf8_startup_file(self, home: Path, config_profile: Path):
        (home / ".bashrc").write_bytes(b"# caf\xe9\n")
        _invoke(home, config_profile, "section", "apply", "MINE", "--body", "export A=1")
        result = _invoke(home, config_profile, "status")
        assert result.exit_code == 0, result.output
        assert "MINE" in result.output

    def test_steps_json(self, home: Path, config_profile: Path):
        result = _invoke(home, config_profile, "steps", "--json")
        data = json.loads(result.output)
        assert data["profile"] == "test-profile"
        assert all(row["installs"] is False for row in data["steps"])


class TestSectionCommands:
    def test_apply_list_remove(self, home: Path, config_profile: Path):
        applied = _invoke(home, config_profile, "section", "apply", "MY PATHS", "--body", "export A=1")
        assert applied.exit_code == 0, applied.output
        assert "Added section 'MY PATHS'" in applied.output

        listed = _invoke(home, config_profile, "section", "list")
        assert "MY PATHS" in listed.output

        removed = _invoke(home, config_profile, "section", "remove", "MY PATHS")
        assert removed.exit_code == 0
        assert "MY PATHS" not in (home / ".bashrc").read_text()

    def test_apply_from_file(self, home: Path, config_profile: Path, tmp_path: Path):
        body = tmp_path / "body.sh"
        body.write_text("export B=2\n")
        result = _invoke(home, config_profile, "section", "apply", "WORK", "--file", str(body))
        assert result.exit_code == 0, result.output
        assert "export B=2" in (home / ".bashrc").read_text()

    def test_apply_needs_one_body_source(self, home: Path, config_profile: Path):
        result = _invoke(home, config_profile, "section", "apply", "X")
        assert result.exit_code == 2

    def test_invalid_name(self, home: Path, config_profile: Path):
        result = _invoke(home, config_profile, "section", "apply", "A ===== B", "--body", "x")
        assert result.exit_code == 1


class TestAliasCommands:
    def test_add_keeps_first(self, home: Path, config_profile: Path):
        first = _invoke(home, config_profile, "alias", "add", "c", "clear")
        second = _invoke(home, config_profile, "alias", "add", "c", "cls")
        assert "Added alias 'c'" in first.output
        assert "already exists" in second.output
        assert (home / ".bash_aliases").read_text() == "alias c='clear'\n"

    def test_list_json(self, home: Path, config_profile: Path):
        _invoke(home, config_profile, "alias", "add", "p", "pnpm")
        result = _invoke(home, config_profile, "alias", "list", "--json")
        assert json.loads(result.output)["aliases"] == [{"name": "p", "command": "pnpm"}]


class TestMcpAndHistory:
    def test_mcp_list(self):
        result = CliRunner().invoke(cli, ["mcp", "list", "--json"])
        assert result.exit_code == 0
        assert set(json.loads(result.output)["mcpServers"]) == {"memory", "filesystem"}

    def test_history(self, home: Path, config_profile: Path):
        empty = _invoke(home, config_profile, "history")
        assert "No runs recorded yet." in empty.output

        _invoke(home, config_profile, "run")
        result = _invoke(home, config_profile, "history", "--json")
        entries = json.loads(result.output)
        assert len(entries) == 1
        assert entries[0]["status"] == "ok"
