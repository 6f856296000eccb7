"""
Tests for the startup file, its one-time backup, and the alias file.
"""

from pathlib import Path

import pytest

from wslsetup.core.services.sections import SectionError
from wslsetup.core.services.startup_file import (
    ALIASES_SOURCING_SECTION,
    AliasFile,
    StartupFile,
    ensure_sourcing,
    sourcing_snippet,
)


def _startup(home: Path) -> StartupFile:
    return StartupFile(home / ".bashrc", home / ".bashrc.backup.original")


class TestStartupFile:
    def test_apply_creates_backup_of_original(self, home: Path):
        (home / ".bashrc").write_text("# original\n")
        startup = _startup(home)

        change = startup.apply_section("A", "x=1")

        assert change.backup_created
        assert not change.replaced
        assert startup.backup_path.read_text() == "# original\n"

    def test_backup_written_only_once(self, home: Path):
        (home / ".bashrc").write_text("# original\n")
        startup = _startup(home)
        startup.apply_section("A", "x=1")

        change = startup.apply_section("A", "x=2")

        assert not change.backup_created
        assert change.replaced
        assert startup.backup_path.read_text() == "# original\n"

    def test_existing_backup_never_overwritten(self, home: Path):
        (home / ".bashrc").write_text("# current\n")
        (home / ".bashrc.backup.original").write_text("# first ever\n")

        _startup(home).apply_section("A", "x=1")

        assert (home / ".bashrc.backup.original").read_text() == "# first ever\n"

    def test_missing_startup_file_created(self, home: Path):
        startup = _startup(home)
        startup.apply_section("A", "x=1")
        assert startup.backup_path.read_text() == ""
        assert startup.read() == "\n# ===== A - START =====\nx=1\n# ===== A - END =====\n"

    def test_replace_keeps_single_copy(self, home: Path):
        startup = _startup(home)
        startup.apply_section("A", "x=1")
        startup.apply_section("A", "y=2")
        content = startup.read()
        assert content.count("# ===== A - START =====") == 1
        assert "y=2" in content
        assert "x=1" not in content

    def test_symlinked_startup_file_stays_a_link(self, home: Path, tmp_path: Path):
        real = tmp_path / "dotfiles" / "bashrc"
        real.parent.mkdir()
        real.write_text("# dotfiles\n")
        (home / ".bashrc").symlink_to(real)

        _startup(home).apply_section("A", "x=1")

        assert (home / ".bashrc").is_symlink()
        assert "x=1" in real.read_text()

    def test_malformed_block_leaves_file_untouched(self, home: Path):
        (home / ".bashrc").write_text("# ===== A - START =====\nhalf\n")
        startup = _startup(home)
        with pytest.raises(SectionError):
            startup.apply_section("A", "x=1")
        assert startup.read() == "# ===== A - START =====\nhalf\n"

    def test_remove_section(self, home: Path):
        startup = _startup(home)
        startup.apply_section("A", "x=1")
        assert startup.remove_section("A")
        assert not startup.remove_section("A")
        assert startup.sections() == []

    def test_non_utf8_bytes_survive_rewrite(self, home: Path):
        (home / ".bashrc").write_bytes(b"# caf\xe9\n")
        startup = _startup(home)

        startup.apply_section("A", "x=1")
        startup.apply_section("A", "x=2")

        raw = (home / ".bashrc").read_bytes()
        assert raw.startswith(b"# caf\xe9\n\n")
        assert b"x=2" in raw
        assert [s.name for s in startup.sections()] == ["A"]
        assert startup.backup_path.read_bytes() == b"# caf\xe9\n"

    def test_crlf_file_keeps_its_line_endings(self, home: Path):
        (home / ".bashrc").write_bytes(b"export A=1\r\nexport B=2\r\n")
        startup = _startup(home)

        startup.apply_section("A", "x=1")

        assert (home / ".bashrc").read_bytes().startswith(b"export A=1\r\nexport B=2\r\n\n")

    def test_body_with_own_marker_rejected_before_backup(self, home: Path):
        (home / ".bashrc").write_text("# original\n")
        startup = _startup(home)
        with pytest.raises(SectionError):
            startup.apply_section("A", "x=1\n# ===== A - END =====")
        assert not startup.has_backup()
        assert startup.read() == "# original\n"


class TestAliasFile:
    def test_first_command_wins(self, home: Path):
        aliases = AliasFile(home / ".bash_aliases")
        assert aliases.ensure_alias("c", "clear")
        assert not aliases.ensure_alias("c", "cls")
        assert aliases.read() == "alias c='clear'\n"

    def test_non_utf8_alias_file(self, home: Path):
        (home / ".bash_aliases").write_bytes(b"# r\xe9glages\nalias l='ls'\n")
        aliases = AliasFile(home / ".bash_aliases")
        assert aliases.aliases() == [("l", "ls")]
        assert aliases.ensure_alias("c", "clear")
        raw = (home / ".bash_aliases").read_bytes()
        assert raw == b"# r\xe9glages\nalias l='ls'\nalias c='clear'\n"

    def test_preserves_existing_lines(self, home: Path):
        path = home / ".bash_aliases"
        path.write_text("# mine\nalias ll='ls -l'\n")
        AliasFile(path).ensure_alias("p", "pnpm")
        assert path.read_text() == "# mine\nalias ll='ls -l'\nalias p='pnpm'\n"

    def test_ensure_exists(self, home: Path):
        aliases = AliasFile(home / ".bash_aliases")
        assert aliases.ensure_exists()
        assert not aliases.ensure_exists()
        assert aliases.exists()


class TestSourcing:
    def test_snippet_uses_home_relative_path(self, home: Path):
        snippet = sourcing_snippet(home / ".bash_aliases", home)
        assert "if [ -f ~/.bash_aliases ]; then" in snippet

    def test_adds_sourcing_section(self, home: Path):
        startup = _startup(home)
        assert ensure_sourcing(startup, home / ".bash_aliases", home)
        assert startup.contains(f"# ===== {ALIASES_SOURCING_SECTION} - START =====")

    def test_existing_reference_counts(self, home: Path):
        (home / ".bashrc").write_text(". ~/.bash_aliases\n")
        startup = _startup(home)
        assert not ensure_sourcing(startup, home / ".bash_aliases", home)
        assert not startup.has_backup()
