"""
Configuration-section manager — idempotent edits of shell startup files.

Wraps the pure transforms in ``sections`` with file I/O:

- ``StartupFile.apply_section`` keeps one copy of a named block in the
  startup file and takes a one-time backup before the first change.
- ``AliasFile.ensure_alias`` appends alias declarations that are absent.
- ``ensure_sourcing`` makes the startup file source the alias file.

Writes are atomic (temp file in the same directory, then rename).
I/O errors propagate as ``OSError``; the pipeline turns them into a
failed receipt and halts the run.
"""

from __future__ import annotations

import logging
import shutil
import tempfile
from dataclasses import dataclass
from pathlib import Path

from wslsetup.core.services import sections
from wslsetup.core.services.sections import SectionInfo

logger = logging.getLogger(__name__)

ALIASES_SOURCING_SECTION = "BASH ALIASES SOURCING"

# Startup files may hold non-UTF-8 bytes; they must survive a rewrite unchanged.
_ERRORS = "surrogateescape"


@dataclass(frozen=True)
class SectionChange:
    """What ``apply_section`` did."""

    name: str
    replaced: bool
    backup_created: bool


def _atomic_write(path: Path, content: str) -> None:
    # Dotfile managers symlink ~/.bashrc; write through to the real file.
    if path.is_symlink():
        path = path.resolve()
    path.parent.mkdir(parents=True, exist_ok=True)
    _fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
    tmp = Path(tmp_name)
    try:
        with open(_fd, "w", encoding="utf-8", errors=_ERRORS, newline="") as fh:
            fh.write(content)
        if path.exists():
            shutil.copymode(path, tmp)
        tmp.replace(path)
    except Exception:
        tmp.unlink(missing_ok=True)
        raise


def _read(path: Path) -> str:
    if not path.is_file():
        return ""
    with path.open(encoding="utf-8", errors=_ERRORS, newline="") as fh:
        return fh.read()


class StartupFile:
    """A shell startup file (``~/.bashrc``) with managed sections."""

    def __init__(self, path: Path, backup_path: Path):
        self._path = path
        self._backup_path = backup_path

    @property
    def path(self) -> Path:
        return self._path

    @property
    def backup_path(self) -> Path:
        return self._backup_path

    def exists(self) -> bool:
        return self._path.is_file()

    def read(self) -> str:
        return _read(self._path)

    def contains(self, text: str) -> bool:
        return text in self.read()

    def sections(self) -> list[SectionInfo]:
        return sections.list_sections(self.read())

    def has_backup(self) -> bool:
        return self._backup_path.exists()

    def ensure_backup(self) -> bool:
        """Copy the file to the backup path unless a backup already exists.

        A missing startup file is created empty first so the backup
        records the pre-setup state.

        Returns:
            True when a backup was written.
        """
        if self._backup_path.exists():
            return False
        if not self._path.exists():
            self._path.parent.mkdir(parents=True, exist_ok=True)
            self._path.touch()
        self._backup_path.parent.mkdir(parents=True, exist_ok=True)
        shutil.copy2(self._path, self._backup_path)
        logger.info("Original %s backed up to %s", self._path, self._backup_path)
        return True

    def apply_section(self, name: str, body: str) -> SectionChange:
        """Place exactly one ``name`` block holding ``body`` at end of file."""
        sections.validate_section_name(name)
        sections.validate_section_body(name, body)
        backup_created = self.ensure_backup()

        current = self.read()
        replaced = sections.has_section(current, name)
        updated = sections.apply_section(current, name, body)
        _atomic_write(self._path, updated)

        if replaced:
            logger.info("Replaced section '%s' in %s", name, self._path)
        else:
            logger.info("Added section '%s' to %s", name, self._path)
        return SectionChange(name=name, replaced=replaced, backup_created=backup_created)

    def remove_section(self, name: str) -> bool:
        """Delete the ``name`` block. Returns True when something was removed."""
        current = self.read()
        if not sections.has_section(current, name):
            return False
        _atomic_write(self._path, sections.remove_section(current, name))
        logger.info("Removed section '%s' from %s", name, self._path)
        return True


class AliasFile:
    """An alias definitions file (``~/.bash_aliases``), append-only."""

    def __init__(self, path: Path):
        self._path = path

    @property
    def path(self) -> Path:
        return self._path

    def exists(self) -> bool:
        return self._path.is_file()

    def read(self) -> str:
        return _read(self._path)

    def aliases(self) -> list[tuple[str, str]]:
        return sections.list_aliases(self.read())

    def ensure_exists(self) -> bool:
        if self._path.exists():
            return False
        self._path.parent.mkdir(parents=True, exist_ok=True)
        self._path.touch()
        logger.info("Created %s", self._path)
        return True

    def ensure_alias(self, name: str, command: str) -> bool:
        """Append ``alias name='command'`` unless ``name`` is declared.

        An existing declaration is never rewritten, even if ``command``
        differs from it.

        Returns:
            True when a declaration was added.
        """
        self.ensure_exists()
        updated, added = sections.add_alias(self.read(), name, command)
        if added:
            _atomic_write(self._path, updated)
            logger.info("Added alias '%s' to %s", name, self._path)
        else:
            logger.debug("Alias '%s' already exists in %s", name, self._path)
        return added


def sourcing_snippet(companion: Path, home: Path | None = None) -> str:
    """Shell body that sources ``companion`` only when it exists."""
    shown = str(companion)
    if home is not None:
        try:
            shown = "~/" + companion.relative_to(home).as_posix()
        except ValueError:
            pass
    return (
        f"# Source {companion.name} if it exists\n"
        f"if [ -f {shown} ]; then\n"
        f"    . {shown}\n"
        f"fi"
    )


def ensure_sourcing(
    startup: StartupFile,
    companion: Path,
    home: Path | None = None,
) -> bool:
    """Make ``startup`` source ``companion`` unless it already mentions it.

    The check is a plain substring search for the companion's file name,
    so an existing hand-written ``. ~/.bash_aliases`` counts.

    Returns:
        True when the sourcing section was applied.
    """
    if startup.contains(companion.name):
        logger.debug("%s already sources %s", startup.path, companion.name)
        return False
    startup.apply_section(ALIASES_SOURCING_SECTION, sourcing_snippet(companion, home))
    return True
