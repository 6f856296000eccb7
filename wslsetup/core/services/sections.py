"""
Section and alias text transforms — pure ``str -> str`` functions.

A managed section is a named block in a line-oriented file::

    # ===== STARSHIP PROMPT - START =====
    eval "$(starship init bash)"
    # ===== STARSHIP PROMPT - END =====

Applying a section removes every existing block with the same name and
appends a fresh one at end of file, so the file holds exactly one copy.
Alias declarations (``alias p='pnpm'``) are only ever appended, never
rewritten.

Nothing here touches the filesystem; see ``startup_file`` for the I/O side.
"""

from __future__ import annotations

import re
from dataclasses import dataclass

_MARKER_FENCE = "====="
_START_SUFFIX = " - START"
_END_SUFFIX = " - END"

_START_RE = re.compile(r"^# ===== (?P<name>.+) - START =====$")
_ALIAS_NAME_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_.-]*$")
_ALIAS_LINE_RE = re.compile(r"^alias (?P<name>[^=\s]+)=(?P<value>.*)$")


class SectionError(ValueError):
    """Raised for invalid section/alias names or a malformed managed block."""


@dataclass(frozen=True)
class SectionInfo:
    """Location of a managed block (1-based, inclusive line numbers)."""

    name: str
    start_line: int
    end_line: int


# ── Markers ─────────────────────────────────────────────────────


def validate_section_name(name: str) -> None:
    if not name or not name.strip():
        raise SectionError("Section name must not be empty")
    if "\n" in name or "\r" in name:
        raise SectionError(f"Section name must be a single line: {name!r}")
    if _MARKER_FENCE in name or _START_SUFFIX in name or _END_SUFFIX in name:
        raise SectionError(f"Section name collides with marker syntax: {name!r}")


def start_marker(name: str) -> str:
    validate_section_name(name)
    return f"# {_MARKER_FENCE} {name}{_START_SUFFIX} {_MARKER_FENCE}"


def end_marker(name: str) -> str:
    validate_section_name(name)
    return f"# {_MARKER_FENCE} {name}{_END_SUFFIX} {_MARKER_FENCE}"


# ── Sections ────────────────────────────────────────────────────


def _split(content: str) -> list[str]:
    """Split on ``\\n`` only; every other byte stays inside its line."""
    if not content:
        return []
    lines = content.split("\n")
    if lines[-1] == "":
        lines.pop()
    return lines


def _bare(line: str) -> str:
    """``line`` without a CRLF file's trailing ``\\r``, for marker matching."""
    return line[:-1] if line.endswith("\r") else line


def _find(lines: list[str], marker: str, start: int) -> int:
    for idx in range(start, len(lines)):
        if _bare(lines[idx]) == marker:
            return idx
    raise ValueError(marker)


def _strip_blocks(lines: list[str], name: str) -> tuple[list[str], int]:
    """Drop every ``name`` block plus the blank separator line before it.

    Lines outside the blocks are kept verbatim. Returns the remaining
    lines and the number of blocks removed.
    """
    start, end = start_marker(name), end_marker(name)
    kept: list[str] = []
    removed = 0
    i = 0
    while i < len(lines):
        if _bare(lines[i]) != start:
            kept.append(lines[i])
            i += 1
            continue
        try:
            close = _find(lines, end, i + 1)
        except ValueError:
            raise SectionError(
                f"Section '{name}' starts at line {i + 1} but has no end marker"
            ) from None
        if kept and not _bare(kept[-1]).strip():
            kept.pop()
        removed += 1
        i = close + 1
    return kept, removed


def _body_lines(name: str, body: str) -> list[str]:
    body = body.rstrip("\n")
    if not body.strip("\n"):
        return []
    lines = body.split("\n")
    markers = (start_marker(name), end_marker(name))
    for number, line in enumerate(lines, start=1):
        if _bare(line) in markers:
            raise SectionError(
                f"Body of section '{name}' contains its own marker at line {number}"
            )
    return lines


def validate_section_body(name: str, body: str) -> None:
    """Raise ``SectionError`` if ``body`` can't be placed in a ``name`` block."""
    _body_lines(name, body)


def _join(lines: list[str]) -> str:
    return "\n".join(lines) + "\n" if lines else ""


def apply_section(content: str, name: str, body: str) -> str:
    """Return ``content`` with exactly one ``name`` block holding ``body``.

    Existing blocks are deleted as a whole (start through end marker) and
    the new block is appended after a blank line. The rest of the file
    keeps its order and its bytes.

    Raises:
        SectionError: invalid name, a body holding the block's own
            marker lines, or a start marker with no end marker.
    """
    block = [start_marker(name), *_body_lines(name, body), end_marker(name)]
    lines, _ = _strip_blocks(_split(content), name)
    return _join([*lines, "", *block])


def remove_section(content: str, name: str) -> str:
    """Return ``content`` without any ``name`` block."""
    lines, removed = _strip_blocks(_split(content), name)
    if not removed:
        return content
    return _join(lines)


def has_section(content: str, name: str) -> bool:
    marker = start_marker(name)
    return any(_bare(line) == marker for line in _split(content))


def list_sections(content: str) -> list[SectionInfo]:
    """List managed blocks in file order. Unterminated blocks are skipped."""
    lines = _split(content)
    found: list[SectionInfo] = []
    for idx, line in enumerate(lines):
        match = _START_RE.match(_bare(line))
        if not match:
            continue
        name = match.group("name")
        try:
            close = _find(lines, end_marker(name), idx + 1)
        except (ValueError, SectionError):
            continue
        found.append(SectionInfo(name=name, start_line=idx + 1, end_line=close + 1))
    return found


# ── Aliases ─────────────────────────────────────────────────────


def validate_alias_name(name: str) -> None:
    if not _ALIAS_NAME_RE.match(name or ""):
        raise SectionError(f"Invalid alias name: {name!r}")


def alias_line(name: str, command: str) -> str:
    """Render ``alias name='command'`` with POSIX single-quote escaping."""
    validate_alias_name(name)
    quoted = command.replace("'", "'\\''")
    return f"alias {name}='{quoted}'"


def has_alias(content: str, name: str) -> bool:
    """Anchored prefix match, so ``p`` never matches ``alias pn=...``."""
    validate_alias_name(name)
    prefix = f"alias {name}="
    return any(line.startswith(prefix) for line in _split(content))


def add_alias(content: str, name: str, command: str) -> tuple[str, bool]:
    """Append an alias declaration unless one for ``name`` exists.

    An existing declaration is left as is even when ``command`` differs.

    Returns:
        (new_content, added)
    """
    if has_alias(content, name):
        return content, False
    if content and not content.endswith("\n"):
        content += "\n"
    return content + alias_line(name, command) + "\n", True


def list_aliases(content: str) -> list[tuple[str, str]]:
    """Return ``(name, command)`` pairs in file order."""
    result: list[tuple[str, str]] = []
    for line in _split(content):
        match = _ALIAS_LINE_RE.match(_bare(line))
        if not match:
            continue
        value = match.group("value")
        if len(value) >= 2 and value[0] == value[-1] and value[0] in "'\"":
            value = value[1:-1].replace("'\\''", "'")
        result.append((match.group("name"), value))
    return result
