"""
Run ledger — one NDJSON line per real (non dry-run) setup run.

Lives at ``<state_dir>/audit.ndjson`` and is only ever appended to;
``wslsetup history`` reads it back.
"""

from __future__ import annotations

import json
import logging
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field, ValidationError

logger = logging.getLogger(__name__)

LEDGER_FILENAME = "audit.ndjson"


class AuditEntry(BaseModel):
    """Summary of one setup run."""

    timestamp: str = Field(default_factory=lambda: datetime.now(UTC).isoformat())
    operation_id: str = ""
    operation_type: str = "setup"
    profile: str = ""
    status: str = ""                # "ok" or "failed"
    exit_code: int = 0
    steps_total: int = 0
    steps_succeeded: int = 0
    steps_failed: int = 0
    halted_at: str | None = None
    duration_ms: int = 0
    step_status: dict[str, str] = Field(default_factory=dict)   # step name → outcome status
    errors: list[str] = Field(default_factory=list)
    context: dict[str, Any] = Field(default_factory=dict)


class AuditWriter:
    """Appends entries to, and reads them from, the ledger file."""

    def __init__(self, path: Path | None = None, state_dir: Path | None = None):
        if path is None:
            path = (state_dir or Path(".")) / LEDGER_FILENAME
        self._path = path

    @property
    def path(self) -> Path:
        return self._path

    def write(self, entry: AuditEntry) -> None:
        """Append ``entry``. A ledger that can't be written is logged, not raised:
        the setup itself already happened."""
        line = json.dumps(entry.model_dump(mode="json"), ensure_ascii=False)
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            with self._path.open("a", encoding="utf-8") as f:
                f.write(line + "\n")
        except OSError as e:
            logger.error("Could not append to ledger %s: %s", self._path, e)
            return
        logger.debug("Ledger: %s %s", entry.operation_id, entry.status)

    def read_all(self) -> list[AuditEntry]:
        """Every readable entry, oldest first. Corrupt lines are skipped."""
        try:
            text = self._path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return []
        except OSError as e:
            logger.error("Could not read ledger %s: %s", self._path, e)
            return []

        entries = []
        for number, line in enumerate(text.splitlines(), start=1):
            if not line.strip():
                continue
            try:
                entries.append(AuditEntry.model_validate(json.loads(line)))
            except (json.JSONDecodeError, ValidationError) as e:
                logger.warning("Skipping ledger line %d: %s", number, e)
        return entries

    def read_recent(self, n: int = 20) -> list[AuditEntry]:
        return self.read_all()[-n:] if n > 0 else []
