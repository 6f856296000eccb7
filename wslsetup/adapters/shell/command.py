"""
Shell command adapter — installers, probes and completion generators.

Profile commands are bash snippets (``curl ... | sh``, ``&&`` chains,
``$(...)``), so they always run through bash. An optional preamble is
prepended; the pipeline uses it to load nvm and set ``pipefail``.
"""

from __future__ import annotations

import logging
import os
import shutil
import subprocess
import time
from pathlib import Path

from wslsetup.adapters.base import Adapter, ExecutionContext
from wslsetup.core.models.action import Receipt

logger = logging.getLogger(__name__)

# Installers can print thousands of lines; receipts keep the tail.
DEFAULT_MAX_OUTPUT = 4000


def _tail(text: str | None, limit: int = DEFAULT_MAX_OUTPUT) -> str:
    if not text:
        return ""
    return (text[-limit:] if limit else text).strip()


class ShellCommandAdapter(Adapter):
    """Run a command under bash.

    Action params:
        command (str): Shell snippet to run. Required.
        preamble (str): Lines run before ``command`` in the same shell.
        capture (bool): Capture stdout/stderr into the receipt (default
            True). False lets an installer write to the terminal.
        cwd (str): Working directory (default: ``context.working_dir``).
        max_output (int): Characters of stdout to keep (default 4000,
            0 keeps all of it, as completion scripts need).
    """

    def __init__(self, executable: str | None = None):
        self._executable = executable

    @property
    def name(self) -> str:
        return "shell"

    def _shell(self) -> str | None:
        return self._executable or shutil.which("bash")

    def is_available(self) -> bool:
        return self._shell() is not None

    def validate(self, context: ExecutionContext) -> tuple[bool, str]:
        if not context.params.get("command"):
            return False, "Missing required param: 'command'"
        cwd = context.params.get("cwd", context.working_dir)
        if cwd and not Path(cwd).is_dir():
            return False, f"Working directory does not exist: {cwd}"
        return True, ""

    def execute(self, context: ExecutionContext) -> Receipt:
        params = context.params
        command = params["command"]
        preamble = params.get("preamble", "")
        capture = params.get("capture", True)
        limit = params.get("max_output", DEFAULT_MAX_OUTPUT)
        meta = {"command": command}

        logger.debug("$ %s", command)
        start = time.monotonic()
        try:
            proc = subprocess.run(
                f"{preamble}\n{command}" if preamble else command,
                shell=True,
                executable=self._shell(),
                cwd=params.get("cwd", context.working_dir),
                env={**os.environ, **context.env},
                capture_output=capture,
                text=True,
                timeout=context.timeout,
            )
        except subprocess.TimeoutExpired:
            return Receipt.failure(
                adapter=self.name,
                action_id=context.action.id,
                error=f"Command timed out after {context.timeout}s",
                metadata={**meta, "timeout": context.timeout},
            )
        except OSError as e:
            return Receipt.failure(
                adapter=self.name,
                action_id=context.action.id,
                error=f"Could not start bash: {e}",
                metadata=meta,
            )

        elapsed = int((time.monotonic() - start) * 1000)
        stdout, stderr = _tail(proc.stdout, limit), _tail(proc.stderr)
        meta["return_code"] = proc.returncode

        if proc.returncode != 0:
            return Receipt.failure(
                adapter=self.name,
                action_id=context.action.id,
                error=stderr or f"Command exited with code {proc.returncode}",
                duration_ms=elapsed,
                metadata={**meta, "stdout": stdout},
            )
        return Receipt.success(
            adapter=self.name,
            action_id=context.action.id,
            output=stdout,
            duration_ms=elapsed,
            metadata={**meta, "stderr": stderr},
        )
