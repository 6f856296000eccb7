"""
Adapter registry — dispatches a step's actions to the adapter that owns them.

Every command and file write of a setup run passes through
``execute_action``, which is also where dry-run happens: the action is
validated, described in a skipped receipt, and never executed.
"""

from __future__ import annotations

import logging
import time

from wslsetup.adapters.base import Adapter, ExecutionContext
from wslsetup.core.models.action import Action, Receipt

logger = logging.getLogger(__name__)

# Params echoed into dry-run receipts so the plan shows what would happen.
_DESCRIBED_PARAMS = ("command", "operation", "path")


class AdapterRegistry:
    """Name → adapter lookup plus receipt-returning dispatch."""

    def __init__(self) -> None:
        self._adapters: dict[str, Adapter] = {}

    def register(self, adapter: Adapter) -> None:
        if adapter.name in self._adapters:
            logger.debug("Replacing adapter '%s'", adapter.name)
        self._adapters[adapter.name] = adapter

    def get(self, name: str) -> Adapter | None:
        return self._adapters.get(name)

    @property
    def names(self) -> list[str]:
        return sorted(self._adapters)

    def execute_action(
        self,
        action: Action,
        working_dir: str = ".",
        env: dict[str, str] | None = None,
        timeout: int | None = None,
        dry_run: bool = False,
    ) -> Receipt:
        """Validate and run ``action``; always returns a Receipt.

        Args:
            action: The requested side effect.
            working_dir: Directory commands run in.
            env: Environment overrides (``HOME``, ``NVM_DIR``).
            timeout: Per-command limit in seconds, None for no limit.
            dry_run: Validate and describe the action without running it.
        """
        adapter = self._adapters.get(action.adapter)
        if adapter is None:
            return Receipt.failure(
                adapter=action.adapter,
                action_id=action.id,
                error=f"No adapter registered for '{action.adapter}'",
            )
        if not adapter.is_available():
            return Receipt.failure(
                adapter=action.adapter,
                action_id=action.id,
                error=f"Adapter '{action.adapter}' is not available on this machine",
            )

        context = ExecutionContext(
            action=action,
            working_dir=working_dir,
            dry_run=dry_run,
            env=env or {},
            timeout=timeout,
        )

        try:
            valid, message = adapter.validate(context)
        except Exception as e:
            valid, message = False, str(e)
        if not valid:
            return Receipt.failure(
                adapter=action.adapter,
                action_id=action.id,
                error=f"Validation failed: {message}",
            )

        if dry_run:
            described = {k: v for k, v in action.params.items() if k in _DESCRIBED_PARAMS}
            logger.info("[dry-run] %s", action.description or action.id)
            return Receipt.skip(
                adapter=action.adapter,
                action_id=action.id,
                reason=f"[dry-run] {action.description or action.id}",
                metadata={"dry_run": True, **described},
            )

        start = time.monotonic()
        try:
            receipt = adapter.execute(context)
        except Exception as e:
            logger.error("Adapter %s raised on %s: %s", action.adapter, action.id, e)
            receipt = Receipt.failure(
                adapter=action.adapter,
                action_id=action.id,
                error=f"Unexpected error: {e}",
            )
        if not receipt.duration_ms:
            receipt.duration_ms = int((time.monotonic() - start) * 1000)
        return receipt


def default_registry() -> AdapterRegistry:
    """Registry with the shell and filesystem adapters registered."""
    from wslsetup.adapters.shell.command import ShellCommandAdapter
    from wslsetup.adapters.shell.filesystem import FilesystemAdapter

    registry = AdapterRegistry()
    registry.register(ShellCommandAdapter())
    registry.register(FilesystemAdapter())
    return registry
