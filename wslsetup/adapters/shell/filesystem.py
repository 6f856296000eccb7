"""
Filesystem adapter — directories and generated completion scripts.

Going through an adapter (rather than ``Path.write_text`` in the step)
gives these writes the same dry-run and receipt handling as commands.
Startup-file edits are not routed here; they have their own atomic
writer in ``core.services.startup_file``.
"""

from __future__ import annotations

import logging
from pathlib import Path

from wslsetup.adapters.base import Adapter, ExecutionContext
from wslsetup.core.models.action import Receipt

logger = logging.getLogger(__name__)


class FilesystemAdapter(Adapter):
    """``write`` and ``mkdir`` on a path.

    Action params:
        operation (str): ``write`` or ``mkdir``.
        path (str): Absolute, or relative to the working directory.
        content (str): Text for ``write``; replaces the whole file.
    """

    OPERATIONS = ("write", "mkdir")

    @property
    def name(self) -> str:
        return "filesystem"

    def is_available(self) -> bool:
        return True

    def validate(self, context: ExecutionContext) -> tuple[bool, str]:
        operation = context.params.get("operation")
        if operation not in self.OPERATIONS:
            return False, f"Unknown operation {operation!r}. Valid: {', '.join(self.OPERATIONS)}"
        if not context.params.get("path"):
            return False, "Missing required param: 'path'"
        if operation == "write" and "content" not in context.params:
            return False, "Missing required param: 'content' for write operation"
        return True, ""

    def execute(self, context: ExecutionContext) -> Receipt:
        operation = context.params["operation"]
        target = Path(context.working_dir) / context.params["path"]
        try:
            return getattr(self, f"_{operation}")(context, target)
        except OSError as e:
            return Receipt.failure(
                adapter=self.name,
                action_id=context.action.id,
                error=f"Filesystem error: {e}",
                metadata={"operation": operation, "path": str(target)},
            )

    def _write(self, ctx: ExecutionContext, target: Path) -> Receipt:
        content = ctx.params["content"]
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(content, encoding="utf-8")
        logger.debug("Wrote %s (%d bytes)", target, len(content))
        return Receipt.success(
            adapter=self.name,
            action_id=ctx.action.id,
            output=f"Wrote {target}",
            metadata={"path": str(target), "size": len(content)},
        )

    def _mkdir(self, ctx: ExecutionContext, target: Path) -> Receipt:
        created = not target.is_dir()
        target.mkdir(parents=True, exist_ok=True)
        if created:
            logger.info("Created directory %s", target)
        return Receipt.success(
            adapter=self.name,
            action_id=ctx.action.id,
            output=f"{'Created' if created else 'Exists'}: {target}",
            metadata={"path": str(target), "created": created},
        )
