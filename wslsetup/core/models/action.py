"""
Action and Receipt — what a step asks for and what it got back.

A step never shells out or writes files itself. It describes the work as
an ``Action`` (run this command, write that file) and the registry hands
it to an adapter, which answers with a ``Receipt``. Receipts carry
failures as data so the pipeline alone decides when a run stops.
"""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Any, Literal

from pydantic import BaseModel, Field

ReceiptStatus = Literal["ok", "skipped", "failed"]


class Action(BaseModel):
    """One side effect requested by a setup step."""

    id: str                         # "<operation>:<step>:<kind>-<n>"
    adapter: str                    # "shell" or "filesystem"
    step: str = ""
    description: str = ""
    params: dict[str, Any] = Field(default_factory=dict)


class Receipt(BaseModel):
    """Outcome of an action or of a whole step phase (install/configure).

    ``metadata["return_code"]`` holds the exit status when a command ran;
    it becomes the process exit code when the run halts on this receipt.
    """

    adapter: str
    action_id: str
    status: ReceiptStatus = "ok"
    finished_at: str = Field(default_factory=lambda: datetime.now(UTC).isoformat())
    duration_ms: int = 0
    output: str = ""
    error: str | None = None
    metadata: dict[str, Any] = Field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return self.status == "ok"

    @property
    def failed(self) -> bool:
        return self.status == "failed"

    @property
    def skipped(self) -> bool:
        return self.status == "skipped"

    @property
    def return_code(self) -> int | None:
        code = self.metadata.get("return_code")
        return code if isinstance(code, int) else None

    @classmethod
    def success(cls, adapter: str, action_id: str, output: str = "", **extra: Any) -> Receipt:
        return cls(adapter=adapter, action_id=action_id, output=output, **extra)

    @classmethod
    def failure(cls, adapter: str, action_id: str, error: str, **extra: Any) -> Receipt:
        return cls(adapter=adapter, action_id=action_id, status="failed", error=error, **extra)

    @classmethod
    def skip(cls, adapter: str, action_id: str, reason: str = "", **extra: Any) -> Receipt:
        """A phase that deliberately did nothing; ``reason`` becomes the output."""
        return cls(adapter=adapter, action_id=action_id, status="skipped", output=reason, **extra)
