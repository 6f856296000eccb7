"""
Adapter contract — the only code that touches the machine.

Setup steps build Actions; the registry passes each one to the adapter
named in ``action.adapter`` along with the run's working directory,
environment overrides and timeout. Dry-run is decided by the registry,
so an adapter only ever sees actions it should really perform.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any

from pydantic import BaseModel, Field

from wslsetup.core.models.action import Action, Receipt


class ExecutionContext(BaseModel):
    """An action plus where and how to perform it."""

    action: Action
    working_dir: str = "."
    dry_run: bool = False
    env: dict[str, str] = Field(default_factory=dict)   # overrides on top of os.environ
    timeout: int | None = None

    @property
    def params(self) -> dict[str, Any]:
        return self.action.params


class Adapter(ABC):
    """Performs one kind of side effect.

    ``execute`` reports every failure in the returned Receipt; raising is
    a bug that the registry converts into a failed receipt.
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Key used in ``Action.adapter``."""

    @abstractmethod
    def is_available(self) -> bool:
        """Whether the adapter can run on this machine at all."""

    @abstractmethod
    def validate(self, context: ExecutionContext) -> tuple[bool, str]:
        """Check the action's params; returns ``(ok, error_message)``."""

    @abstractmethod
    def execute(self, context: ExecutionContext) -> Receipt:
        """Perform the action."""

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.name}>"
