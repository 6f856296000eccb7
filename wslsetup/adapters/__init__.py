"""Adapters — bindings for the side effects a setup run performs.

Public re-exports for convenient access.
"""

from wslsetup.adapters.base import Adapter, ExecutionContext
from wslsetup.adapters.mock import MockAdapter
from wslsetup.adapters.registry import AdapterRegistry, default_registry

__all__ = [
    "Adapter",
    "AdapterRegistry",
    "ExecutionContext",
    "MockAdapter",
    "default_registry",
]
