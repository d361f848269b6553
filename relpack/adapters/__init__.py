"""Adapters: bindings for git, autotools and fpm.

Public re-exports for convenient access.
"""

from relpack.adapters.base import Adapter, ExecutionContext
from relpack.adapters.mock import MockAdapter
from relpack.adapters.registry import AdapterRegistry

__all__ = [
    "Adapter",
    "AdapterRegistry",
    "ExecutionContext",
    "MockAdapter",
]
