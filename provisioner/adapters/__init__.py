"""Adapters — bindings for the external tools the orchestrator drives.

Public re-exports for convenient access.
"""

from provisioner.adapters.base import PackageManager, RuntimeEngine
from provisioner.adapters.mock import MockEngine, MockPackageManager

__all__ = [
    "MockEngine",
    "MockPackageManager",
    "PackageManager",
    "RuntimeEngine",
]
