"""
Domain models — Pydantic types for the provisioner.

All models are re-exported here for convenient access:

    from provisioner.core.models import DeploymentConfig, HostCapability, Receipt
"""

from provisioner.core.models.action import Receipt
from provisioner.core.models.capability import ADDRESS_PLACEHOLDER, HostCapability
from provisioner.core.models.deployment import (
    Credentials,
    DeploymentConfig,
    DeploymentDescriptor,
    PortPair,
    ProxySettings,
    Strictness,
)
from provisioner.core.models.state import (
    LifecycleResult,
    ServiceState,
    UnitStatus,
)
from provisioner.core.models.tooling import InstallStep, ToolSpec

__all__ = [
    "ADDRESS_PLACEHOLDER",
    # deployment.py
    "Credentials",
    "DeploymentConfig",
    "DeploymentDescriptor",
    # capability.py
    "HostCapability",
    # tooling.py
    "InstallStep",
    # state.py
    "LifecycleResult",
    "PortPair",
    "ProxySettings",
    # action.py
    "Receipt",
    "ServiceState",
    "Strictness",
    "ToolSpec",
    "UnitStatus",
]
