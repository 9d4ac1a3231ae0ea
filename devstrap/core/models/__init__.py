"""
Domain models — Pydantic types for the provisioning orchestrator.

    from devstrap.core.models import EnvironmentFacts, ProvisioningStep, StepResult
"""

from devstrap.core.models.config import DevstrapConfig
from devstrap.core.models.environment import EnvironmentFacts, OSType, PackageManager
from devstrap.core.models.step import ProvisioningStep, StepResult, ToolVersion

__all__ = [
    # config.py
    "DevstrapConfig",
    # environment.py
    "EnvironmentFacts",
    "OSType",
    "PackageManager",
    # step.py
    "ProvisioningStep",
    "StepResult",
    "ToolVersion",
]
