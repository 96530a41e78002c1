"""Service management operations - account facade and name resolution."""

from service_management.services.management.resolver import (
    LocationValidator,
    ResolutionMode,
    ResolutionResult,
    ResourceResolver,
)
from service_management.services.management.service import ManagementService, ServiceState

__all__ = [
    "LocationValidator",
    "ManagementService",
    "ResolutionMode",
    "ResolutionResult",
    "ResourceResolver",
    "ServiceState",
]
