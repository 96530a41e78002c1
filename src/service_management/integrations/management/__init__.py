"""Service management API integration - HTTP client, credentials and XML models."""

from service_management.integrations.management.client import (
    HttpMethod,
    ManagementClient,
    ManagementRequest,
    ManagementResponse,
)
from service_management.integrations.management.config import (
    AccountConfig,
    validate_account_config,
)
from service_management.integrations.management.credentials import (
    Credential,
    load_credential,
    parse_certificate,
)
from service_management.integrations.management.exceptions import (
    CertificateError,
    ConfigError,
    ConflictError,
    ManagementAPIError,
    ManagementError,
    NotFoundError,
    SerializationError,
    TransportError,
    ValidationError,
)
from service_management.integrations.management.models import AffinityGroup, Location
from service_management.integrations.management.tls import create_ssl_context

__all__ = [
    "AccountConfig",
    "AffinityGroup",
    "CertificateError",
    "ConfigError",
    "ConflictError",
    "Credential",
    "HttpMethod",
    "Location",
    "ManagementAPIError",
    "ManagementClient",
    "ManagementError",
    "ManagementRequest",
    "ManagementResponse",
    "NotFoundError",
    "SerializationError",
    "TransportError",
    "ValidationError",
    "create_ssl_context",
    "load_credential",
    "parse_certificate",
    "validate_account_config",
]
