"""Account-level operations over the service management API.

ManagementService validates the account configuration and loads the
management certificate once, at construction, then exposes location and
affinity group operations on top of :class:`ManagementClient`.
"""

from __future__ import annotations

from enum import StrEnum
from typing import TYPE_CHECKING
from urllib.parse import quote

import structlog

from service_management.integrations.management import serialization
from service_management.integrations.management.client import (
    HttpMethod,
    ManagementClient,
    ManagementResponse,
)
from service_management.integrations.management.config import validate_account_config
from service_management.integrations.management.credentials import (
    Credential,
    load_credential,
)
from service_management.integrations.management.exceptions import (
    ConflictError,
    ManagementAPIError,
    ManagementError,
    NotFoundError,
    ValidationError,
)
from service_management.integrations.management.tls import create_ssl_context
from service_management.services.management.resolver import (
    LocationValidator,
    ResourceResolver,
)

if TYPE_CHECKING:
    from service_management.integrations.management.config import AccountConfig
    from service_management.integrations.management.models import AffinityGroup, Location

logger = structlog.get_logger()

AFFINITY_GROUPS_PATH = "/affinitygroups"
LOCATIONS_PATH = "/locations"


class ServiceState(StrEnum):
    """Lifecycle of a ManagementService instance."""

    UNINITIALIZED = "uninitialized"
    VALIDATED = "validated"
    READY = "ready"
    FAILED = "failed"


class ManagementService:
    """Facade for subscription-level management operations.

    Example:
        ```python
        from service_management.integrations.management import AccountConfig
        from service_management.services.management import ManagementService

        config = AccountConfig.load()
        with ManagementService(config) as service:
            for location in service.list_locations():
                print(location.name)
            service.create_affinity_group("web", "West US", "Web tier")
        ```
    """

    def __init__(
        self,
        config: AccountConfig,
        client: ManagementClient | None = None,
        location_client: ManagementClient | None = None,
    ) -> None:
        """Validate configuration, load the certificate and build clients.

        Args:
            config: Account configuration.
            client: Client for operation requests. Built from the loaded
                certificate when not given.
            location_client: Second client used to re-fetch regions while
                creating affinity groups. Built once when not given.

        Raises:
            ConfigError: If the configuration is invalid.
            CertificateError: If the certificate cannot be loaded.
        """
        self.config = config
        self.state = ServiceState.UNINITIALIZED
        self.credential: Credential | None = None
        self._log = logger.bind(subscription_id=config.subscription_id)

        try:
            validate_account_config(config)
            self.state = ServiceState.VALIDATED

            password = (
                config.certificate_password.get_secret_value()
                if config.certificate_password
                else None
            )
            self.credential = load_credential(config.management_certificate, password)
            if client is None or location_client is None:
                ssl_context = create_ssl_context(
                    self.credential, verify=config.verify_ssl, ca_path=config.ca_path
                )
                client = client or ManagementClient(config, ssl_context)
                location_client = location_client or ManagementClient(config, ssl_context)
        except ManagementError:
            self.state = ServiceState.FAILED
            self._log.error("Management service initialization failed")
            raise

        self._client = client
        self._location_client = location_client
        self._affinity_groups = ResourceResolver("affinity group", "AffinityGroupNotFound")
        self._locations = LocationValidator(
            lambda: self._fetch_locations(self._location_client)
        )
        self.state = ServiceState.READY
        self._log.info("Management service ready", thumbprint=self.credential.thumbprint)

    def __enter__(self) -> ManagementService:
        """Context manager entry."""
        return self

    def __exit__(self, *args: object) -> None:
        """Context manager exit."""
        self.close()

    def close(self) -> None:
        """Close both HTTP clients."""
        self._client.close()
        if self._location_client is not self._client:
            self._location_client.close()

    def _require_ready(self) -> None:
        if self.state is not ServiceState.READY or self.credential is None:
            raise ManagementError(
                "Management service is not ready", details=f"state: {self.state.value}"
            )

    def _call(
        self,
        client: ManagementClient,
        method: HttpMethod,
        path: str,
        body: bytes | None = None,
    ) -> ManagementResponse:
        """Send a request and raise for non-2xx responses.

        Raises:
            TransportError: If the request could not be delivered.
            NotFoundError: On 404.
            ConflictError: On 409.
            ManagementAPIError: On any other non-2xx status.
        """
        self._require_ready()
        response = client.send(method, path, body)
        if response.is_success:
            return response

        code, message = serialization.error_from_xml(response.body) or (None, None)
        message = message or f"Management API error: {response.status_code}"
        self._log.debug(
            "Management API error response",
            path=path,
            status=response.status_code,
            code=code,
        )
        if response.status_code == 404:
            raise NotFoundError(
                message=message, code=code, endpoint=path, response_body=response.body
            )
        if response.status_code == 409:
            raise ConflictError(
                message=message, code=code, endpoint=path, response_body=response.body
            )
        raise ManagementAPIError(
            message=message,
            status_code=response.status_code,
            code=code,
            endpoint=path,
            response_body=response.body,
        )

    def _fetch_locations(self, client: ManagementClient) -> list[Location]:
        response = self._call(client, HttpMethod.GET, LOCATIONS_PATH)
        return serialization.locations_from_xml(response.body)

    @staticmethod
    def _affinity_group_path(name: str) -> str:
        return f"{AFFINITY_GROUPS_PATH}/{quote(name, safe='')}"

    def _existing_affinity_group_names(self) -> list[str]:
        return [group.name for group in self.list_affinity_groups()]

    # Locations

    def list_locations(self) -> list[Location]:
        """List the regional data center locations.

        Returns:
            Locations in the order the service returns them.
        """
        self._log.debug("Listing locations")
        locations = self._fetch_locations(self._client)
        self._log.debug("Listed locations", count=len(locations))
        return locations

    def list_role_sizes(self) -> list[str]:
        """List the role sizes offered across all locations.

        Returns:
            Sorted role size names, without duplicates or empty entries.
        """
        sizes = {size for location in self.list_locations() for size in location.role_sizes if size}
        return sorted(sizes)

    # Affinity groups

    def list_affinity_groups(self) -> list[AffinityGroup]:
        """List the affinity groups of the subscription."""
        self._log.debug("Listing affinity groups")
        response = self._call(self._client, HttpMethod.GET, AFFINITY_GROUPS_PATH)
        groups = serialization.affinity_groups_from_xml(response.body)
        self._log.debug("Listed affinity groups", count=len(groups))
        return groups

    def create_affinity_group(
        self,
        name: str,
        location: str,
        label: str,
        *,
        description: str | None = None,
    ) -> None:
        """Create an affinity group.

        Args:
            name: Affinity group name.
            location: Location the group is pinned to.
            label: Label for the group (base64 encoded on the wire).
            description: Optional description.

        Raises:
            ValidationError: If the name is blank or the location is unknown.
            ConflictError: If a group with exactly this name exists.
        """
        if name is None or not name.strip():
            raise ValidationError("Affinity Group name cannot be empty", parameter="name")

        self._affinity_groups.require_absent(name, self._existing_affinity_group_names())
        self._locations.validate(location)

        body = serialization.affinity_group_to_xml(name, location, label, description)
        self._call(self._client, HttpMethod.POST, AFFINITY_GROUPS_PATH, body)
        self._log.info("Affinity group created", name=name, location=location)

    def update_affinity_group(
        self,
        name: str,
        label: str,
        *,
        description: str | None = None,
    ) -> None:
        """Update the label and/or description of an affinity group.

        Raises:
            ValidationError: If the label is empty.
            NotFoundError: If no group matches the name.
        """
        if not label:
            raise ValidationError("Label name cannot be empty", parameter="label")

        self._affinity_groups.require_existing(name, self._existing_affinity_group_names())

        body = serialization.affinity_group_update_to_xml(label, description)
        self._call(self._client, HttpMethod.PUT, self._affinity_group_path(name), body)
        self._log.info("Affinity group updated", name=name)

    def delete_affinity_group(self, name: str) -> None:
        """Delete an affinity group.

        Raises:
            NotFoundError: If no group matches the name.
        """
        self._affinity_groups.require_existing(name, self._existing_affinity_group_names())

        self._call(self._client, HttpMethod.DELETE, self._affinity_group_path(name))
        self._log.info("Affinity group deleted", name=name)

    def get_affinity_group(self, name: str) -> AffinityGroup:
        """Get the properties of an affinity group.

        Raises:
            NotFoundError: If no group matches the name.
        """
        self._affinity_groups.require_existing(name, self._existing_affinity_group_names())

        response = self._call(self._client, HttpMethod.GET, self._affinity_group_path(name))
        return serialization.affinity_group_from_xml(response.body)
