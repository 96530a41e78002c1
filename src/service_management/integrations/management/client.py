"""Service management API HTTP client."""

from __future__ import annotations

import ssl
from dataclasses import dataclass
from enum import StrEnum
from typing import TYPE_CHECKING, Any

import httpx
import structlog

from service_management.integrations.management.exceptions import TransportError

if TYPE_CHECKING:
    from service_management.integrations.management.config import AccountConfig

logger = structlog.get_logger()


class HttpMethod(StrEnum):
    """HTTP methods used by the management API."""

    GET = "GET"
    POST = "POST"
    PUT = "PUT"
    DELETE = "DELETE"


@dataclass(frozen=True)
class ManagementRequest:
    """A single request against the subscription-scoped endpoint."""

    method: HttpMethod
    path: str
    body: bytes | None = None


@dataclass(frozen=True)
class ManagementResponse:
    """Status code and raw body of a management API response."""

    status_code: int
    body: bytes

    @property
    def is_success(self) -> bool:
        """Return True for 2xx responses."""
        return 200 <= self.status_code < 300


class ManagementClient:
    """HTTP client for the service management API.

    The caller authenticates with a client certificate: the TLS context
    passed in already carries it, and no token or header-based secret is
    sent. Responses are returned as-is; interpreting status codes is left
    to the service layer.

    Example:
        ```python
        from service_management.integrations.management import (
            AccountConfig,
            ManagementClient,
            create_ssl_context,
            load_credential,
        )

        config = AccountConfig.load()
        credential = load_credential(config.management_certificate)
        with ManagementClient(config, create_ssl_context(credential)) as client:
            response = client.send("GET", "/locations")
            print(response.status_code)
        ```
    """

    def __init__(self, config: AccountConfig, ssl_context: ssl.SSLContext) -> None:
        """Initialize the management client.

        Args:
            config: Account configuration (endpoint, subscription, timeout).
            ssl_context: TLS client context holding the management certificate.
        """
        self.config = config
        self.base_url = f"{config.management_endpoint}/{config.subscription_id}"
        self._client = httpx.Client(
            base_url=self.base_url,
            timeout=httpx.Timeout(config.timeout),
            verify=ssl_context,
            follow_redirects=True,
            headers={
                "x-ms-version": config.api_version,
                "Content-Type": "application/xml",
                "Accept": "application/xml",
            },
        )
        logger.info(
            "Management client initialized",
            endpoint=config.management_endpoint,
            subscription_id=config.subscription_id,
        )

    def __enter__(self) -> ManagementClient:
        """Context manager entry."""
        return self

    def __exit__(self, *args: object) -> None:
        """Context manager exit."""
        self.close()

    def close(self) -> None:
        """Close the HTTP client and release connections."""
        self._client.close()
        logger.debug("Management client closed")

    def send(
        self,
        method: HttpMethod | str,
        path: str,
        body: bytes | None = None,
    ) -> ManagementResponse:
        """Send a request and return the raw response.

        Args:
            method: HTTP method (GET, POST, PUT, DELETE).
            path: Path relative to the subscription, e.g. ``/locations``.
            body: Optional XML request body.

        Returns:
            Status code and body of the response.

        Raises:
            TransportError: If the request could not be delivered.
            ValueError: If the method is not supported.
        """
        request = ManagementRequest(method=HttpMethod(method.upper()), path=path, body=body)
        return self.execute(request)

    def execute(self, request: ManagementRequest) -> ManagementResponse:
        """Send a prepared request.

        Args:
            request: Method, path and body to send.

        Returns:
            Status code and body of the response.

        Raises:
            TransportError: If the request could not be delivered.
        """
        url = f"/{request.path.lstrip('/')}"
        log = logger.bind(method=request.method.value, path=url)

        kwargs: dict[str, Any] = {}
        if request.body is not None:
            kwargs["content"] = request.body

        try:
            log.debug("Management API request")
            response = self._client.request(request.method.value, url, **kwargs)
        except httpx.TimeoutException as e:
            log.error("Management API request timeout", error=str(e))
            raise TransportError(
                message=f"Management API request timed out: {e}",
                endpoint=url,
                original_error=e,
            ) from e
        except httpx.TransportError as e:
            log.error("Management API connection error", error=str(e))
            raise TransportError(
                message=f"Failed to connect to management endpoint: {e}",
                endpoint=url,
                original_error=e,
            ) from e

        log.debug("Management API response", status=response.status_code)
        return ManagementResponse(status_code=response.status_code, body=response.content)
