"""Service management API exceptions."""

from __future__ import annotations

from collections.abc import Sequence


class ManagementError(Exception):
    """Base exception for service management errors.

    Attributes:
        message: Human-readable error message.
        details: Additional details (underlying cause, hints).
    """

    def __init__(self, message: str, details: str | None = None) -> None:
        """Initialize exception.

        Args:
            message: Error message.
            details: Additional details.
        """
        super().__init__(message)
        self.message = message
        self.details = details

    def __str__(self) -> str:
        """Return string representation of the error."""
        if self.details:
            return f"{self.message} ({self.details})"
        return self.message


class ConfigError(ManagementError):
    """Raised when the account configuration is invalid or missing."""


class CertificateError(ManagementError):
    """Raised when the management certificate cannot be parsed."""


class SerializationError(ManagementError):
    """Raised when a response body is not the expected XML document."""


class ValidationError(ManagementError):
    """Raised when an operation argument is rejected before any request.

    Attributes:
        parameter: Name of the offending argument.
        allowed_values: Accepted values, when the argument is an enumeration.
    """

    def __init__(
        self,
        message: str,
        parameter: str | None = None,
        allowed_values: Sequence[str] | None = None,
    ) -> None:
        """Initialize ValidationError.

        Args:
            message: Error message.
            parameter: Name of the rejected argument.
            allowed_values: Values the argument may take.
        """
        super().__init__(message)
        self.parameter = parameter
        self.allowed_values = list(allowed_values) if allowed_values is not None else []


class TransportError(ManagementError):
    """Raised when a request cannot be delivered.

    This includes refused connections, TLS handshake failures and timeouts.
    """

    def __init__(
        self,
        message: str = "Failed to reach the management endpoint",
        endpoint: str | None = None,
        original_error: Exception | None = None,
    ) -> None:
        """Initialize TransportError.

        Args:
            message: Error message.
            endpoint: The path that was attempted.
            original_error: The exception raised by the HTTP layer.
        """
        super().__init__(message, details=str(original_error) if original_error else None)
        self.endpoint = endpoint
        self.original_error = original_error


class ManagementAPIError(ManagementError):
    """Raised when the management API rejects a request.

    Attributes:
        status_code: HTTP status code.
        code: Error code reported by the service (e.g. ``ResourceNotFound``).
        endpoint: The path that was called.
        response_body: Raw response body, if any.
    """

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        code: str | None = None,
        endpoint: str | None = None,
        response_body: bytes | None = None,
    ) -> None:
        """Initialize ManagementAPIError.

        Args:
            message: Error message.
            status_code: HTTP status code.
            code: Error code reported by the service.
            endpoint: The path that was called.
            response_body: Raw response body.
        """
        super().__init__(message)
        self.status_code = status_code
        self.code = code
        self.endpoint = endpoint
        self.response_body = response_body

    def __str__(self) -> str:
        """Return string representation of the error."""
        parts = [self.message]
        if self.code:
            parts.append(f"[{self.code}]")
        if self.status_code:
            parts.append(f"(status: {self.status_code})")
        if self.endpoint:
            parts.append(f"[endpoint: {self.endpoint}]")
        return " ".join(parts)


class NotFoundError(ManagementAPIError):
    """Raised when a named resource does not exist (404)."""

    def __init__(
        self,
        message: str = "The resource does not exist.",
        code: str | None = "ResourceNotFound",
        endpoint: str | None = None,
        response_body: bytes | None = None,
    ) -> None:
        """Initialize NotFoundError.

        Args:
            message: Error message.
            code: Error code, e.g. ``AffinityGroupNotFound``.
            endpoint: The path that was called.
            response_body: Raw response body.
        """
        super().__init__(
            message,
            status_code=404,
            code=code,
            endpoint=endpoint,
            response_body=response_body,
        )


class ConflictError(ManagementAPIError):
    """Raised when a resource with the same name already exists (409)."""

    def __init__(
        self,
        message: str = "The resource already exists.",
        code: str | None = "ConflictError",
        endpoint: str | None = None,
        response_body: bytes | None = None,
    ) -> None:
        """Initialize ConflictError.

        Args:
            message: Error message.
            code: Error code reported by the service.
            endpoint: The path that was called.
            response_body: Raw response body.
        """
        super().__init__(
            message,
            status_code=409,
            code=code,
            endpoint=endpoint,
            response_body=response_body,
        )
