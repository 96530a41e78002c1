"""Name resolution for account-scoped resources.

Lookups (get, update, delete) match names case-insensitively. The duplicate
check made before a create matches the exact name only, so a create of
``"foo"`` is sent to the service even when ``"Foo"`` exists; the service
itself then reports the conflict.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable
from enum import StrEnum

import structlog

from service_management.integrations.management.exceptions import (
    ConflictError,
    NotFoundError,
    ValidationError,
)
from service_management.integrations.management.models import Location

logger = structlog.get_logger()


class ResolutionResult(StrEnum):
    """Outcome of resolving a name against the live resource list."""

    FOUND = "found"
    NOT_FOUND = "not_found"
    CONFLICT = "conflict"


class ResolutionMode(StrEnum):
    """Which operation the name is being resolved for."""

    LOOKUP = "lookup"
    CREATE = "create"


class ResourceResolver:
    """Resolve a resource name against the names currently on the service.

    Example:
        >>> resolver = ResourceResolver("affinity group", "AffinityGroupNotFound")
        >>> resolver.resolve("foo", ["Foo", "Bar"])
        <ResolutionResult.FOUND: 'found'>
        >>> resolver.resolve("foo", ["Foo"], mode=ResolutionMode.CREATE)
        <ResolutionResult.NOT_FOUND: 'not_found'>
    """

    def __init__(self, resource_type: str, not_found_code: str) -> None:
        """Initialize the resolver.

        Args:
            resource_type: Human-readable resource name used in messages.
            not_found_code: Error code carried by NotFoundError.
        """
        self.resource_type = resource_type
        self.not_found_code = not_found_code
        self._log = logger.bind(resource=resource_type)

    def resolve(
        self,
        name: str | None,
        existing_names: Iterable[str],
        mode: ResolutionMode = ResolutionMode.LOOKUP,
    ) -> ResolutionResult:
        """Resolve ``name`` against ``existing_names``.

        Args:
            name: Name to resolve.
            existing_names: Names currently known to the service.
            mode: LOOKUP matches case-insensitively and yields FOUND;
                CREATE matches the exact name and yields CONFLICT.

        Returns:
            The resolution result.
        """
        if not name:
            return ResolutionResult.NOT_FOUND

        if mode is ResolutionMode.CREATE:
            if name in existing_names:
                return ResolutionResult.CONFLICT
            return ResolutionResult.NOT_FOUND

        wanted = name.casefold()
        if any(existing.casefold() == wanted for existing in existing_names):
            return ResolutionResult.FOUND
        return ResolutionResult.NOT_FOUND

    def require_existing(self, name: str | None, existing_names: Iterable[str]) -> None:
        """Ensure ``name`` matches an existing resource, ignoring case.

        Raises:
            NotFoundError: If no resource matches.
        """
        result = self.resolve(name, existing_names)
        self._log.debug("Resolved resource name", name=name, result=result.value)
        if result is not ResolutionResult.FOUND:
            raise NotFoundError(
                message=f"The {self.resource_type} does not exist.",
                code=self.not_found_code,
            )

    def require_absent(self, name: str, existing_names: Iterable[str]) -> None:
        """Ensure no resource already carries exactly ``name``.

        Raises:
            ConflictError: If the name is taken.
        """
        result = self.resolve(name, existing_names, mode=ResolutionMode.CREATE)
        self._log.debug("Resolved resource name", name=name, result=result.value)
        if result is ResolutionResult.CONFLICT:
            raise ConflictError(
                message=(
                    f"An {self.resource_type} {name} already exists in the current subscription."
                )
            )


class LocationValidator:
    """Check a location name against the regions the service offers.

    The region list is fetched on every call, since it is owned by the
    service and not cached locally.
    """

    def __init__(self, fetch_locations: Callable[[], list[Location]]) -> None:
        """Initialize the validator.

        Args:
            fetch_locations: Callable returning the current region list.
        """
        self._fetch_locations = fetch_locations

    def validate(self, location: str | None) -> str:
        """Validate a location name.

        Args:
            location: Location requested by the caller.

        Returns:
            The matching location name as the service spells it.

        Raises:
            ValidationError: If the location is not offered; the message lists
                the allowed values.
        """
        names = [loc.name for loc in self._fetch_locations()]
        if location:
            wanted = location.casefold()
            for name in names:
                if name.casefold() == wanted:
                    return name

        raise ValidationError(
            f"Value '{location}' specified for parameter 'location' is invalid. "
            f"Allowed values are {','.join(names)}",
            parameter="location",
            allowed_values=names,
        )
