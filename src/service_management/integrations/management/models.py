"""Service management API data models."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class Location(BaseModel):
    """Regional data center location."""

    model_config = ConfigDict(frozen=True)

    name: str = Field(..., description="Location name, e.g. 'West US'")
    display_name: str | None = Field(default=None, description="Display name")
    available_services: list[str] = Field(default_factory=list)
    role_sizes: list[str | None] = Field(
        default_factory=list, description="Virtual machine role sizes offered"
    )


class HostedServiceReference(BaseModel):
    """Hosted service placed in an affinity group."""

    url: str | None = None
    service_name: str | None = None


class StorageServiceReference(BaseModel):
    """Storage service placed in an affinity group."""

    url: str | None = None
    service_name: str | None = None


class AffinityGroup(BaseModel):
    """Named group of account resources pinned to one location.

    The name is the identity of the group and is matched case-insensitively
    by the service, but kept with its original casing here.
    """

    name: str = Field(..., description="Affinity group name")
    label: str | None = Field(default=None, description="Label (decoded from base64)")
    description: str | None = Field(default=None, description="Description")
    location: str | None = Field(default=None, description="Location name")
    hosted_services: list[HostedServiceReference] = Field(default_factory=list)
    storage_services: list[StorageServiceReference] = Field(default_factory=list)
    capabilities: list[str] = Field(default_factory=list)
