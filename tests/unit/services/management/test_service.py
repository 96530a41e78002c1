"""Unit tests for ManagementService."""

from __future__ import annotations

import base64
from collections.abc import Callable
from pathlib import Path
from typing import Any
from unittest.mock import MagicMock, call

import pytest

from service_management.integrations.management.client import (
    HttpMethod,
    ManagementClient,
    ManagementResponse,
)
from service_management.integrations.management.config import AccountConfig
from service_management.integrations.management.exceptions import (
    CertificateError,
    ConfigError,
    ConflictError,
    ManagementAPIError,
    ManagementError,
    NotFoundError,
    TransportError,
    ValidationError,
)
from service_management.services.management import ManagementService, ServiceState

NS = "http://schemas.microsoft.com/windowsazure"
SERVICE_LOGGER = "service_management.services.management.service.logger"

Route = tuple[str, str]


def _locations_xml(locations: dict[str, list[str]]) -> bytes:
    items = "".join(
        f"<Location><Name>{name}</Name><ComputeCapabilities><VirtualMachinesRoleSizes>"
        + "".join(f"<RoleSize>{size}</RoleSize>" for size in sizes)
        + "</VirtualMachinesRoleSizes></ComputeCapabilities></Location>"
        for name, sizes in locations.items()
    )
    return f'<Locations xmlns="{NS}">{items}</Locations>'.encode()


def _groups_xml(*names: str) -> bytes:
    items = "".join(f"<AffinityGroup><Name>{name}</Name></AffinityGroup>" for name in names)
    return f'<AffinityGroups xmlns="{NS}">{items}</AffinityGroups>'.encode()


def _group_xml(name: str, label: str, location: str) -> bytes:
    encoded = base64.b64encode(label.encode()).decode()
    return (
        f'<AffinityGroup xmlns="{NS}"><Name>{name}</Name><Label>{encoded}</Label>'
        f"<Location>{location}</Location></AffinityGroup>"
    ).encode()


def _error_xml(code: str, message: str) -> bytes:
    return f'<Error xmlns="{NS}"><Code>{code}</Code><Message>{message}</Message></Error>'.encode()


DEFAULT_LOCATIONS = _locations_xml({"West US": ["Small", "Large"], "East Asia": ["Small"]})


def _router(routes: dict[Route, ManagementResponse]) -> Callable[..., ManagementResponse]:
    def send(method: HttpMethod | str, path: str, body: bytes | None = None) -> ManagementResponse:
        key = (str(method), path)
        if key not in routes:
            raise AssertionError(f"unexpected request {key}")
        return routes[key]

    return send


def _mock_client(routes: dict[Route, ManagementResponse]) -> MagicMock:
    client = MagicMock(spec=ManagementClient)
    client.send.side_effect = _router(routes)
    return client


def _ok(body: bytes = b"") -> ManagementResponse:
    return ManagementResponse(status_code=200, body=body)


@pytest.fixture
def account_config(pem_file: Path) -> AccountConfig:
    """Valid account configuration pointing at the test certificate."""
    return AccountConfig(subscription_id="sub-1234", management_certificate=str(pem_file))


@pytest.fixture
def location_client() -> MagicMock:
    """Client used for region lookups during create."""
    return _mock_client({("GET", "/locations"): _ok(DEFAULT_LOCATIONS)})


def _service(
    config: AccountConfig,
    routes: dict[Route, ManagementResponse],
    location_client: MagicMock | None = None,
) -> tuple[ManagementService, MagicMock]:
    client = _mock_client(routes)
    locations = location_client or _mock_client({("GET", "/locations"): _ok(DEFAULT_LOCATIONS)})
    return ManagementService(config, client=client, location_client=locations), client


def _sent(client: MagicMock) -> list[Route]:
    return [(str(c.args[0]), c.args[1]) for c in client.send.call_args_list]


class TestServiceConstruction:
    """Tests for validation and certificate loading at construction."""

    @pytest.mark.unit
    def test_ready_after_construction(self, account_config: AccountConfig) -> None:
        """A valid config and certificate make the service ready."""
        service, _ = _service(account_config, {})

        assert service.state is ServiceState.READY
        assert service.credential is not None
        assert "CN=asm-test" in service.credential.subject

    @pytest.mark.unit
    def test_pfx_certificate(self, pfx_file: Path) -> None:
        """A PKCS#12 file loads the same way."""
        config = AccountConfig(subscription_id="sub-1234", management_certificate=str(pfx_file))

        service, _ = _service(config, {})

        assert service.state is ServiceState.READY

    @pytest.mark.unit
    def test_invalid_subscription_fails(self, pem_file: Path, mocker: Any) -> None:
        """Config errors are raised before any certificate work."""
        mock_logger = mocker.patch(SERVICE_LOGGER)
        load = mocker.patch("service_management.services.management.service.load_credential")
        config = AccountConfig(subscription_id="", management_certificate=str(pem_file))

        with pytest.raises(ConfigError, match="Subscription ID not valid"):
            ManagementService(config, client=MagicMock(), location_client=MagicMock())

        load.assert_not_called()
        mock_logger.bind.return_value.error.assert_called_once_with(
            "Management service initialization failed"
        )

    @pytest.mark.unit
    def test_invalid_certificate_fails(self, mocker: Any) -> None:
        """Unparseable certificate content raises CertificateError."""
        mock_logger = mocker.patch(SERVICE_LOGGER)
        config = AccountConfig(subscription_id="sub-1234", management_certificate="not a cert")

        with pytest.raises(CertificateError):
            ManagementService(config, client=MagicMock(), location_client=MagicMock())

        mock_logger.bind.return_value.error.assert_called_once()

    @pytest.mark.unit
    def test_builds_clients_when_not_given(
        self, account_config: AccountConfig, mocker: Any
    ) -> None:
        """Both clients share one TLS context built from the credential."""
        ssl_context = MagicMock()
        create = mocker.patch(
            "service_management.services.management.service.create_ssl_context",
            return_value=ssl_context,
        )
        client_cls = mocker.patch(
            "service_management.services.management.service.ManagementClient"
        )

        service = ManagementService(account_config)

        create.assert_called_once_with(service.credential, verify=True, ca_path=None)
        assert client_cls.call_args_list == [
            call(account_config, ssl_context),
            call(account_config, ssl_context),
        ]

    @pytest.mark.unit
    def test_ready_event_logged(self, account_config: AccountConfig, mocker: Any) -> None:
        """Reaching READY emits an info event with the thumbprint."""
        mock_logger = mocker.patch(SERVICE_LOGGER)

        service, _ = _service(account_config, {})

        assert service.credential is not None
        mock_logger.bind.assert_called_once_with(subscription_id="sub-1234")
        mock_logger.bind.return_value.info.assert_called_once_with(
            "Management service ready", thumbprint=service.credential.thumbprint
        )

    @pytest.mark.unit
    def test_operations_require_ready(self, account_config: AccountConfig) -> None:
        """Operations are refused once the service is no longer ready."""
        service, client = _service(account_config, {})
        service.state = ServiceState.FAILED

        with pytest.raises(ManagementError, match="not ready"):
            service.list_locations()

        client.send.assert_not_called()

    @pytest.mark.unit
    def test_close_closes_both_clients(self, account_config: AccountConfig) -> None:
        """Closing the service closes both clients."""
        service, client = _service(account_config, {})

        with service:
            pass

        client.close.assert_called_once()
        service._location_client.close.assert_called_once()  # type: ignore[attr-defined]


class TestLocations:
    """Tests for location operations."""

    @pytest.mark.unit
    def test_list_locations(self, account_config: AccountConfig) -> None:
        """Locations are returned in service order."""
        service, _ = _service(account_config, {("GET", "/locations"): _ok(DEFAULT_LOCATIONS)})

        locations = service.list_locations()

        assert [loc.name for loc in locations] == ["West US", "East Asia"]

    @pytest.mark.unit
    def test_list_role_sizes(self, account_config: AccountConfig) -> None:
        """Role sizes are deduplicated and sorted."""
        service, _ = _service(account_config, {("GET", "/locations"): _ok(DEFAULT_LOCATIONS)})

        assert service.list_role_sizes() == ["Large", "Small"]

    @pytest.mark.unit
    def test_list_role_sizes_skips_empty(self, account_config: AccountConfig) -> None:
        """Empty role size entries are dropped."""
        xml = _locations_xml({"West US": ["", "Medium"]})
        service, _ = _service(account_config, {("GET", "/locations"): _ok(xml)})

        assert service.list_role_sizes() == ["Medium"]

    @pytest.mark.unit
    def test_list_role_sizes_no_locations(self, account_config: AccountConfig) -> None:
        """No locations means no role sizes."""
        service, _ = _service(account_config, {("GET", "/locations"): _ok(_locations_xml({}))})

        assert service.list_role_sizes() == []

    @pytest.mark.unit
    def test_transport_error_propagates(self, account_config: AccountConfig) -> None:
        """Transport failures are raised unchanged."""
        client = MagicMock(spec=ManagementClient)
        client.send.side_effect = TransportError(endpoint="/locations")
        service = ManagementService(account_config, client=client, location_client=client)

        with pytest.raises(TransportError):
            service.list_locations()


class TestCreateAffinityGroup:
    """Tests for create_affinity_group."""

    @pytest.mark.unit
    def test_create_posts_body(
        self, account_config: AccountConfig, location_client: MagicMock, mocker: Any
    ) -> None:
        """A new group is checked, validated and posted."""
        mock_logger = mocker.patch(SERVICE_LOGGER)
        service, client = _service(
            account_config,
            {
                ("GET", "/affinitygroups"): _ok(_groups_xml("Bar")),
                ("POST", "/affinitygroups"): ManagementResponse(201, b""),
            },
            location_client,
        )

        service.create_affinity_group("web", "West US", "Web tier", description="Front end")

        assert _sent(client) == [("GET", "/affinitygroups"), ("POST", "/affinitygroups")]
        location_client.send.assert_called_once_with(HttpMethod.GET, "/locations", None)
        body = client.send.call_args.args[2]
        assert b"<Name>web</Name>" in body
        assert base64.b64encode(b"Web tier") in body
        mock_logger.bind.return_value.info.assert_any_call(
            "Affinity group created", name="web", location="West US"
        )

    @pytest.mark.unit
    def test_create_existing_name_conflicts(
        self, account_config: AccountConfig, location_client: MagicMock
    ) -> None:
        """An exact-case duplicate is rejected without a POST."""
        service, client = _service(
            account_config,
            {("GET", "/affinitygroups"): _ok(_groups_xml("Foo", "Bar"))},
            location_client,
        )

        with pytest.raises(ConflictError) as exc_info:
            service.create_affinity_group("Foo", "West US", "label")

        assert exc_info.value.status_code == 409
        assert "An affinity group Foo already exists" in exc_info.value.message
        assert ("POST", "/affinitygroups") not in _sent(client)
        location_client.send.assert_not_called()

    @pytest.mark.unit
    def test_create_different_case_is_sent(
        self, account_config: AccountConfig, location_client: MagicMock
    ) -> None:
        """The pre-check is exact case, so the service decides on 'foo' vs 'Foo'."""
        service, client = _service(
            account_config,
            {
                ("GET", "/affinitygroups"): _ok(_groups_xml("Foo")),
                ("POST", "/affinitygroups"): ManagementResponse(
                    409, _error_xml("ConflictError", "The affinity group name is in use.")
                ),
            },
            location_client,
        )

        with pytest.raises(ConflictError, match="The affinity group name is in use"):
            service.create_affinity_group("foo", "West US", "label")

        assert ("POST", "/affinitygroups") in _sent(client)

    @pytest.mark.unit
    def test_create_unknown_location(
        self, account_config: AccountConfig, location_client: MagicMock
    ) -> None:
        """Unknown locations are rejected before the POST."""
        service, client = _service(
            account_config,
            {("GET", "/affinitygroups"): _ok(_groups_xml())},
            location_client,
        )

        with pytest.raises(ValidationError) as exc_info:
            service.create_affinity_group("web", "Mars", "label")

        assert exc_info.value.allowed_values == ["West US", "East Asia"]
        assert "Allowed values are West US,East Asia" in exc_info.value.message
        assert _sent(client) == [("GET", "/affinitygroups")]

    @pytest.mark.unit
    def test_create_location_case_insensitive(
        self, account_config: AccountConfig, location_client: MagicMock
    ) -> None:
        """Location names match regardless of case."""
        service, client = _service(
            account_config,
            {
                ("GET", "/affinitygroups"): _ok(_groups_xml()),
                ("POST", "/affinitygroups"): ManagementResponse(201, b""),
            },
            location_client,
        )

        service.create_affinity_group("web", "west us", "label")

        assert ("POST", "/affinitygroups") in _sent(client)

    @pytest.mark.unit
    @pytest.mark.parametrize("name", ["", "   "])
    def test_create_blank_name(
        self, account_config: AccountConfig, location_client: MagicMock, name: str
    ) -> None:
        """Blank names are rejected before any request."""
        service, client = _service(account_config, {}, location_client)

        with pytest.raises(ValidationError, match="name cannot be empty"):
            service.create_affinity_group(name, "West US", "label")

        client.send.assert_not_called()


class TestExistingAffinityGroups:
    """Tests for get, update and delete."""

    @pytest.mark.unit
    def test_list_affinity_groups(self, account_config: AccountConfig) -> None:
        """Groups are decoded from the list document."""
        service, _ = _service(
            account_config, {("GET", "/affinitygroups"): _ok(_groups_xml("Foo", "Bar"))}
        )

        assert [g.name for g in service.list_affinity_groups()] == ["Foo", "Bar"]

    @pytest.mark.unit
    def test_get_matches_any_case(self, account_config: AccountConfig) -> None:
        """'foo' finds 'Foo' and its properties are fetched."""
        service, _ = _service(
            account_config,
            {
                ("GET", "/affinitygroups"): _ok(_groups_xml("Foo")),
                ("GET", "/affinitygroups/foo"): _ok(_group_xml("Foo", "Web tier", "West US")),
            },
        )

        group = service.get_affinity_group("foo")

        assert group.name == "Foo"
        assert group.label == "Web tier"
        assert group.location == "West US"

    @pytest.mark.unit
    def test_get_missing(self, account_config: AccountConfig) -> None:
        """A missing group raises NotFoundError without a GET of the group."""
        service, client = _service(
            account_config, {("GET", "/affinitygroups"): _ok(_groups_xml("Foo"))}
        )

        with pytest.raises(NotFoundError):
            service.get_affinity_group("missing")

        assert _sent(client) == [("GET", "/affinitygroups")]

    @pytest.mark.unit
    def test_update(self, account_config: AccountConfig, mocker: Any) -> None:
        """Updates are sent as PUT to the group path."""
        mock_logger = mocker.patch(SERVICE_LOGGER)
        service, client = _service(
            account_config,
            {
                ("GET", "/affinitygroups"): _ok(_groups_xml("Foo")),
                ("PUT", "/affinitygroups/Foo"): _ok(),
            },
        )

        service.update_affinity_group("Foo", "New label", description="New description")

        body = client.send.call_args.args[2]
        assert b"UpdateAffinityGroup" in body
        assert b"<Description>New description</Description>" in body
        mock_logger.bind.return_value.info.assert_any_call("Affinity group updated", name="Foo")

    @pytest.mark.unit
    def test_update_empty_label(self, account_config: AccountConfig) -> None:
        """An empty label is rejected before any request."""
        service, client = _service(account_config, {})

        with pytest.raises(ValidationError, match="Label name cannot be empty"):
            service.update_affinity_group("Foo", "")

        client.send.assert_not_called()

    @pytest.mark.unit
    def test_update_missing(self, account_config: AccountConfig) -> None:
        """Updating a missing group raises NotFoundError."""
        service, _ = _service(account_config, {("GET", "/affinitygroups"): _ok(_groups_xml())})

        with pytest.raises(NotFoundError):
            service.update_affinity_group("Foo", "label")

    @pytest.mark.unit
    def test_delete(self, account_config: AccountConfig, mocker: Any) -> None:
        """Deletes are sent to the group path."""
        mock_logger = mocker.patch(SERVICE_LOGGER)
        service, client = _service(
            account_config,
            {
                ("GET", "/affinitygroups"): _ok(_groups_xml("Foo")),
                ("DELETE", "/affinitygroups/Foo"): _ok(),
            },
        )

        service.delete_affinity_group("Foo")

        assert _sent(client)[-1] == ("DELETE", "/affinitygroups/Foo")
        mock_logger.bind.return_value.info.assert_any_call("Affinity group deleted", name="Foo")

    @pytest.mark.unit
    def test_delete_missing(self, account_config: AccountConfig) -> None:
        """Deleting a missing group reports AffinityGroupNotFound."""
        service, client = _service(
            account_config, {("GET", "/affinitygroups"): _ok(_groups_xml("Foo"))}
        )

        with pytest.raises(NotFoundError) as exc_info:
            service.delete_affinity_group("missing")

        assert exc_info.value.code == "AffinityGroupNotFound"
        assert exc_info.value.message == "The affinity group does not exist."
        assert _sent(client) == [("GET", "/affinitygroups")]

    @pytest.mark.unit
    def test_name_is_quoted_in_path(self, account_config: AccountConfig) -> None:
        """Names are percent-encoded in the request path."""
        service, client = _service(
            account_config,
            {
                ("GET", "/affinitygroups"): _ok(_groups_xml("web tier")),
                ("DELETE", "/affinitygroups/web%20tier"): _ok(),
            },
        )

        service.delete_affinity_group("web tier")

        assert _sent(client)[-1] == ("DELETE", "/affinitygroups/web%20tier")


class TestErrorResponses:
    """Tests for classification of non-2xx responses."""

    @pytest.mark.unit
    def test_404_is_not_found(self, account_config: AccountConfig) -> None:
        """404 becomes NotFoundError carrying the service code."""
        service, _ = _service(
            account_config,
            {
                ("GET", "/affinitygroups"): ManagementResponse(
                    404, _error_xml("ResourceNotFound", "Subscription not found.")
                )
            },
        )

        with pytest.raises(NotFoundError) as exc_info:
            service.list_affinity_groups()

        assert exc_info.value.code == "ResourceNotFound"
        assert exc_info.value.message == "Subscription not found."
        assert exc_info.value.endpoint == "/affinitygroups"

    @pytest.mark.unit
    def test_409_is_conflict(self, account_config: AccountConfig) -> None:
        """409 becomes ConflictError."""
        service, _ = _service(
            account_config,
            {("GET", "/locations"): ManagementResponse(409, _error_xml("Busy", "Try later"))},
        )

        with pytest.raises(ConflictError):
            service.list_locations()

    @pytest.mark.unit
    def test_other_status_is_api_error(self, account_config: AccountConfig) -> None:
        """Other statuses become ManagementAPIError."""
        service, _ = _service(
            account_config,
            {
                ("GET", "/locations"): ManagementResponse(
                    403, _error_xml("ForbiddenError", "The certificate is not registered.")
                )
            },
        )

        with pytest.raises(ManagementAPIError) as exc_info:
            service.list_locations()

        assert type(exc_info.value) is ManagementAPIError
        assert exc_info.value.status_code == 403
        assert exc_info.value.code == "ForbiddenError"

    @pytest.mark.unit
    def test_error_without_body(self, account_config: AccountConfig) -> None:
        """A body-less error falls back to a generic message."""
        service, _ = _service(
            account_config, {("GET", "/locations"): ManagementResponse(500, b"")}
        )

        with pytest.raises(ManagementAPIError, match="Management API error: 500"):
            service.list_locations()
