"""XML encoding and decoding for service management resources."""

from __future__ import annotations

import base64
import binascii

from lxml import etree

from service_management.integrations.management.exceptions import SerializationError
from service_management.integrations.management.models import (
    AffinityGroup,
    HostedServiceReference,
    Location,
    StorageServiceReference,
)

NAMESPACE = "http://schemas.microsoft.com/windowsazure"
NS = {"wa": NAMESPACE}

_parser = etree.XMLParser(
    resolve_entities=False,
    no_network=True,
    remove_blank_text=True,
)


def _parse(xml: bytes) -> etree._Element:
    if not xml or not xml.strip():
        raise SerializationError("Empty response body")
    try:
        return etree.fromstring(xml, _parser)
    except etree.XMLSyntaxError as e:
        raise SerializationError("Malformed XML response", details=str(e)) from e


def _local_name(elem: etree._Element) -> str:
    return etree.QName(elem).localname


def _expect_root(root: etree._Element, name: str) -> None:
    if _local_name(root) != name:
        raise SerializationError(
            "Unexpected XML document", details=f"expected <{name}>, got <{_local_name(root)}>"
        )


def _find_text(elem: etree._Element, path: str) -> str | None:
    found = elem.find(path, NS)
    if found is not None and found.text:
        return found.text
    return None


def _find_all_text(elem: etree._Element, path: str) -> list[str]:
    return [e.text for e in elem.findall(path, NS) if e.text]


def _decode_label(value: str | None) -> str | None:
    """Labels travel base64 encoded; older responses may carry plain text."""
    if value is None:
        return None
    try:
        return base64.b64decode(value, validate=True).decode("utf-8")
    except (binascii.Error, UnicodeDecodeError):
        return value


def _encode_label(value: str) -> str:
    return base64.b64encode(value.encode("utf-8")).decode("ascii")


def _location_from_element(elem: etree._Element) -> Location:
    name = _find_text(elem, "wa:Name")
    if name is None:
        raise SerializationError("Location element has no <Name>")
    role_sizes = [
        e.text
        for e in elem.findall("wa:ComputeCapabilities/wa:VirtualMachinesRoleSizes/wa:RoleSize", NS)
    ]
    return Location(
        name=name,
        display_name=_find_text(elem, "wa:DisplayName"),
        available_services=_find_all_text(elem, "wa:AvailableServices/wa:AvailableService"),
        role_sizes=role_sizes,
    )


def _affinity_group_from_element(elem: etree._Element) -> AffinityGroup:
    name = _find_text(elem, "wa:Name")
    if name is None:
        raise SerializationError("AffinityGroup element has no <Name>")

    hosted = [
        HostedServiceReference(
            url=_find_text(item, "wa:Url"),
            service_name=_find_text(item, "wa:ServiceName"),
        )
        for item in elem.findall("wa:HostedServices/wa:HostedService", NS)
    ]
    storage = [
        StorageServiceReference(
            url=_find_text(item, "wa:Url"),
            service_name=_find_text(item, "wa:ServiceName"),
        )
        for item in elem.findall("wa:StorageServices/wa:StorageService", NS)
    ]

    return AffinityGroup(
        name=name,
        label=_decode_label(_find_text(elem, "wa:Label")),
        description=_find_text(elem, "wa:Description"),
        location=_find_text(elem, "wa:Location"),
        hosted_services=hosted,
        storage_services=storage,
        capabilities=_find_all_text(elem, "wa:Capabilities/wa:Capability"),
    )


def locations_from_xml(xml: bytes) -> list[Location]:
    """Decode a ``<Locations>`` document, preserving document order."""
    root = _parse(xml)
    _expect_root(root, "Locations")
    return [_location_from_element(e) for e in root.findall("wa:Location", NS)]


def affinity_groups_from_xml(xml: bytes) -> list[AffinityGroup]:
    """Decode an ``<AffinityGroups>`` document."""
    root = _parse(xml)
    _expect_root(root, "AffinityGroups")
    return [_affinity_group_from_element(e) for e in root.findall("wa:AffinityGroup", NS)]


def affinity_group_from_xml(xml: bytes) -> AffinityGroup:
    """Decode a single ``<AffinityGroup>`` document."""
    root = _parse(xml)
    _expect_root(root, "AffinityGroup")
    return _affinity_group_from_element(root)


def error_from_xml(xml: bytes) -> tuple[str | None, str | None] | None:
    """Extract code and message from an ``<Error>`` document.

    Returns:
        Tuple of (code, message), or None if the body is not an error document.
    """
    if not xml or not xml.strip():
        return None
    try:
        root = etree.fromstring(xml, _parser)
    except etree.XMLSyntaxError:
        return None
    if _local_name(root) != "Error":
        return None
    return _find_text(root, "wa:Code"), _find_text(root, "wa:Message")


def _document(root_name: str, fields: list[tuple[str, str | None]]) -> bytes:
    root = etree.Element(f"{{{NAMESPACE}}}{root_name}", nsmap={None: NAMESPACE})
    for tag, value in fields:
        if value is None:
            continue
        child = etree.SubElement(root, f"{{{NAMESPACE}}}{tag}")
        child.text = value
    return etree.tostring(root, xml_declaration=True, encoding="utf-8")


def affinity_group_to_xml(
    name: str,
    location: str,
    label: str,
    description: str | None = None,
) -> bytes:
    """Encode a ``<CreateAffinityGroup>`` request body."""
    return _document(
        "CreateAffinityGroup",
        [
            ("Name", name),
            ("Label", _encode_label(label)),
            ("Description", description),
            ("Location", location),
        ],
    )


def affinity_group_update_to_xml(label: str, description: str | None = None) -> bytes:
    """Encode an ``<UpdateAffinityGroup>`` request body."""
    return _document(
        "UpdateAffinityGroup",
        [
            ("Label", _encode_label(label)),
            ("Description", description),
        ],
    )
