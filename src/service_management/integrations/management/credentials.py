"""Management certificate loading.

The certificate source is either a file path or the certificate content
itself. Content holding a PEM certificate marker is read as PEM (certificate
and RSA key in the same blob); anything else is read as a PKCS#12 container.
"""

from __future__ import annotations

import os
import re
from dataclasses import dataclass
from pathlib import Path

import structlog
from cryptography import x509
from cryptography.exceptions import UnsupportedAlgorithm
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import rsa
from cryptography.hazmat.primitives.serialization import pkcs12

from service_management.integrations.management.exceptions import CertificateError

logger = structlog.get_logger()

PEM_CERTIFICATE_MARKER = b"-----BEGIN CERTIFICATE-----"

_PEM_CERTIFICATE_RE = re.compile(
    rb"-----BEGIN CERTIFICATE-----.+?-----END CERTIFICATE-----",
    re.DOTALL,
)
_PEM_PRIVATE_KEY_RE = re.compile(
    rb"-----BEGIN (?P<kind>RSA |ENCRYPTED )?PRIVATE KEY-----.+?-----END (?P=kind)?PRIVATE KEY-----",
    re.DOTALL,
)

CertificateSource = str | bytes | os.PathLike[str]


@dataclass(frozen=True)
class Credential:
    """Client certificate and private key used for mutual TLS."""

    certificate: x509.Certificate
    private_key: rsa.RSAPrivateKey

    @property
    def subject(self) -> str:
        """Return the certificate subject as an RFC 4514 string."""
        return self.certificate.subject.rfc4514_string()

    @property
    def thumbprint(self) -> str:
        """Return the SHA-1 thumbprint the management portal displays."""
        return self.certificate.fingerprint(hashes.SHA1()).hex().upper()

    @property
    def certificate_pem(self) -> bytes:
        """Return the certificate in PEM encoding."""
        return self.certificate.public_bytes(serialization.Encoding.PEM)

    @property
    def private_key_pem(self) -> bytes:
        """Return the unencrypted private key in PEM encoding."""
        return self.private_key.private_bytes(
            encoding=serialization.Encoding.PEM,
            format=serialization.PrivateFormat.TraditionalOpenSSL,
            encryption_algorithm=serialization.NoEncryption(),
        )


def read_certificate_source(source: CertificateSource) -> bytes:
    """Resolve a certificate source into the raw certificate blob.

    Args:
        source: Path to a certificate file, or the content itself.

    Returns:
        The certificate bytes.

    Raises:
        CertificateError: If the named file cannot be read.
    """
    if isinstance(source, bytes):
        return source

    path_str = os.path.expanduser(os.fspath(source))
    if os.path.isfile(path_str):
        try:
            return Path(path_str).read_bytes()
        except OSError as e:
            raise CertificateError(
                f"Could not read from file '{path_str}'.", details=str(e)
            ) from e

    return os.fspath(source).encode("utf-8")


def is_pem(blob: bytes) -> bool:
    """Return True if the blob carries a PEM certificate."""
    return PEM_CERTIFICATE_MARKER in blob


def _parse_pem(
    blob: bytes, password: bytes | None
) -> tuple[x509.Certificate, rsa.RSAPrivateKey]:
    cert_match = _PEM_CERTIFICATE_RE.search(blob)
    if cert_match is None:
        raise CertificateError(
            "Management certificate not valid.", details="PEM certificate block is incomplete"
        )
    key_match = _PEM_PRIVATE_KEY_RE.search(blob)
    if key_match is None:
        raise CertificateError(
            "Management certificate not valid.", details="no private key found in PEM content"
        )

    certificate = x509.load_pem_x509_certificate(cert_match.group(0))
    private_key = serialization.load_pem_private_key(key_match.group(0), password=password)
    if not isinstance(private_key, rsa.RSAPrivateKey):
        raise CertificateError(
            "Management certificate not valid.", details="private key is not an RSA key"
        )
    return certificate, private_key


def _parse_pkcs12(
    blob: bytes, password: bytes | None
) -> tuple[x509.Certificate, rsa.RSAPrivateKey]:
    private_key, certificate, _ = pkcs12.load_key_and_certificates(blob, password)
    if certificate is None:
        raise CertificateError(
            "Management certificate not valid.", details="PKCS#12 container has no certificate"
        )
    if private_key is None:
        raise CertificateError(
            "Management certificate not valid.", details="PKCS#12 container has no private key"
        )
    if not isinstance(private_key, rsa.RSAPrivateKey):
        raise CertificateError(
            "Management certificate not valid.", details="private key is not an RSA key"
        )
    return certificate, private_key


def parse_certificate(
    blob: bytes, password: str | None = None
) -> tuple[x509.Certificate, rsa.RSAPrivateKey]:
    """Extract the certificate and private key from a PEM or PKCS#12 blob.

    Args:
        blob: Certificate content.
        password: Passphrase for an encrypted key or PKCS#12 container.

    Returns:
        Tuple of (certificate, private key).

    Raises:
        CertificateError: If the content cannot be parsed.
    """
    if not blob or not blob.strip():
        raise CertificateError("Management certificate not valid.", details="empty certificate")

    secret = password.encode("utf-8") if password else None
    parser = _parse_pem if is_pem(blob) else _parse_pkcs12
    try:
        return parser(blob, secret)
    except (ValueError, TypeError, UnsupportedAlgorithm) as e:
        raise CertificateError("Management certificate not valid.", details=str(e)) from e


def load_credential(source: CertificateSource, password: str | None = None) -> Credential:
    """Load the management credential from a path or inline content.

    Args:
        source: Certificate file path, or PEM/PKCS#12 content.
        password: Optional passphrase.

    Returns:
        The loaded credential.

    Raises:
        CertificateError: If the certificate cannot be read or parsed.
    """
    blob = read_certificate_source(source)
    certificate, private_key = parse_certificate(blob, password)
    credential = Credential(certificate=certificate, private_key=private_key)
    logger.debug(
        "Management certificate loaded",
        subject=credential.subject,
        thumbprint=credential.thumbprint,
        format="pem" if is_pem(blob) else "pkcs12",
    )
    return credential
