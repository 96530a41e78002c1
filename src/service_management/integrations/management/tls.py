"""TLS client context carrying the management certificate."""

from __future__ import annotations

import os
import ssl
import tempfile
from pathlib import Path

import structlog

from service_management.integrations.management.credentials import Credential
from service_management.integrations.management.exceptions import CertificateError

logger = structlog.get_logger()


def create_ssl_context(
    credential: Credential,
    verify: bool = True,
    ca_path: str | None = None,
) -> ssl.SSLContext:
    """Build a TLS client context presenting the credential to the server.

    ``ssl`` only loads certificate chains from files, so the PEM pair is
    written to a private temporary directory for the duration of the load.

    Args:
        credential: Client certificate and key.
        verify: Verify the server certificate.
        ca_path: CA bundle used instead of the system store.

    Returns:
        A context ready to pass to ``httpx.Client(verify=...)``.

    Raises:
        CertificateError: If OpenSSL rejects the certificate or key.
    """
    context = ssl.create_default_context(cafile=ca_path)
    if not verify:
        context.check_hostname = False
        context.verify_mode = ssl.CERT_NONE

    with tempfile.TemporaryDirectory(prefix="asm-cert-") as tmpdir:
        cert_file = Path(tmpdir) / "cert.pem"
        key_file = Path(tmpdir) / "key.pem"
        cert_file.write_bytes(credential.certificate_pem)
        # Key material is readable by the owner only
        fd = os.open(key_file, os.O_WRONLY | os.O_CREAT | os.O_EXCL, 0o600)
        with os.fdopen(fd, "wb") as f:
            f.write(credential.private_key_pem)
        try:
            context.load_cert_chain(certfile=str(cert_file), keyfile=str(key_file))
        except ssl.SSLError as e:
            raise CertificateError(
                "Management certificate not valid.", details=str(e)
            ) from e

    logger.debug("TLS client context created", thumbprint=credential.thumbprint, verify=verify)
    return context
