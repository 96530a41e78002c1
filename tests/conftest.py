"""Shared pytest fixtures for service_management tests."""

from __future__ import annotations

import os
from collections.abc import Generator
from pathlib import Path

import pytest
import structlog
from certs import CertificateMaterial, generate_certificate_material
from typer.testing import CliRunner


@pytest.fixture(scope="session")
def cert_material() -> CertificateMaterial:
    """Generate one certificate for the whole test session."""
    return generate_certificate_material()


@pytest.fixture
def pem_file(tmp_path: Path, cert_material: CertificateMaterial) -> Path:
    """Write the certificate and key to a .pem file."""
    path = tmp_path / "management.pem"
    path.write_bytes(cert_material.combined_pem)
    return path


@pytest.fixture
def pfx_file(tmp_path: Path, cert_material: CertificateMaterial) -> Path:
    """Write the unencrypted PKCS#12 container to a .pfx file."""
    path = tmp_path / "management.pfx"
    path.write_bytes(cert_material.pfx)
    return path


@pytest.fixture
def cli_runner() -> CliRunner:
    """Create a Typer CLI test runner."""
    return CliRunner()


@pytest.fixture(autouse=True)
def reset_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    """Clear ASM_ prefixed environment variables for each test."""
    for key in list(os.environ.keys()):
        if key.startswith("ASM_"):
            monkeypatch.delenv(key, raising=False)


@pytest.fixture(autouse=True)
def reset_structlog() -> Generator[None]:
    """Restore structlog defaults after each test."""
    yield
    structlog.reset_defaults()
