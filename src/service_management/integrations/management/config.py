"""Account configuration for the service management API."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any

import structlog
import yaml
from pydantic import BaseModel, ConfigDict, Field, SecretStr, field_validator

from service_management.integrations.management.exceptions import ConfigError

logger = structlog.get_logger()

DEFAULT_MANAGEMENT_ENDPOINT = "https://management.core.windows.net"
DEFAULT_API_VERSION = "2014-06-01"
CERTIFICATE_FILE_EXTENSIONS = (".pem", ".pfx")

# Environment variable -> AccountConfig field
ENV_OVERRIDES = {
    "ASM_SUBSCRIPTION_ID": "subscription_id",
    "ASM_MANAGEMENT_ENDPOINT": "management_endpoint",
    "ASM_MANAGEMENT_CERTIFICATE": "management_certificate",
    "ASM_CERTIFICATE_PASSWORD": "certificate_password",
    "ASM_API_VERSION": "api_version",
}


class AccountConfig(BaseModel):
    """Subscription account configuration.

    Empty values are accepted here; :func:`validate_account_config` decides
    whether the configuration is usable before any request is made.
    """

    model_config = ConfigDict(extra="forbid", frozen=True)

    subscription_id: str = Field(default="", description="Subscription identifier")
    management_endpoint: str = Field(
        default=DEFAULT_MANAGEMENT_ENDPOINT, description="Management API base URL"
    )
    management_certificate: str | bytes = Field(
        default="", description="Certificate file path or inline PEM/PKCS#12 content"
    )
    certificate_password: SecretStr | None = Field(
        default=None, description="Passphrase protecting a PKCS#12 certificate"
    )
    api_version: str = Field(default=DEFAULT_API_VERSION, description="x-ms-version header")
    timeout: float = Field(default=30.0, description="Request timeout in seconds")
    verify_ssl: bool = True
    ca_path: str | None = None

    @field_validator("management_endpoint")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        """Normalize the endpoint so paths can be appended."""
        return v.strip().rstrip("/")

    @field_validator("timeout")
    @classmethod
    def validate_timeout(cls, v: float) -> float:
        """Validate timeout is positive."""
        if v <= 0:
            raise ValueError("timeout must be positive")
        return v

    @property
    def certificate_path(self) -> Path | None:
        """Return the certificate source as a path, if it looks like one.

        Inline PEM content spans several lines and PKCS#12 content is bytes,
        so only single-line strings ending in ``.pem`` or ``.pfx`` qualify.
        """
        source = self.management_certificate
        if not isinstance(source, str) or not source or "\n" in source or "\r" in source:
            return None
        path = Path(source).expanduser()
        if path.suffix.lower() in CERTIFICATE_FILE_EXTENSIONS:
            return path
        return None

    @classmethod
    def get_config_path(cls) -> Path:
        """Get the default config file path.

        Returns:
            Path to the config file (~/.config/asm/config.yaml).
        """
        return Path.home() / ".config" / "asm" / "config.yaml"

    @classmethod
    def from_env(cls, base_config: dict[str, Any] | None = None) -> AccountConfig:
        """Create configuration with environment variable overrides.

        Environment variables take precedence over base_config values.

        Supported environment variables:
            ASM_SUBSCRIPTION_ID: Subscription identifier
            ASM_MANAGEMENT_ENDPOINT: Management API base URL
            ASM_MANAGEMENT_CERTIFICATE: Certificate path or inline content
            ASM_CERTIFICATE_PASSWORD: PKCS#12 passphrase
            ASM_API_VERSION: Value of the x-ms-version header
        """
        config_dict = dict(base_config) if base_config else {}

        for env_var, field_name in ENV_OVERRIDES.items():
            if value := os.environ.get(env_var):
                config_dict[field_name] = value

        try:
            return cls.model_validate(config_dict)
        except ValueError as e:
            raise ConfigError("Invalid account configuration", details=str(e)) from e

    @classmethod
    def load(cls, path: Path | None = None) -> AccountConfig:
        """Load configuration from file and environment.

        Priority:
        1. Environment variables (ASM_*)
        2. Config file (~/.config/asm/config.yaml unless ``path`` is given)

        Args:
            path: Explicit config file location.

        Returns:
            Loaded configuration.

        Raises:
            ConfigError: If the file is given but missing, or is not valid YAML.
        """
        config_path = path or cls.get_config_path()
        data: dict[str, Any] = {}

        if config_path.exists():
            try:
                with config_path.open() as f:
                    loaded = yaml.safe_load(f)
            except (OSError, yaml.YAMLError) as e:
                raise ConfigError(
                    "Invalid config file format",
                    details=f"{config_path}: {e}",
                ) from e
            if loaded is not None and not isinstance(loaded, dict):
                raise ConfigError(
                    "Invalid config file format",
                    details=f"{config_path}: expected a mapping",
                )
            data = loaded or {}
            logger.debug("Loaded account config file", path=str(config_path))
        elif path is not None:
            raise ConfigError("Config file not found", details=str(config_path))

        return cls.from_env(data)


def validate_account_config(config: AccountConfig) -> None:
    """Check that a configuration is usable before the first request.

    Rules are checked in order and the first violation is raised.

    Args:
        config: Account configuration to check.

    Raises:
        ConfigError: If the subscription ID or endpoint is empty, or the
            certificate file cannot be read.
    """
    if not config.subscription_id or not config.subscription_id.strip():
        raise ConfigError("Subscription ID not valid.")

    if not config.management_endpoint:
        raise ConfigError("Management endpoint not valid.")

    cert_path = config.certificate_path
    if cert_path is not None and not (cert_path.is_file() and os.access(cert_path, os.R_OK)):
        raise ConfigError(f"Could not read from file '{cert_path}'.")

    logger.debug(
        "Account configuration validated",
        subscription_id=config.subscription_id,
        endpoint=config.management_endpoint,
    )
