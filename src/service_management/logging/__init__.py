"""Logging configuration for service_management."""

from service_management.logging.config import configure_logging, get_logger

__all__ = ["configure_logging", "get_logger"]
