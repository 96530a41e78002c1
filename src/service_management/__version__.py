"""Version information for service_management."""

__version__ = "0.1.0"
