"""Client for the legacy XML service management API."""

from service_management.__version__ import __version__

__all__ = ["__version__"]
