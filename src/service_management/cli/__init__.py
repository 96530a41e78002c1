"""Command-line interface for service_management."""
