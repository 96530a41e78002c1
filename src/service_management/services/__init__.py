"""Service layer composing integrations into account operations."""
