"""Remote API integrations."""
