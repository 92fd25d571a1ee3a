"""External service connectors."""
