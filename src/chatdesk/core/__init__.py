"""Core configuration, security primitives and shared error types."""
