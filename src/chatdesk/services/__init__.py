"""Service layer: storage, fan-out and external integrations."""
