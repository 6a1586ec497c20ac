"""Service layer: persistence-backed implementations and import orchestration."""
