"""Core services, configuration and error types for workspace-apply."""
