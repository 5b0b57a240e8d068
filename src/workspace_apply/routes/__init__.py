"""Boundary schemas shared by the engine, services and CLI."""
