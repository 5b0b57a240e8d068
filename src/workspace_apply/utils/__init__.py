"""Utility helpers for workspace-apply."""
