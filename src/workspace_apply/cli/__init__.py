"""CLI entrypoints for workspace-apply."""

from workspace_apply.cli.apply import app as apply_app

__all__ = ["apply_app"]
