"""Core constants for workspace-apply.

This module defines constants used throughout the application:
- Event names published by the batch orchestrator
- Default locations and limits used when no configuration overrides them
"""

# ============================================================================
# Events
# ============================================================================

#: Published once per operation result (applied, skipped or failed)
EVENT_FILE_OPERATION = "file.operation"

#: Published once per batch, after the last attempted operation
EVENT_OPERATIONS_SUMMARY = "file.operations.summary"

# ============================================================================
# Defaults
# ============================================================================

#: Directory inside each workspace root that holds per-batch backup folders
DEFAULT_BACKUP_DIR_NAME = ".workspace_backups"

#: Directory holding per-project workspaces when nothing else is configured
DEFAULT_PROJECTS_ROOT = "workspaces"

#: Upper bound for a single decoded file payload (5 MiB)
DEFAULT_MAX_FILE_BYTES = 5 * 1024 * 1024

#: Default byte cap when reading a file back for display
DEFAULT_READ_MAX_BYTES = 200_000

#: Default recursion depth for workspace listings
DEFAULT_LIST_DEPTH = 2

#: Maximum accepted length of an operation path
MAX_PATH_LENGTH = 1024

#: Bounds on the number of operations in a stored suggestion
MIN_SUGGESTION_OPERATIONS = 1
MAX_SUGGESTION_OPERATIONS = 200
