"""Debug utility for workspace-apply.

Provides a single debug() function that can be toggled via the
WORKSPACE_APPLY_DEBUG environment variable. The low-level filesystem
primitives trace through it instead of the structured logger.

Usage:
    from workspace_apply.utils.debug import debug

    debug(f"Atomic write: {target}")

Environment:
    WORKSPACE_APPLY_DEBUG: Set to '1', 'true', 'yes' (case-insensitive) to
                           enable debug output. Any other value or unset
                           disables it.
"""

import os
import sys
from typing import Any

_DEBUG_ENABLED = os.environ.get("WORKSPACE_APPLY_DEBUG", "").lower() in (
    "1",
    "true",
    "yes",
)


def debug(msg: Any) -> None:
    """Print debug message if WORKSPACE_APPLY_DEBUG is enabled.

    Args:
        msg: Message to print. Will be converted to string.

    Note:
        The environment variable is read at module import time. Changing it
        afterwards has no effect unless the module is reloaded.
    """
    if _DEBUG_ENABLED:
        print(f"[DEBUG] {msg}", file=sys.stderr)
