"""Atomic file writes and file removal.

A reader of the target path never observes a partially written file:
content goes to a sibling temporary file first and is then renamed over
the target. A crash mid-write leaves at worst an orphaned ``*.tmp`` file.
"""

import os
import secrets
import time
from pathlib import Path

from workspace_apply.fs.paths import ensure_parent_dir
from workspace_apply.utils.debug import debug


def temp_path_for(target: Path) -> Path:
    """Get a unique sibling temp path for ``target``.

    The name embeds a millisecond timestamp and a random suffix so that
    concurrent batches writing the same directory do not collide.
    """
    stamp = int(time.time() * 1000)
    suffix = secrets.token_hex(4)
    return target.with_name(f".{target.name}.{stamp}.{suffix}.tmp")


def write_atomic(target: Path, data: bytes) -> None:
    """Atomically replace ``target`` with ``data``.

    Args:
        target: Destination file path
        data: Bytes to write

    Raises:
        OSError: If the parent cannot be created or the write/rename fails.
            The target is left untouched and the temp file is removed.
    """
    ensure_parent_dir(target)
    tmp = temp_path_for(target)

    try:
        with open(tmp, "wb") as fh:
            fh.write(data)
            fh.flush()
            os.fsync(fh.fileno())
        os.replace(tmp, target)
    except BaseException:
        try:
            tmp.unlink(missing_ok=True)
        except OSError as cleanup_err:
            debug(f"Could not remove temp file {tmp}: {cleanup_err}")
        raise

    debug(f"Atomic write: {target} ({len(data)} bytes)")


def delete_file(target: Path) -> None:
    """Remove a regular file.

    Raises:
        OSError: If the file cannot be removed
    """
    os.remove(target)
    debug(f"Removed file: {target}")
