"""Path utilities for sandboxed filesystem operations.

This module turns untrusted, caller-supplied relative paths into absolute
paths that are guaranteed to stay inside a workspace root. It is the only
place where that guarantee is established; everything else in the engine
receives already-resolved paths.
"""

import os
import re
import stat
from dataclasses import dataclass
from pathlib import Path

from workspace_apply.core.errors import (
    InvalidOperation,
    PathEscapesRoot,
    ReservedPath,
)

_DRIVE_PREFIX = re.compile(r"^[A-Za-z]:")


@dataclass(frozen=True)
class PathInfo:
    """On-disk status of a resolved path."""

    exists: bool
    is_file: bool
    is_directory: bool


def normalize_relative(path: str) -> str:
    """Normalize separators and strip leading root markers.

    ``/index.html`` and ``./index.html`` both become ``index.html``.

    Args:
        path: Untrusted relative path

    Returns:
        Path using ``/`` separators with no leading ``/`` or ``./``
    """
    normalized = path.replace("\\", "/").lstrip("/")
    if normalized.startswith("./"):
        normalized = normalized[2:]
    return normalized


def resolve_safe(
    root: str | Path,
    relative_path: str,
    *,
    reserved: str | None = None,
) -> Path:
    """Resolve ``relative_path`` against ``root`` without leaving it.

    Args:
        root: Workspace root directory
        relative_path: Untrusted path relative to root
        reserved: Optional top-level directory name that may not be targeted

    Returns:
        Absolute path inside root (possibly root itself)

    Raises:
        InvalidOperation: If the path is empty or not a string
        PathEscapesRoot: If the path lands outside root, lexically or via symlinks
        ReservedPath: If the path points into the reserved directory
    """
    root_path = Path(os.path.abspath(root))

    if not isinstance(relative_path, str) or not relative_path:
        raise InvalidOperation(f"Invalid path: {relative_path!r}")
    if "\x00" in relative_path or _DRIVE_PREFIX.match(relative_path):
        raise PathEscapesRoot(relative_path, str(root_path))

    normalized = normalize_relative(relative_path)
    candidate = os.path.normpath(os.path.join(root_path, normalized))

    rel = os.path.relpath(candidate, root_path).replace(os.sep, "/")
    if rel == ".":
        rel = ""
    if rel == ".." or rel.startswith("../") or os.path.isabs(rel):
        raise PathEscapesRoot(relative_path, str(root_path), candidate)

    # Symlinks inside the workspace must not lead out of it.
    real_root = os.path.realpath(root_path)
    real_candidate = os.path.realpath(candidate)
    if os.path.commonpath([real_root, real_candidate]) != real_root:
        raise PathEscapesRoot(relative_path, str(root_path), real_candidate)

    if reserved and rel:
        head = rel.split("/", 1)[0]
        if head.casefold() == reserved.casefold():
            raise ReservedPath(relative_path, str(root_path), reserved)

    return Path(candidate)


def relative_to_root(root: str | Path, path: Path) -> str:
    """Return ``path`` relative to ``root`` using ``/`` separators."""
    rel = os.path.relpath(path, os.path.abspath(root)).replace(os.sep, "/")
    return "" if rel == "." else rel


def path_info(path: Path) -> PathInfo:
    """Inspect the current on-disk state of ``path``."""
    try:
        mode = path.stat().st_mode
    except (FileNotFoundError, NotADirectoryError):
        return PathInfo(exists=False, is_file=False, is_directory=False)
    return PathInfo(
        exists=True,
        is_file=stat.S_ISREG(mode),
        is_directory=stat.S_ISDIR(mode),
    )


def ensure_parent_dir(path: Path) -> None:
    """Ensure parent directory exists for a path.

    Raises:
        OSError: If parent directory cannot be created
    """
    parent = path.parent
    if not parent.exists():
        parent.mkdir(parents=True, exist_ok=True)
