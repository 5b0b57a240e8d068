"""Per-batch backup store for destructive file operations.

Before an update or delete touches a file, its current bytes are copied into
a backup folder owned by the batch. The folder is allocated up front but only
created on first use, so batches that never back anything up (including
dry-runs) leave no trace on disk.
"""

import shutil
import time
import uuid
from datetime import UTC, datetime
from pathlib import Path

from workspace_apply.fs.atomic import write_atomic
from workspace_apply.fs.paths import relative_to_root
from workspace_apply.utils.debug import debug


def allocate_backup_folder(root: Path, backup_dir_name: str) -> Path:
    """Build a fresh per-batch backup folder path (not created).

    Args:
        root: Workspace root
        backup_dir_name: Name of the backup area inside the root

    Returns:
        ``<root>/<backup_dir_name>/<UTC timestamp>-<short id>``
    """
    stamp = datetime.now(UTC).strftime("%Y%m%dT%H%M%S%fZ")
    return root / backup_dir_name / f"{stamp}-{uuid.uuid4().hex[:6]}"


class BackupStore:
    """Copies pre-images of files into one batch's backup folder.

    Attributes:
        root: Workspace root the backed-up files live under
        folder: Backup folder owned by this batch
    """

    def __init__(self, root: Path, folder: Path) -> None:
        self.root = root
        self.folder = folder
        self._created = False

    @property
    def materialized(self) -> bool:
        """True once the backup folder exists on disk."""
        return self._created

    def _ensure_folder(self) -> None:
        if not self._created:
            self.folder.mkdir(parents=True, exist_ok=True)
            self._created = True
            debug(f"Created backup folder: {self.folder}")

    def backup_name(self, original: Path) -> str:
        """Derive a collision-free backup file name for ``original``."""
        flat = relative_to_root(self.root, original).replace("/", "_") or "_root"
        name = f"{flat}.{time.time_ns()}.bak"
        while (self.folder / name).exists():
            name = f"{flat}.{time.time_ns()}.{uuid.uuid4().hex[:6]}.bak"
        return name

    def backup(self, original: Path) -> Path:
        """Copy ``original`` into the backup folder.

        Args:
            original: Existing file inside the workspace

        Returns:
            Path of the backup copy

        Raises:
            OSError: If the folder cannot be created or the copy fails
        """
        self._ensure_folder()
        backup_path = self.folder / self.backup_name(original)
        shutil.copy2(original, backup_path)
        debug(f"Backed up {original} -> {backup_path}")
        return backup_path


def restore_backup(backup_path: Path, target: Path) -> None:
    """Atomically copy a backup back over ``target``.

    Parent directories of ``target`` are recreated as needed.

    Raises:
        FileNotFoundError: If the backup no longer exists
        OSError: If the restore write fails
    """
    data = backup_path.read_bytes()
    write_atomic(target, data)
    debug(f"Restored {target} from {backup_path}")
