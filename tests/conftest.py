"""Pytest configuration and fixtures for workspace-apply tests."""

from pathlib import Path

import pytest

from workspace_apply.core.events import RecordingEmitter


@pytest.fixture(autouse=True)
def _isolate_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep developer environment overrides out of the tests."""
    for name in (
        "WORKSPACE_APPLY_PROJECTS_ROOT",
        "WORKSPACE_APPLY_MAX_FILE_BYTES",
        "WORKSPACE_APPLY_BACKUP_DIR",
    ):
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def workspace(tmp_path: Path) -> Path:
    """An empty workspace root with a sibling directory outside it."""
    root = tmp_path / "workspace"
    root.mkdir()
    (tmp_path / "outside").mkdir()
    return root


@pytest.fixture
def recorder() -> RecordingEmitter:
    """Event sink that keeps every event."""
    return RecordingEmitter()


def snapshot(root: Path) -> dict[str, bytes | None]:
    """Map every path under root to its bytes (None for directories)."""
    return {
        str(p.relative_to(root)): (p.read_bytes() if p.is_file() else None)
        for p in sorted(root.rglob("*"))
    }


@pytest.fixture
def take_snapshot():  # type: ignore[no-untyped-def]
    """Return the ``snapshot`` helper."""
    return snapshot
