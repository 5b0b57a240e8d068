"""Owned store for pending file-operation suggestions.

A suggestion is a planner's proposed batch kept until a user approves or
rejects it. The store is an explicit table owned by whoever constructs it
(typically a ``WorkspaceService``); there is no module-level instance and no
implicit expiry.
"""

from __future__ import annotations

import threading
import uuid
from datetime import UTC, datetime
from typing import Any

from pydantic import ValidationError

from workspace_apply.core.errors import (
    InvalidOperation,
    SuggestionNotFound,
    SuggestionStateError,
)
from workspace_apply.routes.schemas import (
    EmitFilesPayload,
    Suggestion,
    SuggestionStatus,
)


_TRANSITIONS: dict[SuggestionStatus, frozenset[SuggestionStatus]] = {
    SuggestionStatus.PENDING: frozenset(
        {
            SuggestionStatus.APPLYING,
            SuggestionStatus.APPLIED,
            SuggestionStatus.FAILED,
            SuggestionStatus.REJECTED,
        }
    ),
    SuggestionStatus.APPLYING: frozenset(
        {
            SuggestionStatus.PENDING,
            SuggestionStatus.APPLIED,
            SuggestionStatus.FAILED,
        }
    ),
}


class SuggestionStore:
    """In-memory table of suggestions keyed by suggestion id."""

    def __init__(self) -> None:
        self._items: dict[str, Suggestion] = {}
        self._lock = threading.Lock()

    def __len__(self) -> int:
        return len(self._items)

    def __contains__(self, suggestion_id: object) -> bool:
        return suggestion_id in self._items

    def create(self, raw: EmitFilesPayload | dict[str, Any]) -> Suggestion:
        """Validate a payload and store it as a pending suggestion.

        Raises:
            InvalidOperation: If the payload does not validate
        """
        try:
            payload = (
                raw
                if isinstance(raw, EmitFilesPayload)
                else EmitFilesPayload.model_validate(raw)
            )
        except ValidationError as exc:
            raise InvalidOperation(f"Invalid suggestion payload: {exc}") from exc

        suggestion = Suggestion(
            suggestion_id=str(uuid.uuid4()),
            project_id=payload.project_id,
            operations=list(payload.operations),
            meta=payload.meta,
        )
        with self._lock:
            self._items[suggestion.suggestion_id] = suggestion
        return suggestion

    def get(self, suggestion_id: str) -> Suggestion:
        """Return a suggestion.

        Raises:
            SuggestionNotFound: If the id is unknown
        """
        try:
            return self._items[suggestion_id]
        except KeyError:
            raise SuggestionNotFound(suggestion_id) from None

    def update_status(
        self,
        suggestion_id: str,
        status: SuggestionStatus,
        approved_by: str | None = None,
    ) -> Suggestion:
        """Move a suggestion along its lifecycle.

        Pending suggestions may be claimed (``APPLYING``), finished or
        rejected. A claimed suggestion may only be finished or released back
        to pending. Applied, failed and rejected are final.

        Raises:
            SuggestionNotFound: If the id is unknown
            SuggestionStateError: If the transition is not allowed
        """
        with self._lock:
            current = self.get(suggestion_id)
            if status not in _TRANSITIONS.get(current.status, frozenset()):
                raise SuggestionStateError(
                    suggestion_id, current.status.value, status.value
                )
            updated = current.model_copy(
                update={
                    "status": status,
                    "approved_by": approved_by or current.approved_by,
                    "updated_at": datetime.now(UTC),
                }
            )
            self._items[suggestion_id] = updated
        return updated

    def list_suggestions(
        self,
        project_id: str | None = None,
        status: SuggestionStatus | None = None,
    ) -> list[Suggestion]:
        """Return suggestions, oldest first, optionally filtered."""
        items = [
            s
            for s in self._items.values()
            if (project_id is None or s.project_id == project_id)
            and (status is None or s.status is status)
        ]
        return sorted(items, key=lambda s: s.created_at)

    def delete(self, suggestion_id: str) -> None:
        """Remove a suggestion from the table.

        Raises:
            SuggestionNotFound: If the id is unknown
        """
        with self._lock:
            if self._items.pop(suggestion_id, None) is None:
                raise SuggestionNotFound(suggestion_id)
