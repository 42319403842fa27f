"""In-memory secret store.

Notes:
- Per-process only: values are lost on restart.
- Thread-safe: uses a lock around shared state.
"""

from __future__ import annotations

import threading
from datetime import datetime, timezone
from typing import Callable

from app.adapters.secret_store.base import AbstractSecretStore, StoredSecret


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class InMemorySecretStore(AbstractSecretStore):
    """Dict-backed store used for local runs and tests."""

    def __init__(self, *, clock: Callable[[], datetime] = _utcnow) -> None:
        self._clock = clock
        self._lock = threading.Lock()
        self._by_workspace: dict[str, StoredSecret] = {}

    def get(self, workspace_id: str) -> StoredSecret | None:
        with self._lock:
            return self._by_workspace.get(workspace_id)

    def put(self, workspace_id: str, sealed: str) -> StoredSecret:
        record = StoredSecret(sealed=sealed, updated_at=self._clock())
        with self._lock:
            self._by_workspace[workspace_id] = record
        return record

    def delete(self, workspace_id: str) -> bool:
        with self._lock:
            return self._by_workspace.pop(workspace_id, None) is not None
