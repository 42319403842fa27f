"""Secret store interfaces."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime


@dataclass(frozen=True)
class StoredSecret:
    """A sealed secret as persisted for one workspace.

    Attributes:
        sealed: Storage form ``nonce:tag:ciphertext``.
        updated_at: When this value was written (UTC).
    """

    sealed: str
    updated_at: datetime


class AbstractSecretStore(ABC):
    """Interface for sealed-credential persistence, keyed by workspace id."""

    @abstractmethod
    def get(self, workspace_id: str) -> StoredSecret | None:
        raise NotImplementedError

    @abstractmethod
    def put(self, workspace_id: str, sealed: str) -> StoredSecret:
        """Replace the workspace's sealed secret with a new value."""
        raise NotImplementedError

    @abstractmethod
    def delete(self, workspace_id: str) -> bool:
        """Clear the workspace's sealed secret.

        Returns:
            True if a value was removed.
        """
        raise NotImplementedError
