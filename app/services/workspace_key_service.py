"""Workspace API key management (bring-your-own-key storage).

Each workspace may store one third-party API key. Keys are sealed before
they reach the store and only opened in memory at the moment an
integration needs them. Nothing in this service ever returns a stored key
to an HTTP client.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime

from app.adapters.secret_store.base import AbstractSecretStore
from app.core.errors import AuthenticationError, FormatError, ValidationAppError
from app.core.logging import hash_identifier
from app.services.credential_cipher import CredentialCipherProvider

logger = logging.getLogger(__name__)

API_KEY_PREFIX = "sk-ant-"


@dataclass(frozen=True)
class ApiKeyStatus:
    has_key: bool
    last_updated: datetime | None


class WorkspaceKeyService:
    """Seal, store, inspect and clear per-workspace API keys."""

    def __init__(self, *, ciphers: CredentialCipherProvider, store: AbstractSecretStore) -> None:
        self._ciphers = ciphers
        self._store = store

    def status(self, workspace_id: str) -> ApiKeyStatus:
        record = self._store.get(workspace_id)
        if record is None:
            return ApiKeyStatus(has_key=False, last_updated=None)
        return ApiKeyStatus(has_key=True, last_updated=record.updated_at)

    def save_key(self, workspace_id: str, api_key: str) -> None:
        """Validate, seal and store an API key, replacing any previous one.

        Args:
            workspace_id: Owning workspace.
            api_key: Plaintext key as submitted by the user.

        Raises:
            ValidationAppError: If the key is empty or has an unexpected format.
            ConfigurationError: If the encryption key is not configured.
        """
        value = (api_key or "").strip()
        if not value:
            raise ValidationAppError(
                code="api_key_required",
                message="API key is required",
            )
        if not value.startswith(API_KEY_PREFIX):
            raise ValidationAppError(
                code="api_key_invalid_format",
                message=f"Invalid key format. API keys start with '{API_KEY_PREFIX}'",
            )

        sealed = self._ciphers.get().seal(value)
        self._store.put(workspace_id, sealed)

        logger.info(
            "credential.sealed",
            extra={"workspace_hash": hash_identifier(workspace_id)},
        )

    def remove_key(self, workspace_id: str) -> bool:
        removed = self._store.delete(workspace_id)
        logger.info(
            "credential.removed",
            extra={
                "workspace_hash": hash_identifier(workspace_id),
                "removed": removed,
            },
        )
        return removed

    def reveal_key(self, workspace_id: str) -> str | None:
        """Open the workspace's stored key for in-memory use.

        Returns:
            The plaintext key, or None when the workspace has none stored.

        Raises:
            FormatError: If the stored value is malformed.
            AuthenticationError: If the stored value fails verification.
            ConfigurationError: If the encryption key is not configured.
        """
        record = self._store.get(workspace_id)
        if record is None:
            return None

        workspace_hash = hash_identifier(workspace_id)
        try:
            return self._ciphers.get().open(record.sealed)
        except AuthenticationError as exc:
            logger.error(
                "credential.tamper_detected",
                extra={"workspace_hash": workspace_hash, "error_code": exc.code},
            )
            raise
        except FormatError as exc:
            logger.warning(
                "credential.malformed",
                extra={"workspace_hash": workspace_hash, "error_code": exc.code},
            )
            raise
