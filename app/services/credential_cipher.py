"""AES-256-GCM envelope cipher for third-party API keys stored at rest.

Sealed values are stored as a single text column in the shape::

    <base64 nonce>:<base64 tag>:<base64 ciphertext>

Every seal draws a fresh 128-bit nonce, so sealing the same plaintext twice
yields two different strings. Opening verifies the GCM tag before any
plaintext is returned.
"""

from __future__ import annotations

import base64
import binascii
import logging
import os
import threading
from dataclasses import dataclass
from typing import Callable

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM

from app.core.errors import AuthenticationError, ConfigurationError, FormatError

logger = logging.getLogger(__name__)

KEY_LENGTH = 32
KEY_HEX_LENGTH = KEY_LENGTH * 2
NONCE_LENGTH = 16
TAG_LENGTH = 16
MIN_NONCE_LENGTH = 12
SEPARATOR = ":"

_KEY_HINT = "Generate one with: openssl rand -hex 32"


def load_encryption_key(raw: str | None) -> bytes:
    """Decode the configured ``ENCRYPTION_KEY`` into 32 raw bytes.

    Args:
        raw: 64-character hex string, or None when unset.

    Returns:
        The 256-bit key.

    Raises:
        ConfigurationError: If the value is missing, not 64 characters long,
            or not valid hex.
    """
    if not raw:
        raise ConfigurationError(
            code="encryption_key_missing",
            message="ENCRYPTION_KEY environment variable is not set",
            details={"hint": _KEY_HINT},
        )

    value = raw.strip()
    if len(value) != KEY_HEX_LENGTH:
        raise ConfigurationError(
            code="encryption_key_invalid_length",
            message="ENCRYPTION_KEY must be a 64-character hex string (32 bytes)",
            details={
                "hint": _KEY_HINT,
                "expected_length": KEY_HEX_LENGTH,
                "actual_length": len(value),
            },
        )

    try:
        return bytes.fromhex(value)
    except ValueError as exc:
        raise ConfigurationError(
            code="encryption_key_not_hex",
            message="ENCRYPTION_KEY must contain only hexadecimal characters",
            details={"hint": _KEY_HINT},
        ) from exc


@dataclass(frozen=True)
class SealedSecret:
    """One encrypted credential as persisted.

    Attributes:
        nonce: Random per-seal nonce (12-16 bytes; 16 when produced here).
        tag: 128-bit GCM authentication tag.
        ciphertext: Encrypted UTF-8 bytes of the secret.
    """

    nonce: bytes
    tag: bytes
    ciphertext: bytes

    def serialize(self) -> str:
        """Render the storage form ``nonce:tag:ciphertext`` (base64 each)."""
        return SEPARATOR.join(
            base64.b64encode(part).decode("ascii")
            for part in (self.nonce, self.tag, self.ciphertext)
        )

    @classmethod
    def parse(cls, sealed: str) -> "SealedSecret":
        """Parse the storage form back into its three components.

        Raises:
            FormatError: If the value does not split into exactly three
                base64 segments or the nonce has an unusable length.
        """
        parts = sealed.split(SEPARATOR)
        if len(parts) != 3:
            raise FormatError(
                code="sealed_secret_malformed",
                message="Invalid encrypted data format",
                details={"segment_count": len(parts)},
            )

        try:
            nonce, tag, ciphertext = (
                base64.b64decode(part.encode("ascii"), validate=True) for part in parts
            )
        except (binascii.Error, UnicodeEncodeError) as exc:
            raise FormatError(
                code="sealed_secret_not_base64",
                message="Invalid encrypted data format",
            ) from exc

        if not MIN_NONCE_LENGTH <= len(nonce) <= NONCE_LENGTH:
            raise FormatError(
                code="sealed_secret_bad_nonce",
                message="Invalid encrypted data format",
                details={"expected_length": NONCE_LENGTH, "actual_length": len(nonce)},
            )

        return cls(nonce=nonce, tag=tag, ciphertext=ciphertext)


class CredentialCipher:
    """Seal and open secrets under one process-wide 256-bit key.

    Stateless apart from the read-only key; safe to share across threads.
    """

    def __init__(self, key: bytes) -> None:
        if len(key) != KEY_LENGTH:
            raise ConfigurationError(
                code="encryption_key_invalid_length",
                message="Encryption key must be exactly 32 bytes",
                details={"expected_length": KEY_LENGTH, "actual_length": len(key)},
            )
        self._aead = AESGCM(key)

    @classmethod
    def from_hex(cls, hex_key: str | None) -> "CredentialCipher":
        return cls(load_encryption_key(hex_key))

    def seal(self, plaintext: str) -> str:
        """Encrypt ``plaintext`` and return its storage form."""
        nonce = os.urandom(NONCE_LENGTH)
        ct_full = self._aead.encrypt(nonce, plaintext.encode("utf-8"), None)
        sealed = SealedSecret(
            nonce=nonce,
            tag=ct_full[-TAG_LENGTH:],
            ciphertext=ct_full[:-TAG_LENGTH],
        )
        return sealed.serialize()

    def open(self, sealed: str) -> str:
        """Verify and decrypt a value produced by :meth:`seal`.

        Raises:
            FormatError: If ``sealed`` is not ``nonce:tag:ciphertext``.
            AuthenticationError: If the tag does not verify.
        """
        secret = SealedSecret.parse(sealed)

        # A truncated tag can never verify; report it as a failed check.
        if len(secret.tag) != TAG_LENGTH:
            raise AuthenticationError(
                code="sealed_secret_auth_failed",
                message="Encrypted data failed integrity verification",
                details={"expected_length": TAG_LENGTH, "actual_length": len(secret.tag)},
            )

        try:
            plaintext = self._aead.decrypt(secret.nonce, secret.ciphertext + secret.tag, None)
        except InvalidTag as exc:
            raise AuthenticationError(
                code="sealed_secret_auth_failed",
                message="Encrypted data failed integrity verification",
            ) from exc

        try:
            return plaintext.decode("utf-8")
        except UnicodeDecodeError as exc:
            raise FormatError(
                code="sealed_secret_not_utf8",
                message="Decrypted data is not valid UTF-8",
            ) from exc


class CredentialCipherProvider:
    """Resolve the configured key on first use and cache the cipher.

    Failures are not cached: once an operator fixes ``ENCRYPTION_KEY`` the
    next call succeeds.
    """

    def __init__(self, key_source: Callable[[], str | None]) -> None:
        self._key_source = key_source
        self._cipher: CredentialCipher | None = None
        self._lock = threading.Lock()

    def get(self) -> CredentialCipher:
        if self._cipher is not None:
            return self._cipher

        with self._lock:
            if self._cipher is None:
                try:
                    self._cipher = CredentialCipher.from_hex(self._key_source())
                except ConfigurationError as exc:
                    logger.error(
                        "credential.key_unavailable",
                        extra={"error_code": exc.code},
                    )
                    raise
                logger.info("credential.cipher_ready")
            return self._cipher
