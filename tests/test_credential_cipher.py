"""Unit tests for the AES-256-GCM credential cipher."""

from __future__ import annotations

import base64
import binascii

import pytest

from app.core.errors import AuthenticationError, ConfigurationError, FormatError
from app.services.credential_cipher import (
    NONCE_LENGTH,
    TAG_LENGTH,
    CredentialCipher,
    CredentialCipherProvider,
    SealedSecret,
    load_encryption_key,
)

VALID_KEY = "a" * 64
OTHER_KEY = "b" * 64


@pytest.fixture
def cipher() -> CredentialCipher:
    return CredentialCipher.from_hex(VALID_KEY)


def _flip_byte(segment: str, index: int = 0) -> str:
    raw = bytearray(base64.b64decode(segment))
    raw[index] ^= 0x01
    return base64.b64encode(bytes(raw)).decode()


class TestSealOpen:
    def test_sealed_value_has_three_base64_parts(self, cipher: CredentialCipher) -> None:
        sealed = cipher.seal("sk-ant-abc123")

        parts = sealed.split(":")
        assert len(parts) == 3
        for part in parts:
            base64.b64decode(part, validate=True)

        assert cipher.open(sealed) == "sk-ant-abc123"

    def test_nonce_and_tag_lengths(self, cipher: CredentialCipher) -> None:
        secret = SealedSecret.parse(cipher.seal("value"))

        assert len(secret.nonce) == NONCE_LENGTH
        assert len(secret.tag) == TAG_LENGTH

    @pytest.mark.parametrize(
        "plaintext",
        ["sk-ant-REDACTED", "", "ünïcødé ✓ 密钥", "a:b:c", "x" * 4096],
    )
    def test_open_returns_original(self, cipher: CredentialCipher, plaintext: str) -> None:
        assert cipher.open(cipher.seal(plaintext)) == plaintext

    def test_sealing_is_probabilistic(self, cipher: CredentialCipher) -> None:
        outputs = {cipher.seal("sk-ant-same-key") for _ in range(100)}

        assert len(outputs) == 100

    def test_ciphers_sharing_a_key_interoperate(self) -> None:
        sealed = CredentialCipher.from_hex(VALID_KEY).seal("shared")

        assert CredentialCipher.from_hex(VALID_KEY.upper()).open(sealed) == "shared"


class TestTamperDetection:
    @pytest.mark.parametrize("segment_index", [1, 2])
    def test_flipped_byte_fails_authentication(
        self, cipher: CredentialCipher, segment_index: int
    ) -> None:
        parts = cipher.seal("original-value").split(":")

        for byte_index in range(len(base64.b64decode(parts[segment_index]))):
            tampered = list(parts)
            tampered[segment_index] = _flip_byte(parts[segment_index], byte_index)
            with pytest.raises(AuthenticationError):
                cipher.open(":".join(tampered))

    def test_flipped_nonce_fails_authentication(self, cipher: CredentialCipher) -> None:
        nonce, tag, ciphertext = cipher.seal("original-value").split(":")

        with pytest.raises(AuthenticationError):
            cipher.open(":".join([_flip_byte(nonce), tag, ciphertext]))

    def test_reversed_ciphertext_fails(self, cipher: CredentialCipher) -> None:
        nonce, tag, ciphertext = cipher.seal("original-value").split(":")
        raw = base64.b64decode(ciphertext)[::-1]

        with pytest.raises(AuthenticationError):
            cipher.open(":".join([nonce, tag, base64.b64encode(raw).decode()]))

    def test_truncated_tag_fails(self, cipher: CredentialCipher) -> None:
        nonce, tag, ciphertext = cipher.seal("original-value").split(":")
        short_tag = base64.b64encode(base64.b64decode(tag)[:8]).decode()

        with pytest.raises(AuthenticationError):
            cipher.open(":".join([nonce, short_tag, ciphertext]))

    def test_swapped_segments_fail(self, cipher: CredentialCipher) -> None:
        nonce, tag, ciphertext = cipher.seal("sixteen-byte-val").split(":")

        with pytest.raises(AuthenticationError):
            cipher.open(":".join([nonce, ciphertext, tag]))

    def test_wrong_key_fails(self, cipher: CredentialCipher) -> None:
        sealed = cipher.seal("original-value")

        with pytest.raises(AuthenticationError):
            CredentialCipher.from_hex(OTHER_KEY).open(sealed)


class TestFormatRejection:
    @pytest.mark.parametrize(
        "value",
        ["not-valid-format", "only:two", "a:b:c:d", "", "::::"],
    )
    def test_wrong_segment_count(self, cipher: CredentialCipher, value: str) -> None:
        with pytest.raises(FormatError) as exc_info:
            cipher.open(value)
        assert exc_info.value.message == "Invalid encrypted data format"

    def test_non_base64_segment(self, cipher: CredentialCipher) -> None:
        nonce, tag, _ = cipher.seal("value").split(":")

        with pytest.raises(FormatError):
            cipher.open(f"{nonce}:{tag}:not*base64!")

    def test_non_ascii_segment(self, cipher: CredentialCipher) -> None:
        _, tag, ciphertext = cipher.seal("value").split(":")

        with pytest.raises(FormatError):
            cipher.open(f"nönce:{tag}:{ciphertext}")

    def test_empty_nonce(self, cipher: CredentialCipher) -> None:
        _, tag, ciphertext = cipher.seal("value").split(":")

        with pytest.raises(FormatError):
            cipher.open(f":{tag}:{ciphertext}")

    def test_format_error_is_not_authentication_error(self, cipher: CredentialCipher) -> None:
        with pytest.raises(FormatError) as exc_info:
            cipher.open("garbage")
        assert not isinstance(exc_info.value, AuthenticationError)


class TestKeyConfiguration:
    @pytest.mark.parametrize("raw", [None, ""])
    def test_missing_key(self, raw: str | None) -> None:
        with pytest.raises(ConfigurationError) as exc_info:
            load_encryption_key(raw)
        assert "ENCRYPTION_KEY environment variable is not set" in exc_info.value.message

    @pytest.mark.parametrize("raw", ["tooshort", "a" * 63, "a" * 65, "a" * 32])
    def test_wrong_length(self, raw: str) -> None:
        with pytest.raises(ConfigurationError) as exc_info:
            load_encryption_key(raw)
        assert "64-character hex string" in exc_info.value.message

    def test_non_hex_key(self) -> None:
        with pytest.raises(ConfigurationError):
            load_encryption_key("z" * 64)

    def test_hex_key_decodes_to_32_bytes(self) -> None:
        assert load_encryption_key(VALID_KEY) == binascii.unhexlify(VALID_KEY)

    @pytest.mark.parametrize("key", [b"", b"\x00" * 16, b"\x00" * 31, b"\x00" * 33])
    def test_raw_key_must_be_32_bytes(self, key: bytes) -> None:
        with pytest.raises(ConfigurationError):
            CredentialCipher(key)


class TestCipherProvider:
    def test_missing_key_fails_on_first_use_not_construction(self) -> None:
        provider = CredentialCipherProvider(lambda: None)

        with pytest.raises(ConfigurationError):
            provider.get()

    def test_caches_cipher_once_resolved(self) -> None:
        calls: list[int] = []

        def source() -> str:
            calls.append(1)
            return VALID_KEY

        provider = CredentialCipherProvider(source)

        assert provider.get() is provider.get()
        assert len(calls) == 1

    def test_recovers_after_key_is_fixed(self) -> None:
        keys = iter([None, VALID_KEY])
        provider = CredentialCipherProvider(lambda: next(keys))

        with pytest.raises(ConfigurationError):
            provider.get()

        cipher = provider.get()
        assert cipher.open(cipher.seal("ok")) == "ok"
