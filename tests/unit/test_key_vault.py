"""
Unit tests for KeyVault.

Tests cover:
- Encrypt / decrypt of private keys
- Fresh nonce per encryption
- Corrupt, truncated and foreign ciphertexts
- Master key validation
"""

import base64

import pytest

from custody.core.exceptions import CorruptCiphertext, ValidationError
from custody.core.key_vault import KeyVault, NONCE_SIZE, TAG_SIZE


PRIVATE_KEY = "4f3edf983ac636a65a842ce7c78d9aa706d3b113bce9c46f30d7d21715b23b1d"


# =============================================================================
# ENCRYPTION TESTS
# =============================================================================


class TestEncryptDecrypt:
    """Tests for sealing and opening key material."""

    def test_decrypt_returns_original_plaintext(self, vault: KeyVault):
        """
        GIVEN a vault with a fixed master key
        WHEN I encrypt a private key and decrypt the blob
        THEN the original key comes back
        """
        blob = vault.encrypt(PRIVATE_KEY)

        assert blob != PRIVATE_KEY
        assert vault.decrypt(blob) == PRIVATE_KEY

    def test_same_plaintext_encrypts_differently(self, vault: KeyVault):
        """
        GIVEN the same private key
        WHEN I encrypt it twice
        THEN the blobs differ (fresh nonce each time)
        """
        first = vault.encrypt(PRIVATE_KEY)
        second = vault.encrypt(PRIVATE_KEY)

        assert first != second
        assert vault.decrypt(first) == vault.decrypt(second) == PRIVATE_KEY

    def test_blob_layout_is_nonce_ciphertext_tag(self, vault: KeyVault):
        """
        GIVEN an encrypted key
        WHEN I decode the blob
        THEN it holds nonce + ciphertext + tag
        """
        raw = base64.b64decode(vault.encrypt(PRIVATE_KEY))

        assert len(raw) == NONCE_SIZE + len(PRIVATE_KEY) + TAG_SIZE


# =============================================================================
# CORRUPTION TESTS
# =============================================================================


class TestCorruptCiphertext:
    """Tests for blobs that must not decrypt."""

    def test_flipped_byte_is_rejected(self, vault: KeyVault):
        """
        GIVEN a valid blob with one ciphertext byte flipped
        WHEN I decrypt it
        THEN CorruptCiphertext is raised
        """
        raw = bytearray(base64.b64decode(vault.encrypt(PRIVATE_KEY)))
        raw[NONCE_SIZE + 3] ^= 0x01
        tampered = base64.b64encode(bytes(raw)).decode("ascii")

        with pytest.raises(CorruptCiphertext):
            vault.decrypt(tampered)

    def test_not_base64_is_rejected(self, vault: KeyVault):
        """Non-base64 text is reported as corrupt."""
        with pytest.raises(CorruptCiphertext):
            vault.decrypt("not base64 at all!")

    def test_truncated_blob_is_rejected(self, vault: KeyVault):
        """A blob shorter than nonce + tag is reported as corrupt."""
        short = base64.b64encode(b"\x00" * (NONCE_SIZE + TAG_SIZE - 1)).decode("ascii")

        with pytest.raises(CorruptCiphertext):
            vault.decrypt(short)

    def test_blob_from_other_master_key_is_rejected(self, vault: KeyVault):
        """
        GIVEN a blob sealed under a different master key
        WHEN this vault decrypts it
        THEN authentication fails with CorruptCiphertext
        """
        other = KeyVault(b"\x42" * 32)
        blob = other.encrypt(PRIVATE_KEY)

        with pytest.raises(CorruptCiphertext):
            vault.decrypt(blob)


# =============================================================================
# MASTER KEY TESTS
# =============================================================================


class TestMasterKey:
    """Tests for master key validation."""

    def test_short_master_key_is_rejected(self):
        with pytest.raises(ValidationError):
            KeyVault(b"\x01" * 16)

    def test_from_hex_builds_working_vault(self):
        vault = KeyVault.from_hex("ab" * 32)

        assert vault.decrypt(vault.encrypt("secret")) == "secret"

    def test_from_hex_rejects_non_hex(self):
        with pytest.raises(ValidationError):
            KeyVault.from_hex("zz" * 32)
