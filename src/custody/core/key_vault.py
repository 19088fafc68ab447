"""Authenticated encryption of custody private keys at rest."""

import base64
import binascii
import os

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM

from custody.core.exceptions import CorruptCiphertext, ValidationError

NONCE_SIZE = 12
TAG_SIZE = 16
KEY_SIZE = 32


class KeyVault:
    """
    AES-256-GCM vault for private key material.

    Blob layout (base64): [12-byte nonce][ciphertext][16-byte tag].
    A fresh random nonce is drawn for every call, so encrypting the same
    plaintext twice yields different blobs.
    """

    def __init__(self, master_key: bytes):
        if len(master_key) != KEY_SIZE:
            raise ValidationError("Master key must be 32 bytes (64 hex chars)")
        self._aead = AESGCM(master_key)

    @classmethod
    def from_hex(cls, master_key_hex: str) -> "KeyVault":
        """Build a vault from a 64-character hex master key."""
        try:
            key = bytes.fromhex(master_key_hex)
        except ValueError:
            raise ValidationError("Master key must be hex encoded")
        return cls(key)

    def encrypt(self, plaintext: str) -> str:
        """Encrypt text and return a self-describing base64 blob."""
        nonce = os.urandom(NONCE_SIZE)
        sealed = self._aead.encrypt(nonce, plaintext.encode("utf-8"), None)
        return base64.b64encode(nonce + sealed).decode("ascii")

    def decrypt(self, blob: str) -> str:
        """Decrypt a blob produced by encrypt(); raises CorruptCiphertext."""
        try:
            raw = base64.b64decode(blob, validate=True)
        except (binascii.Error, ValueError, TypeError):
            raise CorruptCiphertext("Ciphertext is not valid base64")

        if len(raw) < NONCE_SIZE + TAG_SIZE:
            raise CorruptCiphertext("Ciphertext is too short")

        nonce, sealed = raw[:NONCE_SIZE], raw[NONCE_SIZE:]
        try:
            plaintext = self._aead.decrypt(nonce, sealed, None)
        except InvalidTag:
            raise CorruptCiphertext()

        try:
            return plaintext.decode("utf-8")
        except UnicodeDecodeError:
            raise CorruptCiphertext("Decrypted key is not valid UTF-8")
