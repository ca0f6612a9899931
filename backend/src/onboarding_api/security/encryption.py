"""AES-256-GCM encryption for integration secrets kept in the settings store."""

import base64
import binascii
import json
import os
from typing import Any

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM

from onboarding_api.config import get_settings


class EncryptionService:
    """Encrypts settings secrets (directory bind password, Graph client secret, ...).

    Ciphertext layout: header (2 bytes) + key index (1 byte) + nonce (12 bytes)
    + ciphertext. The key index points into the key chain, which lists retired
    keys first and the active key last, so rotating ``ENCRYPTION_KEY`` keeps
    old secrets readable as long as the old key stays in
    ``ENCRYPTION_KEY_LEGACY``.
    """

    HEADER = b"\xEC\x01"
    NONCE_SIZE = 12

    def __init__(self, current_key: str | None = None, legacy_keys: list[str] | None = None) -> None:
        settings = get_settings()

        if legacy_keys is None:
            legacy_keys = [k.strip() for k in settings.encryption_key_legacy.split(",") if k.strip()]

        self._keys: list[bytes] = [self._decode_key(k) for k in legacy_keys]
        self._keys.append(self._decode_key(current_key or settings.encryption_key))
        self._active = AESGCM(self._keys[-1])

    @staticmethod
    def _decode_key(key: str) -> bytes:
        """Decode a URL-safe base64 key and check it is 256 bits.

        Raises:
            ValueError: If key is not valid base64 or not 32 bytes
        """
        try:
            decoded = base64.urlsafe_b64decode(key + "=" * (-len(key) % 4))
        except (binascii.Error, ValueError) as e:
            raise ValueError(f"Invalid base64-encoded encryption key: {type(e).__name__}") from e

        if len(decoded) != 32:
            raise ValueError("Encryption key must be 32 bytes (256 bits)")
        return decoded

    def encrypt(self, data: dict[str, Any]) -> bytes:
        """Encrypt a JSON-serializable dictionary with the active key."""
        nonce = os.urandom(self.NONCE_SIZE)
        ciphertext = self._active.encrypt(nonce, json.dumps(data).encode("utf-8"), None)
        return self.HEADER + bytes([len(self._keys) - 1]) + nonce + ciphertext

    def decrypt(self, encrypted_data: bytes) -> dict[str, Any]:
        """Decrypt bytes produced by :meth:`encrypt`.

        The key named in the header is tried first, then every key in the
        chain from newest to oldest.

        Raises:
            ValueError: If the data is malformed or no key opens it
        """
        offset = len(self.HEADER) + 1
        if len(encrypted_data) <= offset + self.NONCE_SIZE or not encrypted_data.startswith(self.HEADER):
            raise ValueError("Invalid encrypted data")

        index = encrypted_data[len(self.HEADER)]
        nonce = encrypted_data[offset : offset + self.NONCE_SIZE]
        ciphertext = encrypted_data[offset + self.NONCE_SIZE :]

        candidates = list(reversed(self._keys))
        if index < len(self._keys):
            candidates.insert(0, self._keys[index])

        for key in candidates:
            try:
                plaintext = AESGCM(key).decrypt(nonce, ciphertext, None)
                return json.loads(plaintext.decode("utf-8"))
            except (InvalidTag, ValueError):
                continue

        raise ValueError("Decryption failed: no valid key found")

    def encrypt_string(self, data: str) -> bytes:
        """Encrypt a single string value."""
        return self.encrypt({"value": data})

    def decrypt_string(self, encrypted_data: bytes) -> str:
        """Decrypt a single string value."""
        return self.decrypt(encrypted_data)["value"]


_encryption_service: EncryptionService | None = None


def get_encryption_service() -> EncryptionService:
    """Get or create the encryption service singleton."""
    global _encryption_service
    if _encryption_service is None:
        _encryption_service = EncryptionService()
    return _encryption_service
