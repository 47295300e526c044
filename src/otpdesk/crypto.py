"""AES-256-GCM sealing for TOTP secrets at rest.

Sealed blob layout::

    version (1) | key id (4) | nonce (12) | ciphertext + tag

The header is authenticated as associated data together with the caller's
context (the account id), so a flipped bit anywhere or a blob moved to
another row fails the tag check instead of decrypting into garbage.
"""

from __future__ import annotations

import hashlib
import os

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM

from otpdesk.config import MASTER_KEY_BYTES, Settings
from otpdesk.errors import ConfigurationError, IntegrityError

FORMAT_VERSION = 1
_NONCE_SIZE = 12  # 96-bit nonce for AES-GCM
_KEY_ID_SIZE = 4
_TAG_SIZE = 16
_HEADER_SIZE = 1 + _KEY_ID_SIZE


def key_id(key: bytes) -> bytes:
    """Short public fingerprint of a key, stored in each blob for rotation."""
    return hashlib.sha256(b"otpdesk-key-id" + key).digest()[:_KEY_ID_SIZE]


class SecretVault:
    """Seals and opens secrets with one process-wide key.

    The key is injected once and never exposed; ``repr`` does not show it.
    """

    def __init__(self, key: bytes) -> None:
        if not isinstance(key, bytes) or len(key) != MASTER_KEY_BYTES:
            raise ConfigurationError(f"Encryption key must be {MASTER_KEY_BYTES} bytes")
        self._aead = AESGCM(key)
        self._key_id = key_id(key)

    @classmethod
    def from_settings(cls, settings: Settings) -> SecretVault:
        return cls(settings.master_key_bytes())

    def __repr__(self) -> str:
        return f"SecretVault(key_id={self._key_id.hex()})"

    @property
    def key_id(self) -> bytes:
        return self._key_id

    def seal(self, plaintext: bytes, context: bytes = b"") -> bytes:
        """Encrypt ``plaintext``. Returns the sealed blob."""
        if not plaintext:
            raise ValueError("Refusing to seal an empty secret")
        header = bytes([FORMAT_VERSION]) + self._key_id
        nonce = os.urandom(_NONCE_SIZE)
        ct = self._aead.encrypt(nonce, bytes(plaintext), header + context)
        return header + nonce + ct

    def open(self, blob: bytes, context: bytes = b"") -> bytes:
        """Decrypt a sealed blob, raising IntegrityError if it was altered."""
        blob = bytes(blob)
        if len(blob) < _HEADER_SIZE + _NONCE_SIZE + _TAG_SIZE + 1:
            raise IntegrityError("Sealed secret is truncated")
        header, rest = blob[:_HEADER_SIZE], blob[_HEADER_SIZE:]
        if header[0] != FORMAT_VERSION:
            raise IntegrityError("Sealed secret has an unknown format version")
        if header[1:] != self._key_id:
            raise IntegrityError("Sealed secret was not sealed with the active key")
        nonce, ct = rest[:_NONCE_SIZE], rest[_NONCE_SIZE:]
        try:
            return self._aead.decrypt(nonce, ct, header + context)
        except InvalidTag:
            raise IntegrityError("Sealed secret failed authentication") from None
