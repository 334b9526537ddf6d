"""Field-level encryption for PII string columns.

AES-256-GCM with a fresh 96-bit nonce per value. A ciphertext field is the
lowercase hex encoding of::

    version (1 byte) || nonce (12 bytes) || ciphertext || tag (16 bytes)

The version byte is authenticated as associated data. Nothing but the key is
needed to decode a field, and encoding the same plaintext twice never yields
the same field, so equality checks must run on decoded plaintext.
"""

from __future__ import annotations

import os
import re

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM

from shared_kernel.crypto.observability import DefaultFieldCipherProbe, FieldCipherProbe

KEY_SIZE = 32
NONCE_SIZE = 12
TAG_SIZE = 16
FORMAT_VERSION = 1

_VERSION_PREFIX = bytes([FORMAT_VERSION])
_MIN_RAW_SIZE = 1 + NONCE_SIZE + TAG_SIZE
_HEX_FIELD = re.compile(r"(?:[0-9a-f]{2})+")


class DecodeError(Exception):
    """Raised when a ciphertext field cannot be turned back into plaintext.

    Tampered data and data encrypted under a different key produce the same
    message, so callers cannot use the error to probe for the key.
    """

    pass


class FieldCipher:
    """Reversible plaintext <-> ciphertext field codec.

    Stateless apart from the key, which is fixed at construction. Instances
    are safe to share between concurrent requests.
    """

    def __init__(self, key: bytes, probe: FieldCipherProbe | None = None) -> None:
        """Initialize the cipher.

        Args:
            key: 32 bytes of AES-256 key material
            probe: Optional domain probe for observability

        Raises:
            ValueError: If the key is not 32 bytes long
        """
        if len(key) != KEY_SIZE:
            raise ValueError(f"AES-256 key must be {KEY_SIZE} bytes")
        self._aesgcm = AESGCM(key)
        self._probe = probe or DefaultFieldCipherProbe()

    def encode(self, plaintext: str) -> str:
        """Encrypt a string into a storable ciphertext field.

        Lone surrogates, which JSON-decoded token claims may carry, are kept
        as-is so every str round-trips.
        """
        nonce = os.urandom(NONCE_SIZE)
        sealed = self._aesgcm.encrypt(
            nonce, plaintext.encode("utf-8", "surrogatepass"), _VERSION_PREFIX
        )
        return (_VERSION_PREFIX + nonce + sealed).hex()

    def decode(self, ciphertext: str) -> str:
        """Decrypt a ciphertext field produced by encode().

        Raises:
            DecodeError: If the field is malformed, was tampered with, or was
                encrypted under a different key
        """
        if not _HEX_FIELD.fullmatch(ciphertext):
            self._probe.decode_failed(reason="malformed")
            raise DecodeError("Ciphertext field is malformed")

        raw = bytes.fromhex(ciphertext)
        if len(raw) < _MIN_RAW_SIZE:
            self._probe.decode_failed(reason="malformed")
            raise DecodeError("Ciphertext field is malformed")

        version, nonce, sealed = raw[:1], raw[1 : 1 + NONCE_SIZE], raw[1 + NONCE_SIZE :]
        if version != _VERSION_PREFIX:
            self._probe.decode_failed(reason="unsupported_version")
            raise DecodeError("Ciphertext field has an unsupported format version")

        try:
            plaintext = self._aesgcm.decrypt(nonce, sealed, version)
        except InvalidTag as e:
            self._probe.decode_failed(reason="integrity")
            raise DecodeError("Ciphertext field failed integrity check") from e

        try:
            return plaintext.decode("utf-8", "surrogatepass")
        except UnicodeDecodeError as e:
            self._probe.decode_failed(reason="encoding")
            raise DecodeError("Ciphertext field is not valid UTF-8") from e

    def encode_optional(self, plaintext: str | None) -> str | None:
        """encode() for nullable columns; None stays None."""
        if plaintext is None:
            return None
        return self.encode(plaintext)

    def decode_optional(self, ciphertext: str | None) -> str | None:
        """decode() for nullable columns; None stays None."""
        if ciphertext is None:
            return None
        return self.decode(ciphertext)
