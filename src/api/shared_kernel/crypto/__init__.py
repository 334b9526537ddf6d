"""Field-level encryption shared kernel module."""

from shared_kernel.crypto.field_cipher import DecodeError, FieldCipher
from shared_kernel.crypto.observability import (
    DefaultFieldCipherProbe,
    FieldCipherProbe,
)

__all__ = [
    "DecodeError",
    "DefaultFieldCipherProbe",
    "FieldCipher",
    "FieldCipherProbe",
]
