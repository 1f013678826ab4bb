"""Reversible obfuscation of chat message bodies.

This is NOT encryption. The key is shared with every client through the
public ``/api/config`` endpoint, so anyone who can reach that endpoint can
read every message. It only keeps casual readers of the raw table (or of a
database dump) from seeing plaintext.

Encoding is a byte-wise XOR of the UTF-8 body against the UTF-8 key repeated
cyclically, followed by standard base64 so the result is plain text. Working
on bytes rather than code points keeps multi-byte characters intact.
"""

from __future__ import annotations

import base64
import binascii
from typing import Final

# Preview shown for a conversation that has no messages yet. Never decoded.
EMPTY_PLACEHOLDER: Final[str] = "[no messages yet]"

PASSTHROUGH_VALUES: Final[frozenset[str]] = frozenset({EMPTY_PLACEHOLDER, ""})


def _xor(data: bytes, key: bytes) -> bytes:
    key_len = len(key)
    return bytes(byte ^ key[index % key_len] for index, byte in enumerate(data))


def encode(plaintext: str, key: str | None) -> str:
    """Obfuscate ``plaintext`` with ``key``.

    Args:
        plaintext: Message body
        key: Shared obfuscation key; empty or None disables the transform

    Returns:
        Base64 text, or ``plaintext`` unchanged when no key is configured
    """
    if not key:
        return plaintext
    mixed = _xor(plaintext.encode("utf-8"), key.encode("utf-8"))
    return base64.b64encode(mixed).decode("ascii")


def decode(encoded: str, key: str | None) -> str:
    """Reverse :func:`encode`.

    Input that is not valid base64 (legacy rows stored before the transform
    existed) is returned unchanged. A corrupted but decodable value is not
    detected: it decodes to garbage, or is returned unchanged when the XOR
    output is not valid UTF-8.
    """
    if not key or encoded in PASSTHROUGH_VALUES:
        return encoded
    try:
        raw = base64.b64decode(encoded, validate=True)
    except (binascii.Error, ValueError):
        return encoded
    try:
        return _xor(raw, key.encode("utf-8")).decode("utf-8")
    except UnicodeDecodeError:
        return encoded


class MessageCodec:
    """Key-bound wrapper so callers do not pass the key around."""

    def __init__(self, key: str | None) -> None:
        self.key = key or None

    @property
    def enabled(self) -> bool:
        return self.key is not None

    def encode(self, plaintext: str) -> str:
        return encode(plaintext, self.key)

    def decode(self, encoded: str) -> str:
        return decode(encoded, self.key)
