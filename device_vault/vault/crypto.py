"""
Vault Crypto Core — Signature derivation, envelope encryption and key material.

Implements the two-layer envelope scheme used to deliver secrets to devices:
- Device layer: key = first 32 bytes of the hex signature → AEAD → master key
- Credential layer: key = raw master key → AEAD → credential values

Envelope wire format (hex strings): {"iv": nonce, "content": ciphertext, "tag": tag}

Security Note:
    Never log plaintext, key material or ciphertext values.
    Nonces are random 96-bit and drawn fresh on every seal() call.
"""
import os
import re
import hashlib
import secrets
import logging
from typing import Any, Union

import orjson
from pydantic import BaseModel
from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM, ChaCha20Poly1305

from .exceptions import AuthenticationError, FormatError, KeyFormatError

logger = logging.getLogger("device_vault.vault")

NONCE_SIZE = 12  # 96-bit nonce
TAG_SIZE = 16  # 128-bit tag
KEY_LENGTH = 32  # AES-256
KEY_HEX_LENGTH = KEY_LENGTH * 2

_HEX_PATTERN = re.compile(r"[0-9a-fA-F]*")

_CIPHERS = {
    "aesgcm": AESGCM,
    "chacha20": ChaCha20Poly1305,
}

KeyLike = Union[bytes, str]


def _get_cipher_cls(backend: str) -> type:
    """Return the AEAD cipher class for a backend name."""
    try:
        return _CIPHERS[backend.lower()]
    except KeyError:
        raise ValueError(f"Unsupported cipher backend: {backend}") from None


# ---------------------------------------------------------------------------
# Signature derivation
# ---------------------------------------------------------------------------

def derive_signature(identifier: str, secret: str) -> str:
    """Derive the identity token of a device.

    SHA-256 over ``identifier + secret``, as 64 lowercase hex characters.
    The same pair always yields the same signature.
    """
    return hashlib.sha256(
        (identifier + secret).encode("utf-8")
    ).hexdigest()


# ---------------------------------------------------------------------------
# Key material
# ---------------------------------------------------------------------------

def generate_key_material() -> str:
    """Generate 32 random bytes and return them as 64 hex characters."""
    return secrets.token_bytes(KEY_LENGTH).hex()


def coerce_key(key: KeyLike) -> bytes:
    """Normalize a key to 32 raw bytes.

    Accepts raw bytes or a hex string.

    Raises:
        KeyFormatError: If the key is not exactly 32 bytes / 64 hex chars.
    """
    if isinstance(key, (bytes, bytearray)):
        if len(key) != KEY_LENGTH:
            raise KeyFormatError(
                f"Key must be exactly {KEY_LENGTH} bytes, got {len(key)}"
            )
        return bytes(key)
    if isinstance(key, str):
        if len(key) != KEY_HEX_LENGTH or not _HEX_PATTERN.fullmatch(key):
            raise KeyFormatError(
                f"Key must be a {KEY_HEX_LENGTH}-character hex string "
                f"({KEY_LENGTH} bytes)"
            )
        return bytes.fromhex(key)
    raise KeyFormatError(
        f"Key must be bytes or a hex string, got {type(key).__name__}"
    )


def device_key(signature: str) -> bytes:
    """Derive the envelope key of a device from its signature.

    The key is the first 64 hex characters of the signature, read as
    32 raw bytes. Issued devices depend on this exact derivation.

    Raises:
        KeyFormatError: If the signature is too short or not hex.
    """
    if not isinstance(signature, str) or len(signature) < KEY_HEX_LENGTH:
        raise KeyFormatError("Invalid device signature length")
    return coerce_key(signature[:KEY_HEX_LENGTH])


# ---------------------------------------------------------------------------
# Envelope
# ---------------------------------------------------------------------------

def _unhex(data: dict, field: str) -> bytes:
    value = data.get(field)
    if not isinstance(value, str):
        raise FormatError(f"Envelope field '{field}' is missing")
    if len(value) % 2 or not _HEX_PATTERN.fullmatch(value):
        raise FormatError(f"Envelope field '{field}' is not valid hex")
    return bytes.fromhex(value)


class Envelope(BaseModel):
    """Self-contained output of one AEAD sealing."""

    nonce: bytes
    ciphertext: bytes
    tag: bytes

    def to_dict(self) -> dict[str, str]:
        """Wire form, compatible with deployed device clients."""
        return {
            "iv": self.nonce.hex(),
            "content": self.ciphertext.hex(),
            "tag": self.tag.hex(),
        }

    @classmethod
    def from_dict(cls, data: Any) -> "Envelope":
        """Parse the wire form.

        Raises:
            FormatError: If a field is missing or not valid hex.
        """
        if not isinstance(data, dict):
            raise FormatError("Envelope must be a mapping")
        return cls(
            nonce=_unhex(data, "iv"),
            ciphertext=_unhex(data, "content"),
            tag=_unhex(data, "tag"),
        )

    def to_json(self) -> bytes:
        return orjson.dumps(self.to_dict())

    @classmethod
    def from_json(cls, data: Union[bytes, str]) -> "Envelope":
        try:
            parsed = orjson.loads(data)
        except orjson.JSONDecodeError as err:
            raise FormatError(f"Envelope is not valid JSON: {err}") from err
        return cls.from_dict(parsed)


def seal(plaintext: str, key: KeyLike, backend: str = "aesgcm") -> Envelope:
    """Encrypt plaintext into an Envelope.

    Args:
        plaintext: Text to encrypt (UTF-8 encoded before encryption).
        key: 32 raw bytes or 64 hex characters.
        backend: AEAD primitive, ``aesgcm`` or ``chacha20``.

    Returns:
        Envelope with a freshly generated nonce.

    Raises:
        KeyFormatError: If the key has the wrong size.
    """
    raw_key = coerce_key(key)
    cipher = _get_cipher_cls(backend)(raw_key)
    nonce = os.urandom(NONCE_SIZE)
    ct = cipher.encrypt(nonce, plaintext.encode("utf-8"), None)
    logger.debug("Sealed envelope (nonce=%s...)", nonce.hex()[:8])
    return Envelope(
        nonce=nonce,
        ciphertext=ct[:-TAG_SIZE],
        tag=ct[-TAG_SIZE:],
    )


def open_envelope(envelope: Envelope, key: KeyLike, backend: str = "aesgcm") -> str:
    """Decrypt an Envelope and return its plaintext.

    Raises:
        KeyFormatError: If the key has the wrong size.
        FormatError: If nonce or tag have the wrong size.
        AuthenticationError: If the tag does not verify or the plaintext
            is not valid UTF-8.
    """
    raw_key = coerce_key(key)
    if not isinstance(envelope, Envelope):
        raise FormatError("Expected an Envelope")
    if len(envelope.nonce) != NONCE_SIZE:
        raise FormatError(
            f"Envelope nonce must be {NONCE_SIZE} bytes, got {len(envelope.nonce)}"
        )
    if len(envelope.tag) != TAG_SIZE:
        raise FormatError(
            f"Envelope tag must be {TAG_SIZE} bytes, got {len(envelope.tag)}"
        )
    cipher = _get_cipher_cls(backend)(raw_key)
    try:
        plaintext = cipher.decrypt(
            envelope.nonce, envelope.ciphertext + envelope.tag, None
        )
    except InvalidTag as err:
        raise AuthenticationError("Envelope authentication failed") from err
    try:
        return plaintext.decode("utf-8")
    except UnicodeDecodeError as err:
        raise AuthenticationError("Envelope content cannot be decoded") from err
