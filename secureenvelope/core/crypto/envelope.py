"""
Hybrid Encryption Envelope
==========================

Combines RSA key wrapping with AES bulk encryption into one
self-describing byte blob.

Encryption Flow:
    plaintext
        ↓ AES-256-CBC + PKCS#7 (ephemeral key, ephemeral IV)
    ciphertext
        ↓ RSA-OAEP wrap (ephemeral key) under recipient public key
    envelope (header + wrapped key + IV + ciphertext)

Decryption Flow:
    envelope
        ↓ parse header (full 4-byte lengths, bounds-checked)
        ↓ RSA-OAEP unwrap → ephemeral key
        ↓ AES-256-CBC decrypt + strip padding
    plaintext

Wire Format (little-endian):
    WRAPPED_KEY_LEN (4) | IV_LEN (4) | WRAPPED_KEY | IV | CIPHERTEXT

    The header field order is fixed; any decoder relies on it.

WARNING:
    - A fresh key and IV are generated for every envelope
    - Any structural defect = complete rejection (fail-closed)
"""

from __future__ import annotations

import logging
import struct
from dataclasses import dataclass
from typing import Final

from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.asymmetric import padding, rsa

from secureenvelope.core.crypto.aes_cbc import (
    AES_BLOCK_SIZE,
    AES_IV_SIZE,
    AES_KEY_SIZE,
    AesCbcCipher,
)
from secureenvelope.core.errors import (
    DecryptionError,
    EmptyPayloadError,
    EnvelopeCorruptError,
    KeyMismatchError,
)

HEADER_FORMAT: Final[str] = "<II"
HEADER_SIZE: Final[int] = struct.calcsize(HEADER_FORMAT)  # 8

_OAEP_HASHES: Final[dict[str, type[hashes.HashAlgorithm]]] = {
    "sha1": hashes.SHA1,
    "sha256": hashes.SHA256,
}


@dataclass(frozen=True, slots=True)
class Envelope:
    """
    Immutable hybrid-encryption envelope.

    Contains everything needed for decryption except the private key:
    - The ephemeral AES key, wrapped under the recipient's RSA public key
    - The IV used for bulk encryption
    - The AES-CBC ciphertext

    Transient: built, serialized and handed to the caller.
    """

    wrapped_key: bytes
    iv: bytes
    ciphertext: bytes

    def to_bytes(self) -> bytes:
        """
        Serialize the envelope.

        Format:
            WRAPPED_KEY_LEN (4, LE) | IV_LEN (4, LE) |
            WRAPPED_KEY | IV | CIPHERTEXT
        """
        return b"".join([
            struct.pack(HEADER_FORMAT, len(self.wrapped_key), len(self.iv)),
            self.wrapped_key,
            self.iv,
            self.ciphertext,
        ])

    @classmethod
    def from_bytes(cls, data: bytes) -> "Envelope":
        """
        Parse an envelope.

        Both lengths are read as full unsigned 32-bit integers and checked
        against the buffer before any slicing.

        Raises:
            EnvelopeCorruptError: If the header is truncated, the declared
                                  lengths overrun the buffer, or the
                                  ciphertext is not a positive block multiple
        """
        if len(data) < HEADER_SIZE:
            raise EnvelopeCorruptError("Invalid envelope: truncated header")

        wrapped_key_len, iv_len = struct.unpack_from(HEADER_FORMAT, data, 0)

        body_offset = HEADER_SIZE + wrapped_key_len + iv_len
        if body_offset > len(data):
            raise EnvelopeCorruptError(
                "Invalid envelope: declared lengths exceed envelope size",
                details={
                    "wrapped_key_length": wrapped_key_len,
                    "iv_length": iv_len,
                    "envelope_length": len(data),
                },
            )

        offset = HEADER_SIZE
        wrapped_key = bytes(data[offset : offset + wrapped_key_len])
        offset += wrapped_key_len
        iv = bytes(data[offset : offset + iv_len])
        offset += iv_len
        ciphertext = bytes(data[offset:])

        if not ciphertext or len(ciphertext) % AES_BLOCK_SIZE:
            raise EnvelopeCorruptError(
                "Invalid envelope: ciphertext is not a positive multiple of the block size"
            )

        return cls(wrapped_key=wrapped_key, iv=iv, ciphertext=ciphertext)

    def __repr__(self) -> str:
        """Safe representation."""
        return (
            f"Envelope(wrapped_key_len={len(self.wrapped_key)}, "
            f"iv_len={len(self.iv)}, ct_len={len(self.ciphertext)})"
        )


class EnvelopeCodec:
    """
    Hybrid RSA + AES envelope encoder/decoder.

    Usage:
        codec = EnvelopeCodec()

        blob = codec.encode(public_key, b"Some Secret Data")
        plaintext = codec.decode(private_key, blob)

    Thread safety:
        The codec holds only its padding choice. Every ephemeral key, IV
        and buffer is local to the call, so one codec can serve concurrent
        callers.

    Security Notes:
        - OAEP with MGF1; SHA-1 by default, which is what existing peers
          wrap with. SHA-256 is opt-in and both sides must agree
        - CBC has no authentication tag; the envelope detects structural
          corruption and padding failures, not every bit flip
    """

    __slots__ = ("_aes", "_oaep_hash", "_log")

    def __init__(self, oaep_hash: str = "sha1") -> None:
        """
        Initialize the codec.

        Args:
            oaep_hash: "sha1" (default) or "sha256"
        """
        if oaep_hash not in _OAEP_HASHES:
            raise ValueError(f"Unsupported OAEP hash: {oaep_hash}")
        self._aes = AesCbcCipher()
        self._oaep_hash = oaep_hash
        self._log = logging.getLogger("secureenvelope.envelope")

    @property
    def oaep_hash(self) -> str:
        """Name of the hash used for OAEP and MGF1."""
        return self._oaep_hash

    def _oaep(self) -> padding.OAEP:
        algorithm = _OAEP_HASHES[self._oaep_hash]
        return padding.OAEP(
            mgf=padding.MGF1(algorithm=algorithm()),
            algorithm=algorithm(),
            label=None,
        )

    def seal(self, public_key: rsa.RSAPublicKey, plaintext: bytes) -> Envelope:
        """
        Encrypt plaintext into an Envelope object.

        Args:
            public_key: Recipient's RSA public key
            plaintext: Data to encrypt (must not be empty)

        Returns:
            Envelope with wrapped key, IV and ciphertext

        Raises:
            EmptyPayloadError: If plaintext is empty
        """
        if not plaintext:
            raise EmptyPayloadError("Cannot encrypt an empty payload")

        # Ephemeral key material, never stored on the instance
        key = self._aes.generate_key(AES_KEY_SIZE * 8)
        iv = self._aes.generate_iv()

        ciphertext = self._aes.encrypt(plaintext, key, iv)
        wrapped_key = public_key.encrypt(key, self._oaep())

        self._log.debug(
            "Sealed envelope: wrapped_key=%d iv=%d ciphertext=%d",
            len(wrapped_key), len(iv), len(ciphertext),
        )
        return Envelope(wrapped_key=wrapped_key, iv=iv, ciphertext=ciphertext)

    def open(self, private_key: rsa.RSAPrivateKey, envelope: Envelope) -> bytes:
        """
        Decrypt an Envelope object.

        Raises:
            EnvelopeCorruptError: Wrong IV size, wrapped key not a valid
                                  ciphertext for the key, or bad padding
            KeyMismatchError: If the private key does not match the key
                              used to wrap
        """
        if len(envelope.iv) != AES_IV_SIZE:
            raise EnvelopeCorruptError(
                f"Invalid envelope: IV must be {AES_IV_SIZE} bytes"
            )

        modulus_bytes = (private_key.key_size + 7) // 8
        if len(envelope.wrapped_key) != modulus_bytes:
            raise EnvelopeCorruptError(
                "Invalid envelope: wrapped key size does not match the private key"
            )

        try:
            key = private_key.decrypt(envelope.wrapped_key, self._oaep())
        except ValueError as exc:
            self._log.warning("Envelope key unwrap failed")
            raise KeyMismatchError(
                "Wrapped key could not be unwrapped - wrong private key"
            ) from exc

        if len(key) != AES_KEY_SIZE:
            raise EnvelopeCorruptError("Invalid envelope: unwrapped key has wrong size")

        try:
            return self._aes.decrypt(envelope.ciphertext, key, envelope.iv)
        except DecryptionError as exc:
            raise EnvelopeCorruptError("Invalid envelope: padding check failed") from exc

    def encode(self, public_key: rsa.RSAPublicKey, plaintext: bytes) -> bytes:
        """
        Encrypt plaintext and serialize the envelope.

        Args:
            public_key: Recipient's RSA public key
            plaintext: Data to encrypt (must not be empty)

        Returns:
            Envelope bytes

        Raises:
            EmptyPayloadError: If plaintext is empty
        """
        return self.seal(public_key, plaintext).to_bytes()

    def decode(self, private_key: rsa.RSAPrivateKey, data: bytes) -> bytes:
        """
        Parse and decrypt envelope bytes.

        Args:
            private_key: RSA private key matching the wrapping public key
            data: Envelope bytes from encode()

        Returns:
            Decrypted plaintext

        Raises:
            EnvelopeCorruptError: If the envelope is structurally invalid
            KeyMismatchError: If the private key does not match
        """
        return self.open(private_key, Envelope.from_bytes(data))
