"""
AES-CBC Symmetric Encryption
============================

Implements AES in CBC mode with PKCS#7 padding.

Used for two things:
    1. Bulk encryption inside the hybrid envelope (fresh key/IV per call)
    2. The direct symmetric path, where the caller holds the key and IV

Properties:
    - 128/192/256-bit keys (256 for envelopes)
    - 128-bit IV (one AES block)
    - Ciphertext length is always a positive multiple of 16; input that is
      already a block multiple gains one full padding block

WARNING:
    - CBC provides confidentiality only; there is no authentication tag
    - Never reuse a (key, IV) pair for different messages when the
      envelope path is available
"""

from __future__ import annotations

import secrets
from typing import Final

from cryptography.hazmat.primitives import padding
from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes

from secureenvelope.core.errors import DecryptionError

AES_BLOCK_SIZE: Final[int] = 16  # 128 bits
AES_IV_SIZE: Final[int] = 16  # 128 bits
AES_KEY_SIZE: Final[int] = 32  # 256 bits, used for envelopes
AES_VALID_KEY_SIZES: Final[frozenset[int]] = frozenset({16, 24, 32})


def _check_key_and_iv(key: bytes, iv: bytes) -> None:
    if len(key) not in AES_VALID_KEY_SIZES:
        raise ValueError("Key must be 16, 24, or 32 bytes")
    if len(iv) != AES_IV_SIZE:
        raise ValueError(f"IV must be exactly {AES_IV_SIZE} bytes")


class AesCbcCipher:
    """
    AES-CBC cipher with PKCS#7 padding.

    Stateless: every call builds its own cipher context, so one instance can
    be shared between threads.

    Usage:
        cipher = AesCbcCipher()
        key, iv = cipher.generate_key(), cipher.generate_iv()

        ciphertext = cipher.encrypt(b"Some Secret Data", key, iv)
        plaintext = cipher.decrypt(ciphertext, key, iv)
    """

    __slots__ = ()

    @staticmethod
    def generate_key(bits: int = 256) -> bytes:
        """
        Generate a cryptographically secure random AES key.

        Args:
            bits: 128, 192 or 256

        Returns:
            bits // 8 bytes from the OS CSPRNG
        """
        if bits // 8 not in AES_VALID_KEY_SIZES or bits % 8:
            raise ValueError("AES key size must be 128, 192, or 256 bits")
        return secrets.token_bytes(bits // 8)

    @staticmethod
    def generate_iv() -> bytes:
        """Generate a random 16-byte IV."""
        return secrets.token_bytes(AES_IV_SIZE)

    def encrypt(self, plaintext: bytes, key: bytes, iv: bytes) -> bytes:
        """
        Encrypt plaintext using AES-CBC with PKCS#7 padding.

        Args:
            plaintext: Data to encrypt
            key: 16, 24 or 32-byte key
            iv: 16-byte IV

        Returns:
            Ciphertext, a positive multiple of 16 bytes long

        Raises:
            ValueError: If key or IV has the wrong size
        """
        _check_key_and_iv(key, iv)

        padder = padding.PKCS7(AES_BLOCK_SIZE * 8).padder()
        padded = padder.update(plaintext) + padder.finalize()

        encryptor = Cipher(algorithms.AES(key), modes.CBC(iv)).encryptor()
        return encryptor.update(padded) + encryptor.finalize()

    def decrypt(self, ciphertext: bytes, key: bytes, iv: bytes) -> bytes:
        """
        Decrypt AES-CBC ciphertext and strip PKCS#7 padding.

        Args:
            ciphertext: Encrypted data (positive multiple of 16 bytes)
            key: The key used during encryption
            iv: The IV used during encryption

        Returns:
            Decrypted plaintext bytes

        Raises:
            ValueError: If key or IV has the wrong size
            DecryptionError: If the ciphertext length or padding is invalid

        Security Notes:
            - A wrong IV only garbles the first block; it is NOT detected
            - A wrong key almost always surfaces as a padding failure
        """
        _check_key_and_iv(key, iv)
        if not ciphertext or len(ciphertext) % AES_BLOCK_SIZE:
            raise DecryptionError(
                "Ciphertext length must be a positive multiple of the block size"
            )

        decryptor = Cipher(algorithms.AES(key), modes.CBC(iv)).decryptor()
        padded = decryptor.update(ciphertext) + decryptor.finalize()

        unpadder = padding.PKCS7(AES_BLOCK_SIZE * 8).unpadder()
        try:
            return unpadder.update(padded) + unpadder.finalize()
        except ValueError as exc:
            raise DecryptionError("Invalid padding - wrong key or corrupted data") from exc
