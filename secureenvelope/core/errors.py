"""
Error Taxonomy
==============

Typed failures raised by the key abstraction, the envelope codec and the
client facade.

Every error carries a machine-readable ``code`` so callers can tell a
missing key from a capability mismatch from corrupt data without parsing
messages.

Security:
    - Messages never contain key bytes, IVs or plaintext
    - Cryptographic failures are never retried
"""

from __future__ import annotations

from typing import Any, Dict, Optional


class CryptoError(Exception):
    """Base class for all SecureEnvelope errors."""

    default_code = "SE_ERROR"

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.code = code or self.default_code
        self.details = details or {}

    def __str__(self) -> str:
        return f"[{self.code}] {self.message}"

    def to_dict(self) -> Dict[str, Any]:
        """Convert error to a dictionary for structured logging."""
        return {
            "code": self.code,
            "message": self.message,
            "details": self.details,
        }


class NoKeyLoadedError(CryptoError):
    """Raised when an operation is attempted before any key was loaded."""

    default_code = "SE_NO_KEY"


class UnsupportedOperationError(CryptoError):
    """Raised when the loaded key kind cannot perform the operation."""

    default_code = "SE_UNSUPPORTED_OPERATION"


class PrivateKeyRequiredError(UnsupportedOperationError):
    """Raised when only the public half is loaded but the private half is needed."""

    default_code = "SE_PRIVATE_KEY_REQUIRED"


class InvalidOperationError(UnsupportedOperationError):
    """Raised when exporting a private half from public-only material."""

    default_code = "SE_INVALID_OPERATION"


class MalformedKeyError(CryptoError):
    """Raised when key text or key bytes cannot be parsed."""

    default_code = "SE_MALFORMED_KEY"


class KeyUnavailableError(CryptoError):
    """Raised when the requested key half is absent from an external source."""

    default_code = "SE_KEY_UNAVAILABLE"


class EmptyPayloadError(CryptoError):
    """Raised when asked to encrypt or sign an empty payload."""

    default_code = "SE_EMPTY_PAYLOAD"


class MalformedSignatureError(CryptoError):
    """Raised when a signature is not a valid encoding for the key's scheme."""

    default_code = "SE_MALFORMED_SIGNATURE"


class DecryptionError(CryptoError):
    """
    Raised when decryption fails.

    Does not reveal plaintext or key material; subclasses narrow the cause.
    """

    default_code = "SE_DECRYPTION_FAILED"


class KeyMismatchError(DecryptionError):
    """Raised when the private key does not match the key used to wrap."""

    default_code = "SE_KEY_MISMATCH"


class EnvelopeCorruptError(DecryptionError):
    """
    Raised when an envelope is structurally invalid.

    Covers truncated headers, out-of-range lengths, wrong field sizes and
    padding failures.
    """

    default_code = "SE_ENVELOPE_CORRUPT"
