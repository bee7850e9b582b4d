"""
SecureEnvelope - Hybrid Encryption and Uniform Key Handling
===========================================================

Protects data with a symmetric key, an RSA key pair or a signing key
through one client, and moves keys around as portable text.

Security Notice:
- No key material is logged
- Fail-closed envelope parsing
- Key files are written owner-only
"""

from secureenvelope.core.client import CryptoClient
from secureenvelope.core.config import EnvelopeConfig
from secureenvelope.core.crypto.key_material import KeyHalf, KeyKind
from secureenvelope.core.errors import CryptoError
from secureenvelope.core.logging import configure_logging, get_secure_logger

__version__ = "0.1.0"

__all__ = [
    "CryptoClient",
    "CryptoError",
    "EnvelopeConfig",
    "KeyHalf",
    "KeyKind",
    "configure_logging",
    "get_secure_logger",
    "__version__",
]
