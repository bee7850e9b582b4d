"""
SecureEnvelope Cryptographic Core
=================================

Architecture:
    1. Key material: one tagged variant per key kind
    2. AES-CBC: direct symmetric encryption with a loaded key and IV
    3. Envelope: RSA-OAEP wrapped ephemeral AES key + AES-CBC ciphertext
    4. Key export: password-protected PKCS#12 container

Security Properties:
    - Fresh AES key and IV for every envelope
    - Secure RNG for all random values
    - No custom cipher implementations (everything via `cryptography`)

WARNING: This module handles sensitive cryptographic material.
         AES-CBC is not authenticated; verify integrity separately where
         tampering matters.
"""

from secureenvelope.core.crypto.aes_cbc import AesCbcCipher
from secureenvelope.core.crypto.envelope import Envelope, EnvelopeCodec
from secureenvelope.core.crypto.key_export import (
    export_encrypted_key,
    import_encrypted_key,
)
from secureenvelope.core.crypto.key_material import (
    KeyHalf,
    KeyKind,
    KeyMaterial,
    KeySource,
    classify,
    export_as_text,
    generate,
    import_from_external_source,
    import_from_symmetric,
    import_from_text,
)

__all__ = [
    "AesCbcCipher",
    "Envelope",
    "EnvelopeCodec",
    "export_encrypted_key",
    "import_encrypted_key",
    "KeyHalf",
    "KeyKind",
    "KeyMaterial",
    "KeySource",
    "classify",
    "export_as_text",
    "generate",
    "import_from_external_source",
    "import_from_symmetric",
    "import_from_text",
]
