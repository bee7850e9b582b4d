"""
Crypto Client
=============

One facade over every key kind: symmetric, asymmetric and signing.

The client classifies its key material once, at construction, and gates
each operation on the cached capabilities:

    Kind                encrypt  decrypt  sign  verify
    SYMMETRIC              x        x
    ASYMMETRIC_PUBLIC      x
    ASYMMETRIC_PRIVATE     x        x
    SIGNING_PUBLIC                               x
    SIGNING_PRIVATE                        x     x

Asymmetric encryption produces a hybrid envelope (see envelope.py).
Symmetric encryption is direct AES-CBC with the loaded key and IV.

WARNING:
    - The symmetric path reuses the loaded IV for every call; prefer the
      asymmetric envelope when the same key protects many messages
    - Neither path authenticates ciphertext
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import TYPE_CHECKING, Optional, Union

from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.asymmetric import dsa, ed25519
from cryptography.hazmat.primitives.asymmetric.utils import decode_dss_signature

from secureenvelope.core.config import EnvelopeConfig
from secureenvelope.core.crypto.aes_cbc import AesCbcCipher
from secureenvelope.core.crypto.envelope import EnvelopeCodec
from secureenvelope.core.crypto.key_export import (
    export_encrypted_key,
    import_encrypted_key,
)
from secureenvelope.core.crypto.key_material import (
    AsymmetricPrivate,
    AsymmetricPublic,
    Capabilities,
    KeyHalf,
    KeyKind,
    KeyMaterial,
    KeySource,
    NoKey,
    SigningPrivate,
    SigningPublic,
    SymmetricKey,
    capabilities_of,
    classify,
    export_as_text,
    generate,
    import_from_external_source,
    import_from_symmetric,
    import_from_text,
)
from secureenvelope.core.errors import (
    DecryptionError,
    EmptyPayloadError,
    InvalidOperationError,
    MalformedSignatureError,
    NoKeyLoadedError,
    PrivateKeyRequiredError,
    UnsupportedOperationError,
)

if TYPE_CHECKING:
    from secureenvelope.storage.key_files import KeyFileStore

Content = Union[bytes, str]

ED25519_SIGNATURE_SIZE = 64


def _as_bytes(content: Content) -> bytes:
    if isinstance(content, str):
        return content.encode("utf-8")
    return bytes(content)


class CryptoClient:
    """
    Uniform encrypt / decrypt / sign / verify over one piece of key material.

    Usage:
        client = CryptoClient.generate(KeyKind.ASYMMETRIC_PRIVATE)
        blob = client.encrypt("Some Secret Data")
        text = client.decrypt_to_string(blob)

        public = CryptoClient.from_text(client.export_key())
        public.encrypt(b"...")      # ok
        public.decrypt(blob)        # PrivateKeyRequiredError

    Thread safety:
        The client never mutates its material after construction, so one
        instance can be shared between threads.
    """

    __slots__ = ("_material", "_kind", "_capabilities", "_codec", "_aes", "_log")

    def __init__(
        self,
        material: Optional[KeyMaterial] = None,
        oaep_hash: Optional[str] = None,
    ) -> None:
        """
        Args:
            material: Key material; None means no key is loaded
            oaep_hash: OAEP hash for envelopes (default from configuration)
        """
        self._material: KeyMaterial = material if material is not None else NoKey()
        self._kind = classify(self._material)
        self._capabilities = capabilities_of(self._kind)
        if oaep_hash is None:
            oaep_hash = EnvelopeConfig.get_instance().keys.oaep_hash
        self._codec = EnvelopeCodec(oaep_hash)
        self._aes = AesCbcCipher()
        self._log = logging.getLogger("secureenvelope.client")

    # =========================================================================
    # Construction
    # =========================================================================

    @classmethod
    def generate(
        cls,
        kind: KeyKind,
        key_size: Optional[int] = None,
        config: Optional[EnvelopeConfig] = None,
    ) -> "CryptoClient":
        """
        Create a client with freshly generated key material.

        Args:
            kind: Kind of key to generate (pair kinds yield the private half)
            key_size: Bits; defaults from configuration
            config: Configuration to read defaults from

        Raises:
            ValueError: For KeyKind.NOT_SET or an unacceptable key size
        """
        config = config or EnvelopeConfig.get_instance()
        if key_size is None:
            if kind is KeyKind.SYMMETRIC:
                key_size = config.keys.symmetric_key_bits
            elif kind in (KeyKind.SIGNING_PRIVATE, KeyKind.SIGNING_PUBLIC):
                key_size = config.keys.signing_key_size
            else:
                key_size = config.keys.rsa_key_size
        return cls(generate(kind, key_size), oaep_hash=config.keys.oaep_hash)

    @classmethod
    def from_text(cls, text: str) -> "CryptoClient":
        """Load a key previously produced by export_key()."""
        return cls(import_from_text(text))

    @classmethod
    def from_symmetric_key(cls, key: bytes, iv: bytes) -> "CryptoClient":
        """Load a raw AES key and IV."""
        return cls(import_from_symmetric(key, iv))

    @classmethod
    def from_key_source(cls, source: KeySource, which: KeyHalf) -> "CryptoClient":
        """Load one half of a key pair from a KeySource (e.g. a certificate)."""
        return cls(import_from_external_source(source, which))

    @classmethod
    def from_encrypted_export(
        cls,
        data: Union[bytes, str],
        password: Union[str, bytes],
    ) -> "CryptoClient":
        """Load a key from a password-protected PKCS#12 or encrypted PKCS#8 export."""
        return cls(import_encrypted_key(data, password))

    @classmethod
    def from_file(cls, store: "KeyFileStore", name: str) -> "CryptoClient":
        """Load a textual key saved with save_key()."""
        return cls(import_from_text(store.read_all_text(name)))

    # =========================================================================
    # Introspection
    # =========================================================================

    @property
    def kind(self) -> KeyKind:
        return self._kind

    @property
    def capabilities(self) -> Capabilities:
        return self._capabilities

    @property
    def can_encrypt(self) -> bool:
        return self._capabilities.can_encrypt

    @property
    def can_decrypt(self) -> bool:
        return self._capabilities.can_decrypt

    @property
    def can_sign(self) -> bool:
        return self._capabilities.can_sign

    @property
    def can_verify(self) -> bool:
        return self._capabilities.can_verify

    @property
    def material(self) -> KeyMaterial:
        return self._material

    def _require_key(self, operation: str) -> None:
        if isinstance(self._material, NoKey):
            self._log.warning("Rejected %s: no key loaded", operation)
            raise NoKeyLoadedError(f"Cannot {operation}: no key loaded")

    def _rejection(
        self,
        operation: str,
        error: type[UnsupportedOperationError],
    ) -> UnsupportedOperationError:
        self._log.warning("Rejected %s for %s key", operation, self._kind.value)
        return error(
            f"Cannot {operation} with a {self._kind.value} key",
            details={"operation": operation, "kind": self._kind.value},
        )

    # =========================================================================
    # Encryption
    # =========================================================================

    def encrypt(self, content: Content) -> bytes:
        """
        Encrypt content.

        Symmetric keys encrypt directly with AES-CBC; asymmetric keys
        produce a hybrid envelope.

        Args:
            content: Bytes, or a string encoded as UTF-8

        Returns:
            Ciphertext (symmetric) or envelope bytes (asymmetric)

        Raises:
            NoKeyLoadedError: If no key is loaded
            UnsupportedOperationError: For signing keys
            EmptyPayloadError: If content is empty
        """
        self._require_key("encrypt")
        if not self._capabilities.can_encrypt:
            raise self._rejection("encrypt", UnsupportedOperationError)

        plaintext = _as_bytes(content)
        if not plaintext:
            raise EmptyPayloadError("Cannot encrypt empty content")

        material = self._material
        if isinstance(material, SymmetricKey):
            return self._aes.encrypt(plaintext, material.key, material.iv)

        if isinstance(material, AsymmetricPrivate):
            public_key = material.handle.public_key()
        else:
            assert isinstance(material, AsymmetricPublic)
            public_key = material.handle
        return self._codec.encode(public_key, plaintext)

    def decrypt(self, data: bytes) -> bytes:
        """
        Decrypt data produced by encrypt().

        Raises:
            NoKeyLoadedError: If no key is loaded
            PrivateKeyRequiredError: If only the RSA public key is loaded
            UnsupportedOperationError: For signing keys
            EmptyPayloadError: If symmetric data is empty
            DecryptionError: If the data cannot be decrypted (subclasses
                             KeyMismatchError / EnvelopeCorruptError for
                             envelopes)
        """
        self._require_key("decrypt")
        if self._kind is KeyKind.ASYMMETRIC_PUBLIC:
            raise self._rejection("decrypt", PrivateKeyRequiredError)
        if not self._capabilities.can_decrypt:
            raise self._rejection("decrypt", UnsupportedOperationError)

        material = self._material
        if isinstance(material, SymmetricKey):
            if not data:
                raise EmptyPayloadError("Cannot decrypt empty data")
            return self._aes.decrypt(bytes(data), material.key, material.iv)

        assert isinstance(material, AsymmetricPrivate)
        try:
            return self._codec.decode(material.handle, bytes(data))
        except DecryptionError as exc:
            self._log.warning("Envelope rejected: %s", exc.code)
            raise

    def decrypt_to_string(self, data: bytes) -> str:
        """
        Decrypt and decode as UTF-8.

        Raises:
            DecryptionError: If the plaintext is not valid UTF-8, or for
                             any reason decrypt() would
        """
        plaintext = self.decrypt(data)
        try:
            return plaintext.decode("utf-8")
        except UnicodeDecodeError as exc:
            raise DecryptionError("Decrypted content is not valid UTF-8") from exc

    # =========================================================================
    # Signatures
    # =========================================================================

    def sign(self, content: Content) -> bytes:
        """
        Sign content.

        DSA signatures use SHA-256 and are DER-encoded (r, s); Ed25519
        signatures are 64 raw bytes.

        Raises:
            NoKeyLoadedError: If no key is loaded
            PrivateKeyRequiredError: If only the signing public key is loaded
            UnsupportedOperationError: For symmetric and asymmetric keys
            EmptyPayloadError: If content is empty
        """
        self._require_key("sign")
        if self._kind is KeyKind.SIGNING_PUBLIC:
            raise self._rejection("sign", PrivateKeyRequiredError)
        if not self._capabilities.can_sign:
            raise self._rejection("sign", UnsupportedOperationError)

        message = _as_bytes(content)
        if not message:
            raise EmptyPayloadError("Cannot sign empty content")

        material = self._material
        assert isinstance(material, SigningPrivate)
        if isinstance(material.handle, dsa.DSAPrivateKey):
            return material.handle.sign(message, hashes.SHA256())
        return material.handle.sign(message)

    def verify(self, content: Content, signature: bytes) -> bool:
        """
        Verify a signature.

        Returns:
            True if valid, False for wrong content, signature or key

        Raises:
            NoKeyLoadedError: If no key is loaded
            UnsupportedOperationError: For symmetric and asymmetric keys
            MalformedSignatureError: If the signature is not a valid
                                     encoding for the key's scheme
        """
        self._require_key("verify")
        if not self._capabilities.can_verify:
            raise self._rejection("verify", UnsupportedOperationError)

        material = self._material
        assert isinstance(material, (SigningPrivate, SigningPublic))
        if isinstance(material, SigningPrivate):
            public_key = material.handle.public_key()
        else:
            public_key = material.handle

        message = _as_bytes(content)
        signature = bytes(signature)

        try:
            if isinstance(public_key, dsa.DSAPublicKey):
                try:
                    decode_dss_signature(signature)
                except ValueError as exc:
                    raise MalformedSignatureError("Signature is not a DER-encoded DSA signature") from exc
                public_key.verify(signature, message, hashes.SHA256())
            else:
                assert isinstance(public_key, ed25519.Ed25519PublicKey)
                if len(signature) != ED25519_SIGNATURE_SIZE:
                    raise MalformedSignatureError(
                        f"Ed25519 signature must be {ED25519_SIGNATURE_SIZE} bytes"
                    )
                public_key.verify(signature, message)
        except InvalidSignature:
            self._log.debug("Signature verification failed")
            return False
        return True

    # =========================================================================
    # Key export
    # =========================================================================

    def export_key(self, private: bool = False) -> str:
        """
        Export the key as text.

        Args:
            private: Export the private half instead of the public half

        Returns:
            PEM for key pairs, JSON {"key", "iv"} for symmetric keys

        Raises:
            NoKeyLoadedError: If no key is loaded
            UnsupportedOperationError: private=True on a symmetric key
            InvalidOperationError: private=True on public-only material
        """
        self._require_key("export key")
        if private and self._kind is KeyKind.SYMMETRIC:
            raise self._rejection("export a private key", UnsupportedOperationError)
        if private and self._kind in (KeyKind.ASYMMETRIC_PUBLIC, KeyKind.SIGNING_PUBLIC):
            raise self._rejection("export a private key", InvalidOperationError)

        which = KeyHalf.PRIVATE if private else KeyHalf.PUBLIC
        return export_as_text(self._material, which)

    def export_encrypted(
        self,
        password: Union[str, bytes],
        iterations: Optional[int] = None,
    ) -> bytes:
        """
        Export the private key as a password-protected container.

        Args:
            password: Password protecting the container
            iterations: KDF rounds (default from configuration)

        Raises:
            NoKeyLoadedError: If no key is loaded
            UnsupportedOperationError: For symmetric keys
            InvalidOperationError: For public-only material
            ValueError: For an empty password or too few iterations
        """
        self._require_key("export key")
        if self._kind is KeyKind.SYMMETRIC:
            raise self._rejection("export an encrypted key", UnsupportedOperationError)
        material = self._material
        if not isinstance(material, (AsymmetricPrivate, SigningPrivate)):
            raise self._rejection("export an encrypted key", InvalidOperationError)

        if iterations is None:
            iterations = EnvelopeConfig.get_instance().keys.export_iterations
        return export_encrypted_key(material, password, iterations)

    def save_key(
        self,
        store: "KeyFileStore",
        name: str,
        private: bool = False,
    ) -> Path:
        """
        Write export_key(private) to a key file.

        Returns:
            Path of the written file
        """
        path = store.write_all_text(name, self.export_key(private=private))
        self._log.info("Saved %s key to %s", self._kind.value, path.name)
        return path

    def __repr__(self) -> str:
        """Safe representation without key material."""
        return f"CryptoClient(kind={self._kind.value}, material={self._material!r})"
