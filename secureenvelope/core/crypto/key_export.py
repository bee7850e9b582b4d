"""
Password-Protected Key Export
=============================

Wraps a private key in a password-encrypted PKCS#12 container.

Implements:
    - PBES2 with PBKDF2-HMAC-SHA256 key derivation
    - AES-256-CBC encryption of the key bag
    - HMAC-SHA256 container integrity
    - Configurable KDF iteration count (default 100,000)

The container holds only the private key; no certificate is required.
Import also reads encrypted PKCS#8 (DER or PEM) from other tools.
"""

from __future__ import annotations

import logging
from typing import Final, Union

from cryptography.exceptions import UnsupportedAlgorithm
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.serialization import pkcs12

from secureenvelope.core.crypto.key_material import (
    AsymmetricPrivate,
    KeyMaterial,
    SigningPrivate,
    from_handle,
)
from secureenvelope.core.errors import MalformedKeyError

DEFAULT_EXPORT_ITERATIONS: Final[int] = 100_000
MIN_EXPORT_ITERATIONS: Final[int] = 10_000
CONTAINER_FRIENDLY_NAME: Final[bytes] = b"secureenvelope"
_PEM_PREFIX: Final[bytes] = b"-----BEGIN"

_log = logging.getLogger("secureenvelope.keys")


def _password_bytes(password: Union[str, bytes]) -> bytes:
    if isinstance(password, str):
        password = password.encode("utf-8")
    if not password:
        raise ValueError("Password cannot be empty")
    return bytes(password)


def export_encrypted_key(
    material: Union[AsymmetricPrivate, SigningPrivate],
    password: Union[str, bytes],
    iterations: int = DEFAULT_EXPORT_ITERATIONS,
) -> bytes:
    """
    Export a private key as a password-protected PKCS#12 container.

    Args:
        material: Private key material (RSA, DSA or Ed25519)
        password: Password protecting the container
        iterations: PBKDF2 rounds

    Returns:
        DER-encoded PKCS#12 bytes

    Raises:
        ValueError: If password is empty or iterations too low

    Security:
        - Salt is generated per export by the underlying library
        - Same password + container always recovers the same key
    """
    if iterations < MIN_EXPORT_ITERATIONS:
        raise ValueError(
            f"Export iterations must be at least {MIN_EXPORT_ITERATIONS:,}"
        )

    encryption = (
        serialization.PrivateFormat.PKCS12.encryption_builder()
        .kdf_rounds(iterations)
        .key_cert_algorithm(pkcs12.PBES.PBESv2SHA256AndAES256CBC)
        .hmac_hash(hashes.SHA256())
        .build(_password_bytes(password))
    )

    _log.debug("Exporting encrypted %s key (%d rounds)", material.kind.value, iterations)
    return pkcs12.serialize_key_and_certificates(
        name=CONTAINER_FRIENDLY_NAME,
        key=material.handle,
        cert=None,
        cas=None,
        encryption_algorithm=encryption,
    )


def _open_pkcs8(data: bytes, secret: bytes) -> object:
    try:
        if data.lstrip().startswith(_PEM_PREFIX):
            return serialization.load_pem_private_key(data, password=secret)
        return serialization.load_der_private_key(data, password=secret)
    except (ValueError, TypeError, UnsupportedAlgorithm) as exc:
        raise MalformedKeyError(
            "Encrypted key container could not be opened - wrong password or corrupt data"
        ) from exc


def import_encrypted_key(data: Union[bytes, str], password: Union[str, bytes]) -> KeyMaterial:
    """
    Recover key material from a password-protected container.

    Accepts the PKCS#12 container written by export_encrypted_key() and
    encrypted PKCS#8 (DER, or PEM "ENCRYPTED PRIVATE KEY") written by
    other tools.

    Args:
        data: Container bytes (PEM may also be given as str)
        password: Password used at export time

    Returns:
        AsymmetricPrivate or SigningPrivate material

    Raises:
        MalformedKeyError: Wrong password, corrupt container, or no key inside
    """
    secret = _password_bytes(password)
    if isinstance(data, str):
        data = data.encode("ascii")

    if data.lstrip().startswith(_PEM_PREFIX):
        return from_handle(_open_pkcs8(data, secret))

    try:
        key, _certificate, _additional = pkcs12.load_key_and_certificates(data, secret)
    except ValueError:
        _log.debug("Not a readable PKCS#12 container, trying encrypted PKCS#8")
        return from_handle(_open_pkcs8(data, secret))

    if key is None:
        raise MalformedKeyError("Encrypted key container holds no private key")
    return from_handle(key)
