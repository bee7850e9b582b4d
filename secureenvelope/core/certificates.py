"""
Certificate Key Sources
=======================

Adapts X.509 certificates to the KeySource protocol so the key abstraction
never depends on a certificate type, plus a small subject-name lookup over
a set of certificates.

Components:
    - X509KeySource: certificate (+ optional private key) → DER key halves
    - CertificateStore: zero-or-one certificate by subject, valid now
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Iterable, Iterator, List, Optional, Union

from cryptography import x509
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric.types import PrivateKeyTypes
from cryptography.hazmat.primitives.serialization import pkcs12

from secureenvelope.core.errors import MalformedKeyError

_log = logging.getLogger("secureenvelope.certificates")

_CERTIFICATE_SUFFIXES = (".pem", ".crt", ".cer")


class X509KeySource:
    """
    KeySource backed by an X.509 certificate.

    The public half comes from the certificate; the private half is only
    available when the matching private key was supplied.

    Usage:
        source = X509KeySource.from_pkcs12(pfx_bytes, "password")
        material = import_from_external_source(source, KeyHalf.PRIVATE)
    """

    __slots__ = ("_certificate", "_private_key")

    def __init__(
        self,
        certificate: x509.Certificate,
        private_key: Optional[PrivateKeyTypes] = None,
    ) -> None:
        """
        Args:
            certificate: The certificate
            private_key: Matching private key, if held

        Raises:
            ValueError: If private_key does not match the certificate
        """
        if private_key is not None and _spki(private_key.public_key()) != _spki(
            certificate.public_key()
        ):
            raise ValueError("Private key does not match the certificate")
        self._certificate = certificate
        self._private_key = private_key

    @classmethod
    def from_pkcs12(cls, data: bytes, password: Optional[Union[str, bytes]]) -> "X509KeySource":
        """
        Load a certificate and its key from a PKCS#12 (.pfx / .p12) bundle.

        Raises:
            MalformedKeyError: If the bundle cannot be opened or has no certificate
        """
        if isinstance(password, str):
            password = password.encode("utf-8")
        try:
            key, certificate, _additional = pkcs12.load_key_and_certificates(data, password)
        except ValueError as exc:
            raise MalformedKeyError("PKCS#12 bundle could not be opened") from exc
        if certificate is None:
            raise MalformedKeyError("PKCS#12 bundle holds no certificate")
        return cls(certificate, key)

    @property
    def certificate(self) -> x509.Certificate:
        return self._certificate

    @property
    def subject(self) -> str:
        return self._certificate.subject.rfc4514_string()

    @property
    def has_private_key(self) -> bool:
        return self._private_key is not None

    def get_public_key_bytes(self) -> bytes:
        """DER SubjectPublicKeyInfo of the certificate's key."""
        return _spki(self._certificate.public_key())

    def get_private_key_bytes(self) -> Optional[bytes]:
        """Unencrypted DER PKCS#8 private key, or None when not held."""
        if self._private_key is None:
            return None
        return self._private_key.private_bytes(
            encoding=serialization.Encoding.DER,
            format=serialization.PrivateFormat.PKCS8,
            encryption_algorithm=serialization.NoEncryption(),
        )

    def __repr__(self) -> str:
        return f"X509KeySource(subject={self.subject!r}, private={self.has_private_key})"


def _spki(public_key: object) -> bytes:
    return public_key.public_bytes(  # type: ignore[attr-defined]
        encoding=serialization.Encoding.DER,
        format=serialization.PublicFormat.SubjectPublicKeyInfo,
    )


class CertificateStore:
    """
    In-memory set of certificates searchable by subject.

    Usage:
        store = CertificateStore.from_directory(Path("/etc/myapp/certs"))
        cert = store.find_by_subject("CN=localhost")
    """

    def __init__(self, certificates: Iterable[x509.Certificate] = ()) -> None:
        self._certificates: List[x509.Certificate] = list(certificates)

    @classmethod
    def from_directory(cls, directory: Union[str, Path]) -> "CertificateStore":
        """
        Load every PEM certificate (*.pem, *.crt, *.cer) in a directory.

        Files that hold no certificate are skipped with a warning.
        """
        directory = Path(directory)
        certificates: List[x509.Certificate] = []
        for path in sorted(directory.iterdir()):
            if path.suffix.lower() not in _CERTIFICATE_SUFFIXES or not path.is_file():
                continue
            try:
                certificates.extend(x509.load_pem_x509_certificates(path.read_bytes()))
            except ValueError:
                _log.warning("Skipping unreadable certificate file: %s", path.name)
        _log.debug("Loaded %d certificates from %s", len(certificates), directory)
        return cls(certificates)

    def add(self, certificate: x509.Certificate) -> None:
        self._certificates.append(certificate)

    def __len__(self) -> int:
        return len(self._certificates)

    def __iter__(self) -> Iterator[x509.Certificate]:
        return iter(self._certificates)

    def find_by_subject(
        self,
        subject: str,
        at: Optional[datetime] = None,
    ) -> Optional[x509.Certificate]:
        """
        Find the first certificate with the given subject that is valid.

        Args:
            subject: RFC 4514 distinguished name, e.g. "CN=localhost"
            at: Point in time to check validity (default: now, UTC)

        Returns:
            The certificate, or None when nothing matches
        """
        moment = at or datetime.now(timezone.utc)
        for certificate in self._certificates:
            if certificate.subject.rfc4514_string() != subject:
                continue
            if certificate.not_valid_before_utc <= moment <= certificate.not_valid_after_utc:
                return certificate
        return None
