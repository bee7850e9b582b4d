"""
Tests for certificate key sources and subject lookup.
"""

from datetime import datetime, timedelta, timezone

import pytest
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.serialization import pkcs12

from secureenvelope.core.certificates import CertificateStore, X509KeySource
from secureenvelope.core.errors import MalformedKeyError


class TestX509KeySource:

    def test_public_bytes_are_spki_der(self, certificate, rsa_private):
        source = X509KeySource(certificate)
        expected = rsa_private.public_key().public_bytes(
            encoding=serialization.Encoding.DER,
            format=serialization.PublicFormat.SubjectPublicKeyInfo,
        )
        assert source.get_public_key_bytes() == expected
        assert source.get_private_key_bytes() is None
        assert not source.has_private_key

    def test_private_bytes_load(self, certificate, rsa_private):
        source = X509KeySource(certificate, rsa_private)
        loaded = serialization.load_der_private_key(source.get_private_key_bytes(), password=None)
        assert loaded.private_numbers() == rsa_private.private_numbers()

    def test_mismatched_private_key(self, certificate, other_rsa_private):
        with pytest.raises(ValueError):
            X509KeySource(certificate, other_rsa_private)

    def test_subject(self, certificate):
        assert X509KeySource(certificate).subject == "CN=localhost"

    def test_from_pkcs12(self, certificate, rsa_private):
        bundle = pkcs12.serialize_key_and_certificates(
            name=b"localhost",
            key=rsa_private,
            cert=certificate,
            cas=None,
            encryption_algorithm=serialization.BestAvailableEncryption(b"bundle-pass"),
        )
        source = X509KeySource.from_pkcs12(bundle, "bundle-pass")

        assert source.has_private_key
        assert source.certificate == certificate

    def test_from_pkcs12_wrong_password(self, certificate, rsa_private):
        bundle = pkcs12.serialize_key_and_certificates(
            name=b"localhost",
            key=rsa_private,
            cert=certificate,
            cas=None,
            encryption_algorithm=serialization.BestAvailableEncryption(b"bundle-pass"),
        )
        with pytest.raises(MalformedKeyError):
            X509KeySource.from_pkcs12(bundle, "nope")

    def test_repr(self, certificate):
        assert repr(X509KeySource(certificate)) == "X509KeySource(subject='CN=localhost', private=False)"


class TestCertificateStore:

    def test_finds_valid_certificate(self, certificate, expired_certificate):
        store = CertificateStore([expired_certificate, certificate])
        assert store.find_by_subject("CN=localhost") == certificate

    def test_skips_expired(self, expired_certificate):
        store = CertificateStore([expired_certificate])
        assert store.find_by_subject("CN=localhost") is None

    def test_unknown_subject(self, certificate):
        assert CertificateStore([certificate]).find_by_subject("CN=elsewhere") is None

    def test_explicit_moment(self, expired_certificate):
        store = CertificateStore([expired_certificate])
        moment = datetime.now(timezone.utc) - timedelta(days=350)
        assert store.find_by_subject("CN=localhost", at=moment) == expired_certificate

    def test_add_and_iterate(self, certificate):
        store = CertificateStore()
        store.add(certificate)
        assert len(store) == 1
        assert list(store) == [certificate]

    def test_from_directory(self, tmp_path, certificate, expired_certificate):
        pem = serialization.Encoding.PEM
        (tmp_path / "current.pem").write_bytes(certificate.public_bytes(pem))
        (tmp_path / "old.crt").write_bytes(expired_certificate.public_bytes(pem))
        (tmp_path / "notes.txt").write_text("ignored")
        (tmp_path / "broken.pem").write_text("not a certificate")

        store = CertificateStore.from_directory(tmp_path)

        assert len(store) == 2
        assert store.find_by_subject("CN=localhost") == certificate

    def test_from_directory_reads_cer(self, tmp_path, certificate):
        (tmp_path / "issued.CER").write_bytes(certificate.public_bytes(serialization.Encoding.PEM))
        (tmp_path / "issued.der").write_bytes(certificate.public_bytes(serialization.Encoding.DER))

        store = CertificateStore.from_directory(tmp_path)

        assert list(store) == [certificate]
