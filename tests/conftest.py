"""
Pytest configuration and fixtures.

Key generation is slow (RSA / DSA), so key pairs are session-scoped and
shared by every test module.
"""

import os
from datetime import datetime, timedelta, timezone

import pytest
from cryptography import x509
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.asymmetric import dsa, ed25519, rsa
from cryptography.x509.oid import NameOID

from secureenvelope.core.config import EnvelopeConfig
from secureenvelope.storage.key_files import KeyFileStore


@pytest.fixture(scope="session")
def rsa_private():
    return rsa.generate_private_key(public_exponent=65537, key_size=2048)


@pytest.fixture(scope="session")
def other_rsa_private():
    """A second, unrelated RSA key of the same size."""
    return rsa.generate_private_key(public_exponent=65537, key_size=2048)


@pytest.fixture(scope="session")
def dsa_private():
    return dsa.generate_private_key(key_size=2048)


@pytest.fixture(scope="session")
def ed25519_private():
    return ed25519.Ed25519PrivateKey.generate()


def make_certificate(private_key, common_name, not_before, not_after):
    name = x509.Name([x509.NameAttribute(NameOID.COMMON_NAME, common_name)])
    return (
        x509.CertificateBuilder()
        .subject_name(name)
        .issuer_name(name)
        .public_key(private_key.public_key())
        .serial_number(x509.random_serial_number())
        .not_valid_before(not_before)
        .not_valid_after(not_after)
        .sign(private_key, hashes.SHA256())
    )


@pytest.fixture(scope="session")
def certificate(rsa_private):
    """Self-signed certificate for CN=localhost, valid now."""
    now = datetime.now(timezone.utc)
    return make_certificate(rsa_private, "localhost", now - timedelta(days=1), now + timedelta(days=30))


@pytest.fixture(scope="session")
def expired_certificate(other_rsa_private):
    """Self-signed certificate for CN=localhost that expired last year."""
    now = datetime.now(timezone.utc)
    return make_certificate(
        other_rsa_private, "localhost", now - timedelta(days=400), now - timedelta(days=300)
    )


@pytest.fixture(autouse=True)
def isolated_config(monkeypatch, tmp_path):
    """Fresh configuration per test, with key and log dirs under tmp_path."""
    for name in list(os.environ):
        if name.startswith("SECUREENVELOPE_"):
            monkeypatch.delenv(name)
    monkeypatch.setenv("SECUREENVELOPE_PATHS__KEY_DIR", str(tmp_path / "keys"))
    monkeypatch.setenv("SECUREENVELOPE_PATHS__LOG_DIR", str(tmp_path / "logs"))
    EnvelopeConfig.reset_instance()
    yield
    EnvelopeConfig.reset_instance()


@pytest.fixture
def key_store(tmp_path):
    return KeyFileStore(tmp_path / "keys")
