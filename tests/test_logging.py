"""
Tests for secure logging helpers.
"""

import json
import logging

import pytest

from secureenvelope.core.config import EnvelopeConfig, LoggingConfig, PathConfig
from secureenvelope.core.logging import (
    PACKAGE_LOGGER,
    SecureLogFilter,
    SecureRotatingFileHandler,
    StructuredLogFormatter,
    configure_logging,
    get_secure_logger,
)


@pytest.fixture
def fresh_logger():
    """Yield a unique logger name and remove its handlers afterwards."""
    names = []

    def factory(name):
        names.append(name)
        return name

    yield factory

    for name in names:
        logger = logging.getLogger(name)
        for handler in list(logger.handlers):
            handler.close()
            logger.removeHandler(handler)
        logger.propagate = True
        logger.setLevel(logging.NOTSET)


class TestSecureLogFilter:

    def test_redacts_pem_block(self, rsa_private):
        from secureenvelope.core.client import CryptoClient
        from secureenvelope.core.crypto.key_material import AsymmetricPrivate

        pem = CryptoClient(AsymmetricPrivate(rsa_private)).export_key(private=True)
        sanitized = SecureLogFilter().sanitize(f"loaded key {pem} from disk")

        assert "BEGIN PRIVATE KEY" not in sanitized
        assert sanitized.startswith("loaded key pem=[REDACTED]")
        assert sanitized.endswith("from disk")

    def test_redacts_password_assignment(self):
        assert "hunter2" not in SecureLogFilter().sanitize("password=hunter2")

    def test_redacts_long_base64(self):
        sanitized = SecureLogFilter().sanitize("key " + "QUJD" * 20)
        assert "QUJDQUJD" not in sanitized

    def test_keeps_ordinary_text(self):
        text = "Sealed envelope: wrapped_key=256 iv=16 ciphertext=32"
        assert SecureLogFilter().sanitize(text) == text

    def test_filters_record_args(self):
        record = logging.LogRecord(
            "secureenvelope.test", logging.INFO, __file__, 1,
            "value %s", ("secret=abc123",), None,
        )
        assert SecureLogFilter().filter(record) is True
        assert "abc123" not in record.getMessage()


class TestStructuredLogFormatter:

    def test_json_line(self):
        record = logging.LogRecord(
            "secureenvelope.envelope", logging.WARNING, __file__, 42,
            "Envelope key unwrap failed", None, None,
        )
        data = json.loads(StructuredLogFormatter().format(record))

        assert data["level"] == "WARNING"
        assert data["logger"] == "secureenvelope.envelope"
        assert data["message"] == "Envelope key unwrap failed"
        assert data["line"] == 42


class TestHandlers:

    def test_rotating_handler_rejects_traversal(self, tmp_path):
        with pytest.raises(ValueError):
            SecureRotatingFileHandler(tmp_path / ".." / "escape.log")

    def test_file_logging_is_sanitized(self, tmp_path, fresh_logger):
        name = fresh_logger("secureenvelope_test.file")
        logger = get_secure_logger(
            name, log_dir=tmp_path, level="DEBUG", enable_console=False, enable_file=True
        )
        logger.info("session %s", "token=abcdef")
        for handler in logger.handlers:
            handler.flush()

        content = (tmp_path / "secureenvelope_test_file.log").read_text()
        assert "abcdef" not in content
        assert "[REDACTED]" in content

    def test_json_file_logging(self, tmp_path, fresh_logger):
        name = fresh_logger("secureenvelope_test.json")
        logger = get_secure_logger(
            name, log_dir=tmp_path, enable_console=False, enable_file=True, enable_json=True
        )
        logger.warning("rejected")
        for handler in logger.handlers:
            handler.flush()

        line = (tmp_path / "secureenvelope_test_json.log").read_text().splitlines()[0]
        assert json.loads(line)["message"] == "rejected"

    def test_handlers_added_once(self, fresh_logger):
        name = fresh_logger("secureenvelope_test.once")
        first = get_secure_logger(name)
        second = get_secure_logger(name)
        assert first is second
        assert len(second.handlers) == 1

    def test_configure_logging_from_config(self, tmp_path, fresh_logger):
        fresh_logger(PACKAGE_LOGGER)
        config = EnvelopeConfig(
            paths=PathConfig(key_dir=tmp_path / "keys", log_dir=tmp_path / "logs"),
            logging=LoggingConfig(level="WARNING", enable_console=False, enable_file=True),
        )
        logger = configure_logging(config)

        assert logger.name == PACKAGE_LOGGER
        assert logger.level == logging.WARNING
        assert (tmp_path / "logs").is_dir()
