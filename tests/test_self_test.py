"""
Tests for the startup self-tests.
"""

import logging

from secureenvelope.core.self_test import (
    CheckResult,
    CryptoSelfTest,
    SecurityCheckResult,
    run_self_test,
)


class TestCryptoSelfTest:

    def test_aes_cbc(self):
        assert CryptoSelfTest.test_aes_cbc().result is SecurityCheckResult.PASS

    def test_envelope(self):
        assert CryptoSelfTest.test_envelope().result is SecurityCheckResult.PASS

    def test_signature(self):
        assert CryptoSelfTest.test_signature().result is SecurityCheckResult.PASS

    def test_random_generator(self):
        assert CryptoSelfTest.test_random_generator().passed

    def test_run_all(self):
        results = CryptoSelfTest.run_all_tests()
        assert [r.name for r in results] == ["AES-256-CBC", "Envelope", "Signature", "CSPRNG"]


class TestRunSelfTest:

    def test_passes_and_logs(self, caplog):
        with caplog.at_level(logging.INFO, logger="secureenvelope.self_test"):
            assert run_self_test() is True
        assert "Self-test passed" in caplog.text

    def test_failure_reported(self, monkeypatch):
        monkeypatch.setattr(
            CryptoSelfTest,
            "run_all_tests",
            classmethod(lambda cls: [CheckResult("Broken", SecurityCheckResult.FAIL, "boom")]),
        )
        assert run_self_test() is False

    def test_warning_is_not_failure(self, monkeypatch):
        monkeypatch.setattr(
            CryptoSelfTest,
            "run_all_tests",
            classmethod(lambda cls: [CheckResult("Weak", SecurityCheckResult.WARN, "low entropy")]),
        )
        assert run_self_test() is True
