"""Tests for redacted error logging."""

import logging
from unittest.mock import patch

import pytest

from onboarding_api.utils.secure_logging import (
    MAX_MESSAGE_LENGTH,
    log_error,
    log_warning,
    sanitize_exception_message,
)


class TestSanitizeExceptionMessage:
    @pytest.mark.parametrize(
        ("message", "marker", "leaked"),
        [
            ("connect to postgresql://app:pw@db:5432/app failed", "[URL]", "pw@db"),
            ("cannot open /var/lib/onboarding/srf/a.pdf", "[PATH]", "/var/lib"),
            ("mailbox jane.doe@example.com not found", "[EMAIL]", "jane.doe"),
            ("bind as CN=svc,OU=Service,DC=corp refused", "[DN]", "OU=Service"),
            ("token abcdefghijklmnopqrstuvwxyz0123456789 rejected", "[TOKEN]", "abcdefghij"),
        ],
    )
    def test_masks(self, message: str, marker: str, leaked: str) -> None:
        result = sanitize_exception_message(RuntimeError(message))

        assert marker in result
        assert leaked not in result

    def test_truncates(self) -> None:
        result = sanitize_exception_message(RuntimeError("x " * 500))

        assert len(result) == MAX_MESSAGE_LENGTH
        assert result.endswith("...")


class TestLogHelpers:
    def test_production_warning_is_redacted(self, caplog: pytest.LogCaptureFixture) -> None:
        logger = logging.getLogger("tests.secure_logging")
        with patch("onboarding_api.utils.secure_logging.is_debug_mode", return_value=False):
            with caplog.at_level(logging.WARNING, logger="tests.secure_logging"):
                log_warning(logger, "Lookup failed", RuntimeError("user jane@example.com missing"))

        assert caplog.records[0].levelno == logging.WARNING
        assert "Lookup failed: user [EMAIL] missing" in caplog.text

    def test_debug_error_keeps_details(self, caplog: pytest.LogCaptureFixture) -> None:
        logger = logging.getLogger("tests.secure_logging")
        with patch("onboarding_api.utils.secure_logging.is_debug_mode", return_value=True):
            with caplog.at_level(logging.ERROR, logger="tests.secure_logging"):
                log_error(logger, "Write failed", RuntimeError("jane@example.com"))

        assert "jane@example.com" in caplog.text
        assert caplog.records[0].exc_info is not None

    def test_message_only(self, caplog: pytest.LogCaptureFixture) -> None:
        logger = logging.getLogger("tests.secure_logging")
        with caplog.at_level(logging.ERROR, logger="tests.secure_logging"):
            log_error(logger, "Plain failure")

        assert caplog.records[0].getMessage() == "Plain failure"
