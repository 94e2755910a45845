"""
Tests for logging utilities
"""
import json
import logging

import pytest

from smtpwire.utils.errors import SMTPProtocolError, format_error_message
from smtpwire.utils.logging import (
    JSONFormatter,
    LogManager,
    SensitiveDataFilter,
    SensitiveDataMasker,
    get_logger,
    log_call,
)


def make_record(msg, *args, **extra):
    record = logging.LogRecord("smtpwire.test", logging.INFO, __file__, 1, msg, args, None)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


class TestSensitiveDataMasker:
    """Test masking of credentials and addresses"""

    def test_password_assignment_masked(self):
        """Test password=value patterns are redacted"""
        masker = SensitiveDataMasker()

        assert masker.mask_string("login password=hunter2 ok") == "login password=[REDACTED] ok"

    def test_email_partially_masked(self):
        """Test addresses keep only their first characters"""
        masker = SensitiveDataMasker()

        assert masker.mask_string("to guest@example.com") == "to g***@e***"

    def test_mask_dict(self):
        """Test sensitive keys are redacted recursively"""
        masker = SensitiveDataMasker()

        masked = masker.mask_dict({"password": "x", "nested": {"token": "y"}, "port": 587})

        assert masked == {"password": "[REDACTED]", "nested": {"token": "[REDACTED]"}, "port": 587}

    def test_partial_strategy(self):
        """Test the partial strategy keeps both ends of long values"""
        masker = SensitiveDataMasker(strategy="partial")

        assert masker.mask_func("abcdefghij") == "abc****hij"
        assert masker.mask_func("short") == "[REDACTED]"


class TestSensitiveDataFilter:
    """Test the logging filter"""

    def test_filter_masks_message_and_args(self):
        """Test message text and arguments are masked"""
        record = make_record("AUTH for %s failed, password=hunter2", "user@test.com")

        assert SensitiveDataFilter().filter(record) is True
        assert record.getMessage() == "AUTH for u***@t*** failed, password=[REDACTED]"

    def test_filter_masks_sensitive_extras(self):
        """Test extras named like credentials are redacted"""
        record = make_record("login", password="hunter2", server="smtp.test.com")

        SensitiveDataFilter().filter(record)

        assert record.password == "[REDACTED]"
        assert record.server == "smtp.test.com"


class TestJSONFormatter:
    """Test structured log output"""

    def test_extras_in_context(self):
        """Test extra fields are nested under context"""
        record = make_record("sent", message_id="smtp-1-abc")

        entry = json.loads(JSONFormatter().format(record))

        assert entry["message"] == "sent"
        assert entry["level"] == "INFO"
        assert entry["context"] == {"message_id": "smtp-1-abc"}


class TestLogManager:
    """Test logger setup"""

    def test_get_logger_namespaced(self):
        """Test module loggers live under the package logger"""
        assert get_logger("tests").name == "smtpwire.tests"
        assert get_logger("smtpwire.core").name == "smtpwire.core"

    def test_context_adapter(self):
        """Test keyword context wraps the logger"""
        adapter = get_logger("tests", session="abc")

        assert isinstance(adapter, logging.LoggerAdapter)
        assert adapter.extra == {"session": "abc"}

    def test_invalid_level(self):
        """Test unknown level names are rejected"""
        with pytest.raises(ValueError):
            LogManager("LOUD", log_to_file=False)

    def test_log_call_traces(self, caplog):
        """Test the decorator logs entry and exit"""

        @log_call
        def add(a, b):
            return a + b

        with caplog.at_level(logging.DEBUG, logger="smtpwire"):
            assert add(1, 2) == 3

        assert "-> tests.test_logging" in caplog.text
        assert "<- done" in caplog.text


class TestFormatErrorMessage:
    """Test user-facing error text"""

    def test_protocol_error_includes_server_reply(self):
        """Test the raw server reply is shown"""
        error = SMTPProtocolError("Unexpected reply during auth: 535", phase="auth", code=535, response="535 Denied")

        assert format_error_message(error) == "Unexpected reply during auth: 535 (server said: 535 Denied)"

    def test_unknown_error(self):
        """Test non-package errors get a generic message"""
        assert "unexpected" in format_error_message(RuntimeError("boom"))
