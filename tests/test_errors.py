"""
Tests for the error hierarchy, error handler and log masking
"""
import json
import logging

from courier.utils.errors import (
    AttachmentNotFoundError,
    CourierError,
    ErrorCategory,
    ErrorHandler,
    InvalidConfigError,
    MissingOAuthTokenError,
    NetworkError,
    SMTPConnectionError,
    SMTPError,
    SMTPProtocolError,
    format_error_message,
)
from courier.utils.logging import (
    JSONFormatter,
    SensitiveDataFilter,
    SensitiveDataMasker,
    get_logger,
)


class TestErrorHierarchy:
    """Test categories and payloads of courier errors"""

    def test_categories(self):
        assert SMTPConnectionError().category is ErrorCategory.NETWORK
        assert SMTPProtocolError(550, "550 no").category is ErrorCategory.PROTOCOL
        assert AttachmentNotFoundError().category is ErrorCategory.FILE_SYSTEM
        assert InvalidConfigError().category is ErrorCategory.CONFIGURATION

    def test_common_base(self):
        assert issubclass(SMTPConnectionError, NetworkError)
        assert issubclass(SMTPProtocolError, SMTPError)
        assert issubclass(SMTPError, CourierError)

    def test_default_message(self):
        assert str(MissingOAuthTokenError()).startswith("OAuth2 token is required")

    def test_protocol_error_payload(self):
        error = SMTPProtocolError(550, "550 no such user", "RCPT TO:<b@y.com>")

        assert str(error) == "SMTP Error: 550 no such user"
        assert error.to_dict() == {
            "error_type": "SMTPProtocolError",
            "category": "protocol",
            "message": "SMTP Error: 550 no such user",
            "details": {
                "code": 550,
                "response": "550 no such user",
                "command": "RCPT TO:<b@y.com>",
            },
        }

    def test_connection_error_details(self):
        error = SMTPConnectionError("refused", host="mx.test", port=25, errno=111)

        assert error.details == {"host": "mx.test", "port": 25, "errno": 111}


class TestErrorHandler:
    """Test centralized handling"""

    def test_handle_courier_error(self):
        result = ErrorHandler.handle(InvalidConfigError("bad port"), "config", log_traceback=False)

        assert result["error_type"] == "InvalidConfigError"
        assert result["message"] == "bad port"

    def test_handle_unknown_error(self):
        result = ErrorHandler.handle(RuntimeError("boom"), "send", log_traceback=False)

        assert result["category"] == "unknown"
        assert result["details"] == {"context": "send"}

    def test_format_error_message(self):
        assert format_error_message(InvalidConfigError("bad port")) == "bad port"
        assert "unexpected" in format_error_message(RuntimeError("boom"))


class TestSensitiveDataMasking:
    """Test credential masking in log output"""

    def test_masks_password_and_token(self):
        masker = SensitiveDataMasker()

        masked = masker.mask_string("password=hunter2 token: abc123")

        assert "hunter2" not in masked
        assert "abc123" not in masked

    def test_masks_bearer(self):
        masked = SensitiveDataMasker().mask_string("auth=Bearer ya29.secret\x01\x01")

        assert "ya29.secret" not in masked

    def test_masks_email_addresses(self):
        assert SensitiveDataMasker().mask_string("to alice@example.com") == "to a***@e***"

    def test_filter_masks_sensitive_extra(self):
        record = logging.LogRecord("courier", logging.INFO, __file__, 1, "login", None, None)
        record.password = "hunter2"

        SensitiveDataFilter().filter(record)

        assert record.password == "[REDACTED]"

    def test_json_formatter(self):
        record = logging.LogRecord("courier.test", logging.WARNING, __file__, 10, "hello", None, None)

        entry = json.loads(JSONFormatter().format(record))

        assert entry["level"] == "WARNING"
        assert entry["logger"] == "courier.test"
        assert entry["message"] == "hello"
        assert "extra" not in entry

    def test_json_formatter_keeps_extra_fields(self):
        record = logging.LogRecord("courier.test", logging.INFO, __file__, 10, "sent", None, None)
        record.server = "smtp.test.com"

        entry = json.loads(JSONFormatter().format(record))

        assert entry["extra"] == {"server": "smtp.test.com"}

    def test_mask_value_redacts_whole_value(self):
        assert SensitiveDataMasker().mask_value("hunter2secret") == "[REDACTED]"


class TestGetLogger:
    """Test logger naming"""

    def test_package_names_kept(self):
        assert get_logger("courier.core.config").name == "courier.core.config"

    def test_other_names_nested(self):
        assert get_logger("plugin").name == "courier.plugin"

    def test_returns_plain_logger(self):
        assert isinstance(get_logger("courier.test"), logging.Logger)
