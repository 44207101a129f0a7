"""Centralized error handling module."""

from enum import Enum
from typing import Any, Dict, Optional

from courier.utils.logging import get_logger

_logger = None


def _get_logger():
    """Get logger with lazy initialisation."""
    global _logger
    if _logger is None:
        _logger = get_logger(__name__)
    return _logger


## Error Categories


class ErrorCategory(Enum):
    """Categories of errors for better handling."""

    NETWORK = "network"
    PROTOCOL = "protocol"
    AUTHENTICATION = "authentication"
    VALIDATION = "validation"
    FILE_SYSTEM = "file_system"
    CONFIGURATION = "configuration"
    UNKNOWN = "unknown"


## Custom Exceptions


class CourierError(Exception):
    """Base exception for all courier errors."""

    category = ErrorCategory.UNKNOWN
    user_message = "An error occurred"

    def __init__(
        self, message: str | None = None, details: Dict[str, Any] | None = None
    ):
        """Initialise CourierError with optional message and details."""
        self.message = message or self.user_message
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        """Convert error details to a dictionary."""
        return {
            "error_type": self.__class__.__name__,
            "category": self.category.value,
            "message": self.message,
            "details": self.details,
        }


## Network Errors


class NetworkError(CourierError):
    """Base exception for network-related errors."""

    category = ErrorCategory.NETWORK
    user_message = "A network error occurred"


class SMTPConnectionError(NetworkError):
    """Exception raised when the SMTP server cannot be reached."""

    user_message = "Could not connect to SMTP server"

    def __init__(
        self,
        message: str | None = None,
        host: str = "",
        port: int = 0,
        errno: Optional[int] = None,
        details: Dict[str, Any] | None = None,
    ):
        self.host = host
        self.port = port
        self.errno = errno
        merged = {"host": host, "port": port, "errno": errno}
        merged.update(details or {})
        super().__init__(message, details=merged)


class NetworkTimeoutError(NetworkError):
    """Exception for network timeout errors."""

    user_message = "The connection timed out"


class LocalSubmissionError(NetworkError):
    """Exception raised when the local sendmail program rejects a message."""

    user_message = "Failed to hand message to local mail submission"


## Protocol Errors


class SMTPError(CourierError):
    """Base exception for SMTP protocol errors."""

    category = ErrorCategory.PROTOCOL
    user_message = "Failed to send email"


class SMTPProtocolError(SMTPError):
    """Exception for SMTP replies signalling failure (code >= 400)."""

    user_message = "SMTP server rejected the request"

    def __init__(
        self,
        code: int,
        response: str,
        command: str | None = None,
        details: Dict[str, Any] | None = None,
    ):
        self.code = code
        self.response = response
        self.command = command
        merged = {"code": code, "response": response}
        if command:
            merged["command"] = command
        merged.update(details or {})
        super().__init__(f"SMTP Error: {response or code}", details=merged)


class SMTPServerDisconnectedError(SMTPError):
    """Exception raised when the server closes the connection unexpectedly."""

    user_message = "SMTP server closed the connection"


class TLSNegotiationError(SMTPError):
    """Exception raised when the TLS handshake fails."""

    user_message = "Failed to enable TLS encryption"


class SessionStateError(SMTPError):
    """Exception raised when SMTP session steps run out of order."""

    user_message = "SMTP session step attempted out of order"


## Validation Errors


class ValidationError(CourierError):
    """Base exception for validation-related errors."""

    category = ErrorCategory.VALIDATION
    user_message = "Invalid input"


class MissingRequiredFieldError(ValidationError):
    """Exception for missing required message fields."""

    user_message = "A required field is missing"


class LineBreakError(ValidationError):
    """Exception for CR or LF inside an address, subject or header."""

    user_message = "Line breaks are not allowed in addresses or headers"


## File System Errors


class FileSystemError(CourierError):
    """Base exception for file system-related errors."""

    category = ErrorCategory.FILE_SYSTEM
    user_message = "A file system error occurred"


class AttachmentNotFoundError(FileSystemError):
    """Exception when an attachment or embedded image cannot be read."""

    user_message = "Attachment not found"


class TemplateNotFoundError(FileSystemError):
    """Exception when a template file cannot be read."""

    user_message = "Template not found"


## Configuration Errors


class ConfigurationError(CourierError):
    """Base exception for configuration-related errors."""

    category = ErrorCategory.CONFIGURATION
    user_message = "A configuration error occurred"


class InvalidConfigError(ConfigurationError):
    """Exception for invalid configuration settings."""

    user_message = "Invalid configuration settings"


class MissingOAuthTokenError(ConfigurationError):
    """Exception when XOAUTH2 is selected without a token."""

    user_message = (
        "OAuth2 token is required for XOAUTH2 authentication. "
        "Set EMAIL_OAUTH_TOKEN or call set_oauth_token()"
    )


## Error Handler


class ErrorHandler:
    """Centralized error handling and logging."""

    @staticmethod
    def handle(
        error: Exception, context: str = "", log_traceback: bool = True
    ) -> Dict[str, Any]:
        """Handle errors with logging and user-friendly message."""
        if isinstance(error, CourierError):
            _get_logger().error(f"{context}: {error.message}", extra=error.details)
            if log_traceback:
                _get_logger().exception(error)
            return error.to_dict()
        else:
            _get_logger().error(f"{context}: {str(error)}")
            if log_traceback:
                _get_logger().exception(error)
            return {
                "error_type": "UnknownError",
                "category": ErrorCategory.UNKNOWN.value,
                "message": str(error),
                "details": {"context": context},
            }


## Utility Functions


def format_error_message(error: Exception) -> str:
    """Format an error message for display."""
    if isinstance(error, CourierError):
        return error.message
    else:
        return "An unexpected error occurred - check logs for details."
