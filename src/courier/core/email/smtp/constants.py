"""SMTP constants and configuration values."""

from enum import Enum

CRLF = b"\r\n"

# RFC 5321 allows 512 octets per reply line; accept far more from lax servers
MAX_REPLY_LINE = 8192

DEFAULT_LOCAL_HOSTNAME = "localhost"


class SMTPResponse:
    """Standard SMTP response codes."""

    # 2xx Success
    SERVICE_READY = 220  # <domain> Service ready
    SERVICE_CLOSING = 221  # Service closing transmission channel
    AUTH_SUCCESSFUL = 235  # Authentication successful
    OK = 250  # Requested mail action okay, completed

    # 3xx Intermediate
    AUTH_CONTINUE = 334  # Server challenge during AUTH
    START_MAIL = 354  # Start mail input; end with <CRLF>.<CRLF>

    # 4xx Transient Failure
    SERVICE_NOT_AVAILABLE = 421  # Service not available, closing channel
    MAILBOX_BUSY = 450  # Mailbox unavailable (e.g., busy)

    # 5xx Permanent Failure
    SYNTAX_ERROR = 500  # Syntax error, command unrecognized
    AUTH_FAILED = 535  # Authentication credentials invalid
    MAILBOX_UNAVAILABLE = 550  # Mailbox unavailable

    # Replies at or above this code abort the session
    ERROR_THRESHOLD = 400


class Timeouts:
    """Timeout values for SMTP operations (in seconds)."""

    SMTP_CONNECT = 30.0  # Connection establishment only
    SMTP_IO = 30.0  # Every read and write after connecting
    SENDMAIL = 30.0  # Local sendmail process


class SMTPPorts:
    """Standard SMTP port numbers."""

    SMTP = 25  # Plain SMTP (server-to-server)
    SUBMISSION = 587  # STARTTLS
    SUBMISSION_SSL = 465  # Implicit TLS/SSL


class SecureMode(str, Enum):
    """How the connection is encrypted."""

    NONE = ""
    TLS = "tls"  # STARTTLS upgrade after the greeting
    SSL = "ssl"  # Implicit TLS from the first byte

    @classmethod
    def from_value(cls, value) -> "SecureMode":
        if isinstance(value, cls):
            return value
        return cls((value or "").strip().lower())


class AuthType:
    """Supported AUTH mechanisms."""

    LOGIN = "LOGIN"
    XOAUTH2 = "XOAUTH2"
