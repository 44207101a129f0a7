"""SMTP protocol implementation.

Low-level SMTP components used by ``SMTPTransport``:
- read_reply / SMTPReply: reply parsing and status-code checks
- SMTPConnection: socket lifecycle, timeouts and TLS
- SMTPSession: the ordered SMTP conversation for one message

Direct Usage (Advanced)
-----------------------
Most callers should use ``courier.Email`` or ``SMTPTransport``. Direct usage:

    >>> from courier.core.config import EmailConfig
    >>> from courier.core.email.smtp import SMTPSession
    >>>
    >>> config = EmailConfig(host="smtp.example.com", port=587, secure="tls")
    >>> session = SMTPSession(config)
    >>> session.deliver("me@example.com", ["you@example.com"], raw_message)
"""

from .connection import SMTPConnection
from .protocol import SMTPReply, read_reply
from .session import SessionState, SMTPSession

__all__ = [
    "SMTPConnection",
    "SMTPReply",
    "SMTPSession",
    "SessionState",
    "read_reply",
]
