"""Delivery transports.

Two implementations of the ``Transport`` capability:
- SMTPTransport: direct SMTP delivery (STARTTLS/implicit TLS, AUTH)
- SendmailTransport: hand-off to the host's sendmail program
"""

from .base import Transport
from .factory import select_transport
from .sendmail import SendmailTransport
from .smtp import SMTPTransport

__all__ = [
    "SMTPTransport",
    "SendmailTransport",
    "Transport",
    "select_transport",
]
