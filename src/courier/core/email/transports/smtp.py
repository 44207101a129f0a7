"""SMTP transport - delivers messages straight to an SMTP server."""

import ssl
import time
from typing import Optional

from courier.core.config import EmailConfig
from courier.core.email.formatter import format_message
from courier.core.email.mime import MessageEncoder
from courier.core.email.smtp.constants import Timeouts
from courier.core.email.smtp.session import SMTPSession
from courier.core.models.message import EmailMessage
from courier.utils.errors import CourierError
from courier.utils.logging import get_logger, log_call

logger = get_logger(__name__)


class SMTPTransport:
    """Send each message over its own SMTP session."""

    def __init__(
        self,
        config: EmailConfig,
        connection_timeout: float = Timeouts.SMTP_CONNECT,
        timeout: float = Timeouts.SMTP_IO,
        hostname: Optional[str] = None,
        ssl_context: Optional[ssl.SSLContext] = None,
        encoder: Optional[MessageEncoder] = None,
    ):
        self.config = config
        self.connection_timeout = connection_timeout
        self.timeout = timeout
        self.hostname = hostname
        self.ssl_context = ssl_context
        self.encoder = encoder or MessageEncoder()

    def set_connection_timeout(self, seconds: float) -> "SMTPTransport":
        self.connection_timeout = seconds
        return self

    def set_timeout(self, seconds: float) -> "SMTPTransport":
        self.timeout = seconds
        return self

    def create_session(self) -> SMTPSession:
        """Build a fresh session; sessions are never reused between sends."""
        return SMTPSession(
            self.config,
            connection_timeout=self.connection_timeout,
            timeout=self.timeout,
            hostname=self.hostname,
            ssl_context=self.ssl_context,
        )

    @log_call
    def send(self, message: EmailMessage) -> bool:
        """Send an email message via SMTP.

        The message is validated and fully formatted (attachments read)
        before any connection is opened.

        Returns:
            True once the server has accepted the message

        Raises:
            MissingRequiredFieldError: If to, from, subject or body is empty
            LineBreakError: If an address, the subject or a header has CR or LF
            AttachmentNotFoundError: If an attachment or image is unreadable
            MissingOAuthTokenError: If XOAUTH2 is configured without a token
            SMTPConnectionError, NetworkTimeoutError, TLSNegotiationError,
            SMTPProtocolError: On delivery failure
        """
        message.validate()
        self.config.validate_oauth()
        data = format_message(message, encoder=self.encoder)
        recipients = message.recipients()

        logger.info(
            "Sending email via SMTP",
            extra={
                "server": self.config.host,
                "port": self.config.port,
                "recipients": len(recipients),
            },
        )
        start_time = time.time()

        try:
            reply = self.create_session().deliver(message.sender, recipients, data)
        except CourierError as e:
            logger.error(
                "Failed to send email via SMTP",
                extra={
                    "server": self.config.host,
                    "error": e.message,
                    "duration_seconds": round(time.time() - start_time, 2),
                },
            )
            raise

        logger.info(
            "Email accepted by SMTP server",
            extra={
                "server": self.config.host,
                "code": reply.code,
                "duration_seconds": round(time.time() - start_time, 2),
            },
        )
        return True
