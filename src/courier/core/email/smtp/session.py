"""SMTP session - drives one message through the SMTP conversation.

A session is single-use: it opens one socket, delivers one message and
closes the socket again, whatever happens in between. Steps run in a
fixed order enforced by ``SessionState``::

    DISCONNECTED -> CONNECTED -> GREETED -> [TLS_NEGOTIATED]
        -> AUTHENTICATED -> MAIL -> RCPT (xN) -> DATA -> CLOSING -> DISCONNECTED

Every command is followed by exactly one blocking reply read; any reply
code >= 400 raises ``SMTPProtocolError`` and the session is torn down.
"""

import base64
import re
import ssl
from enum import Enum
from typing import TYPE_CHECKING, Optional, Sequence

from courier.core.validation.email import extract_address
from courier.utils.errors import (
    CourierError,
    LineBreakError,
    MissingOAuthTokenError,
    SessionStateError,
    SMTPProtocolError,
)
from courier.utils.logging import get_logger

from .connection import SMTPConnection, local_hostname
from .constants import CRLF, AuthType, SecureMode, Timeouts
from .protocol import SMTPReply

if TYPE_CHECKING:
    from courier.core.config import EmailConfig

logger = get_logger(__name__)


class SessionState(Enum):
    """Position of a session in the SMTP conversation."""

    DISCONNECTED = "disconnected"
    CONNECTED = "connected"
    GREETED = "greeted"
    TLS_NEGOTIATED = "tls_negotiated"
    AUTHENTICATED = "authenticated"
    MAIL = "mail"
    RCPT = "rcpt"
    DATA = "data"
    CLOSING = "closing"


_TRANSITIONS = {
    SessionState.DISCONNECTED: {SessionState.CONNECTED},
    SessionState.CONNECTED: {SessionState.GREETED},
    SessionState.GREETED: {SessionState.TLS_NEGOTIATED, SessionState.AUTHENTICATED},
    SessionState.TLS_NEGOTIATED: {SessionState.AUTHENTICATED},
    SessionState.AUTHENTICATED: {SessionState.MAIL},
    SessionState.MAIL: {SessionState.RCPT},
    SessionState.RCPT: {SessionState.RCPT, SessionState.DATA},
    SessionState.DATA: set(),
    SessionState.CLOSING: {SessionState.DISCONNECTED},
}

_LINE_ENDINGS = re.compile(rb"\r\n|\n|\r")
_LEADING_DOT = re.compile(rb"^\.", re.MULTILINE)


def prepare_data(message: bytes) -> bytes:
    """Normalise line endings, dot-stuff and append the terminating ``.``."""
    data = _LEADING_DOT.sub(b"..", _LINE_ENDINGS.sub(CRLF, message))
    if not data.endswith(CRLF):
        data += CRLF
    return data + b"." + CRLF


def _b64(value: str) -> str:
    return base64.b64encode(value.encode("utf-8")).decode("ascii")


def _envelope_address(value: str) -> str:
    # Must run before extraction, the angle-address match stops at a line break
    if "\r" in value or "\n" in value:
        raise LineBreakError(
            "Envelope address contains a line break", details={"address": value.splitlines()[0]}
        )
    return extract_address(value)


class SMTPSession:
    """One-shot SMTP client session for a single message."""

    def __init__(
        self,
        config: "EmailConfig",
        connection_timeout: float = Timeouts.SMTP_CONNECT,
        timeout: float = Timeouts.SMTP_IO,
        hostname: Optional[str] = None,
        ssl_context: Optional[ssl.SSLContext] = None,
    ):
        """Initialise a session.

        Args:
            config: Delivery configuration (read only)
            connection_timeout: Seconds allowed to establish the connection
            timeout: Seconds allowed for each read or write afterwards
            hostname: Name announced in EHLO (defaults to the local hostname)
            ssl_context: TLS context for implicit TLS or STARTTLS
        """
        self.config = config
        self.hostname = hostname or local_hostname()
        self.state = SessionState.DISCONNECTED
        self.connection = SMTPConnection(
            config.host,
            config.port,
            secure=config.secure,
            connection_timeout=connection_timeout,
            timeout=timeout,
            ssl_context=ssl_context,
        )

    def _advance(self, target: SessionState) -> None:
        allowed = _TRANSITIONS[self.state]
        if target is SessionState.CLOSING and self.state is not SessionState.DISCONNECTED:
            allowed = allowed | {SessionState.CLOSING}

        if target not in allowed:
            raise SessionStateError(
                f"Cannot move SMTP session from {self.state.value} to {target.value}",
                details={"state": self.state.value, "target": target.value},
            )
        self.state = target

    def _require(self, *states: SessionState) -> None:
        if self.state not in states:
            raise SessionStateError(
                f"SMTP session is {self.state.value}, expected "
                + " or ".join(state.value for state in states),
                details={"state": self.state.value},
            )

    def _command(self, line: str, label: Optional[str] = None) -> SMTPReply:
        """Send one command and read its reply.

        ``label`` replaces the command text in logs and errors, for lines
        carrying credentials.

        Raises:
            LineBreakError: If the line contains CR or LF
        """
        if "\r" in line or "\n" in line:
            raise LineBreakError(
                "SMTP command contains a line break",
                details={"command": label or line.splitlines()[0]},
            )

        self.connection.send_line(line)
        return self.connection.read_reply(command=label or line)

    ## Conversation Steps

    def connect(self) -> None:
        self._require(SessionState.DISCONNECTED)
        self.connection.open()
        self._advance(SessionState.CONNECTED)

    def greet(self) -> SMTPReply:
        """Read the banner and introduce ourselves with EHLO."""
        self._require(SessionState.CONNECTED)
        banner = self.connection.read_reply(command="banner")
        if banner.code // 100 != 2:
            raise SMTPProtocolError(banner.code, banner.raw, "banner")

        reply = self._command(f"EHLO {self.hostname}")
        self._advance(SessionState.GREETED)
        return reply

    def starttls(self) -> SMTPReply:
        """Upgrade to TLS and repeat EHLO so capabilities are re-announced."""
        self._require(SessionState.GREETED)
        self._command("STARTTLS")
        self.connection.starttls()
        reply = self._command(f"EHLO {self.hostname}")
        self._advance(SessionState.TLS_NEGOTIATED)
        return reply

    def authenticate(self) -> Optional[SMTPReply]:
        """Log in with AUTH XOAUTH2 or AUTH LOGIN when auth is enabled.

        Raises:
            MissingOAuthTokenError: XOAUTH2 selected but no token, before
                any AUTH command is sent
        """
        self._require(SessionState.GREETED, SessionState.TLS_NEGOTIATED)
        config = self.config
        reply = None

        if config.auth:
            mechanism = AuthType.XOAUTH2 if config.uses_xoauth2 else AuthType.LOGIN

            if mechanism == AuthType.XOAUTH2:
                if not config.oauth_token:
                    raise MissingOAuthTokenError(details={"host": config.host})

                self._command("AUTH XOAUTH2")
                reply = self._command(
                    _b64(
                        f"user={config.username}\x01"
                        f"auth=Bearer {config.oauth_token}\x01\x01"
                    ),
                    label="AUTH XOAUTH2 credentials",
                )
            else:
                self._command("AUTH LOGIN")
                self._command(_b64(config.username), label="AUTH LOGIN username")
                reply = self._command(
                    _b64(config.password), label="AUTH LOGIN password"
                )

            logger.info(
                "SMTP authentication succeeded",
                extra={"server": config.host, "mechanism": mechanism},
            )

        self._advance(SessionState.AUTHENTICATED)
        return reply

    def send_envelope(self, sender: str, recipients: Sequence[str]) -> None:
        """Issue MAIL FROM and one RCPT TO per recipient, in order."""
        self._require(SessionState.AUTHENTICATED)
        if not recipients:
            raise SessionStateError("At least one recipient is required")

        self._command(f"MAIL FROM:<{_envelope_address(sender)}>")
        self._advance(SessionState.MAIL)

        for recipient in recipients:
            self._command(f"RCPT TO:<{_envelope_address(recipient)}>")
            self._advance(SessionState.RCPT)

    def send_data(self, message: bytes) -> SMTPReply:
        """Transmit the formatted message and return the acceptance reply."""
        self._require(SessionState.RCPT)
        self._command("DATA")
        self._advance(SessionState.DATA)

        self.connection.write(prepare_data(message))
        return self.connection.read_reply(command="end of data")

    def close(self, graceful: bool = True) -> None:
        """Send QUIT and close the socket.

        The QUIT reply is only awaited on a graceful close. Teardown errors
        are logged and dropped so they never mask the error that caused it.
        """
        if self.state is SessionState.DISCONNECTED:
            return

        self._advance(SessionState.CLOSING)
        try:
            if self.connection.is_open:
                self.connection.send_line("QUIT")
                if graceful:
                    self.connection.read_reply(command="QUIT")
        except CourierError as e:
            logger.debug(f"Error during SMTP QUIT: {e.message}")
        finally:
            self.connection.close()
            self._advance(SessionState.DISCONNECTED)

    ## Whole Conversation

    def deliver(self, sender: str, recipients: Sequence[str], message: bytes) -> SMTPReply:
        """Run the full conversation for one message.

        Returns:
            The server's reply accepting the message

        Raises:
            CourierError: Any connection, TLS, auth or protocol failure; the
                socket is closed before the error propagates
        """
        delivered = False
        try:
            self.connect()
            self.greet()
            if self.connection.secure is SecureMode.TLS:
                self.starttls()
            self.authenticate()
            self.send_envelope(sender, recipients)
            reply = self.send_data(message)
            delivered = True
            return reply
        finally:
            self.close(graceful=delivered)

    ## Context Manager Support

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close(graceful=exc_type is None)
