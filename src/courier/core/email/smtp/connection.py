"""SMTP connection management - owns the socket for a single session."""

import socket
import ssl
from typing import Optional

from courier.utils.errors import (
    NetworkTimeoutError,
    SMTPConnectionError,
    SMTPServerDisconnectedError,
    TLSNegotiationError,
)
from courier.utils.logging import get_logger

from .constants import CRLF, DEFAULT_LOCAL_HOSTNAME, SecureMode, Timeouts
from .protocol import SMTPReply, read_reply

logger = get_logger(__name__)


def local_hostname() -> str:
    """Name announced in EHLO, ``localhost`` when the host has none."""
    try:
        return socket.gethostname() or DEFAULT_LOCAL_HOSTNAME
    except OSError:
        return DEFAULT_LOCAL_HOSTNAME


class SMTPConnection:
    """A blocking SMTP socket with line-oriented I/O and two timeouts.

    ``connection_timeout`` bounds establishing the TCP (and implicit TLS)
    connection; ``timeout`` then applies to every read and write.
    """

    def __init__(
        self,
        host: str,
        port: int,
        secure: SecureMode = SecureMode.NONE,
        connection_timeout: float = Timeouts.SMTP_CONNECT,
        timeout: float = Timeouts.SMTP_IO,
        ssl_context: Optional[ssl.SSLContext] = None,
    ):
        self.host = host
        self.port = port
        self.secure = SecureMode.from_value(secure)
        self.connection_timeout = connection_timeout
        self.timeout = timeout
        self._ssl_context = ssl_context
        self._sock: Optional[socket.socket] = None
        self._reader = None

    @property
    def is_open(self) -> bool:
        return self._sock is not None

    @property
    def is_encrypted(self) -> bool:
        return isinstance(self._sock, ssl.SSLSocket)

    def _context(self) -> ssl.SSLContext:
        if self._ssl_context is None:
            self._ssl_context = ssl.create_default_context()
        return self._ssl_context

    def open(self) -> None:
        """Connect to the server, wrapping in TLS first when ``secure`` is ssl.

        Raises:
            NetworkTimeoutError: If the connection is not made in time
            SMTPConnectionError: If the server cannot be reached
            TLSNegotiationError: If the implicit TLS handshake fails
        """
        logger.info(
            "Connecting to SMTP server",
            extra={
                "server": self.host,
                "port": self.port,
                "ssl_mode": self.secure.value or "none",
            },
        )

        try:
            sock = socket.create_connection(
                (self.host, self.port), timeout=self.connection_timeout
            )
        except TimeoutError as e:
            raise NetworkTimeoutError(
                f"Connection to {self.host}:{self.port} timed out",
                details={"host": self.host, "port": self.port},
            ) from e
        except OSError as e:
            raise SMTPConnectionError(
                f"Could not connect to SMTP server: {e.strerror or e} ({e.errno})",
                host=self.host,
                port=self.port,
                errno=e.errno,
            ) from e

        if self.secure is SecureMode.SSL:
            try:
                sock = self._context().wrap_socket(sock, server_hostname=self.host)
            except TimeoutError as e:
                sock.close()
                raise NetworkTimeoutError(
                    "TLS handshake timed out",
                    details={"host": self.host, "port": self.port},
                ) from e
            except OSError as e:
                sock.close()
                raise TLSNegotiationError(
                    f"Implicit TLS handshake failed: {e}",
                    details={"host": self.host, "port": self.port},
                ) from e

        sock.settimeout(self.timeout)
        self._sock = sock
        self._reader = sock.makefile("rb")

    def starttls(self) -> None:
        """Upgrade the open plaintext socket to TLS in place.

        Raises:
            TLSNegotiationError: If the handshake fails
        """
        self._require_open()

        # Anything buffered before the handshake belongs to the plaintext stream
        self._reader.close()
        try:
            self._sock = self._context().wrap_socket(
                self._sock, server_hostname=self.host
            )
        except TimeoutError as e:
            raise NetworkTimeoutError(
                "TLS handshake timed out",
                details={"host": self.host, "port": self.port},
            ) from e
        except OSError as e:
            raise TLSNegotiationError(
                f"Failed to enable TLS encryption: {e}",
                details={"host": self.host, "port": self.port},
            ) from e

        self._sock.settimeout(self.timeout)
        self._reader = self._sock.makefile("rb")

    def send_line(self, line: str) -> None:
        """Send one command line, appending CRLF."""
        self.write(line.encode("utf-8") + CRLF)

    def write(self, data: bytes) -> None:
        self._require_open()
        try:
            self._sock.sendall(data)
        except TimeoutError as e:
            raise NetworkTimeoutError(
                "Timed out writing to SMTP server", details={"host": self.host}
            ) from e
        except OSError as e:
            raise SMTPServerDisconnectedError(
                f"Connection to SMTP server lost: {e}", details={"host": self.host}
            ) from e

    def read_reply(self, command: str | None = None) -> SMTPReply:
        self._require_open()
        try:
            return read_reply(self._reader, command)
        except TimeoutError as e:
            raise NetworkTimeoutError(
                "Timed out waiting for SMTP reply",
                details={"host": self.host, "command": command},
            ) from e
        except OSError as e:
            raise SMTPServerDisconnectedError(
                f"Connection to SMTP server lost: {e}",
                details={"host": self.host, "command": command},
            ) from e

    def close(self) -> None:
        """Close the socket. Safe to call more than once."""
        reader, sock = self._reader, self._sock
        self._reader = None
        self._sock = None

        try:
            if reader is not None:
                reader.close()
        finally:
            if sock is not None:
                sock.close()
                logger.debug("SMTP connection closed", extra={"server": self.host})

    def _require_open(self) -> None:
        if self._sock is None:
            raise SMTPServerDisconnectedError(
                "Not connected to SMTP server", details={"host": self.host}
            )

    ## Context Manager Support

    def __enter__(self):
        self.open()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
