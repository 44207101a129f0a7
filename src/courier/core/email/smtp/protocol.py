"""SMTP reply parsing.

A reply is one or more CRLF-terminated lines. Every line starts with the
same three-digit code; the fourth character is ``-`` on continuation
lines and a space (or nothing) on the final line::

    250-smtp.example.com greets you
    250-PIPELINING
    250 AUTH LOGIN XOAUTH2
"""

from dataclasses import dataclass
from typing import BinaryIO, Tuple

from courier.utils.errors import SMTPProtocolError, SMTPServerDisconnectedError
from courier.utils.logging import get_logger

from .constants import MAX_REPLY_LINE, SMTPResponse

logger = get_logger(__name__)


@dataclass(frozen=True)
class SMTPReply:
    """A complete (possibly multi-line) server reply."""

    code: int
    lines: Tuple[str, ...]

    @property
    def text(self) -> str:
        """Reply text without the code prefixes, one line per reply line."""
        return "\n".join(line[4:] for line in self.lines)

    @property
    def raw(self) -> str:
        return "\r\n".join(self.lines)

    @property
    def is_error(self) -> bool:
        return self.code >= SMTPResponse.ERROR_THRESHOLD


def _parse_code(line: str) -> int:
    code = line[:3]
    if len(code) != 3 or not code.isdigit():
        raise SMTPProtocolError(0, line, details={"reason": "malformed reply"})
    return int(code)


def read_reply(stream: BinaryIO, command: str | None = None) -> SMTPReply:
    """Read one reply from ``stream``.

    Args:
        stream: Buffered binary reader over the connection
        command: Command the reply answers (for error context only)

    Returns:
        SMTPReply with the code of the final line

    Raises:
        SMTPServerDisconnectedError: If the stream ends mid-reply
        SMTPProtocolError: If a line is malformed or the code is >= 400
    """
    lines = []

    while True:
        raw = stream.readline(MAX_REPLY_LINE + 1)
        if not raw:
            raise SMTPServerDisconnectedError(
                "Connection unexpectedly closed by SMTP server",
                details={"command": command, "partial": "\r\n".join(lines)},
            )
        if len(raw) > MAX_REPLY_LINE:
            raise SMTPProtocolError(
                0, "reply line too long", command, details={"reason": "line length"}
            )

        line = raw.decode("utf-8", errors="replace").rstrip("\r\n")
        code = _parse_code(line)
        lines.append(line)

        # "250-..." continues, "250 ..." or a bare "250" ends the reply
        if line[3:4] != "-":
            break

    reply = SMTPReply(code=code, lines=tuple(lines))

    if reply.is_error:
        logger.error(
            "SMTP error", extra={"code": reply.code, "response": reply.raw}
        )
        raise SMTPProtocolError(reply.code, reply.raw, command)

    logger.debug("SMTP response", extra={"code": reply.code, "response": reply.raw})
    return reply
