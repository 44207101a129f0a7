"""Header block assembly shared by every transport."""

from typing import List, Optional

from courier.core.models.message import EmailMessage
from courier.utils.logging import get_logger

from .mime import CRLF, EncodedBody, MessageEncoder

logger = get_logger(__name__)

# Written by the formatter itself; custom values would duplicate them
RESERVED_HEADERS = frozenset(
    {"to", "from", "subject", "cc", "bcc", "mime-version", "content-type"}
)


def header_lines(message: EmailMessage, encoded: EncodedBody) -> List[str]:
    """Visible headers for a message, in wire order.

    Bcc recipients are envelope-only and never appear here.
    """
    lines = [
        f"To: {message.to}",
        f"From: {message.sender}",
        f"Subject: {message.subject}",
    ]

    if message.cc:
        lines.append(f"Cc: {', '.join(message.cc)}")

    for name, value in message.headers.items():
        if name.strip().lower() in RESERVED_HEADERS:
            logger.warning(f"Ignoring custom {name} header, it is set from the message")
            continue
        lines.append(f"{name}: {value}")

    lines.append("MIME-Version: 1.0")
    lines.append(f"Content-Type: {encoded.content_type}")
    return lines


def format_message(
    message: EmailMessage,
    encoded: Optional[EncodedBody] = None,
    encoder: Optional[MessageEncoder] = None,
) -> bytes:
    """Render a complete RFC 5322 message: headers, blank line, MIME body.

    Raises:
        AttachmentNotFoundError: If an attachment or image cannot be read
    """
    if encoded is None:
        encoded = (encoder or MessageEncoder()).encode(
            message.body,
            message.is_html,
            message.attachments,
            message.embedded_images,
        )

    head = "".join(line + CRLF for line in header_lines(message, encoded)) + CRLF
    return head.encode("utf-8") + encoded.payload
