"""MIME body encoding for outbound messages.

Turns a body plus its attachments and inline images into the bytes that
follow the header block. A message without attachments or images is a
single ``text/plain`` or ``text/html`` part; anything else becomes
``multipart/mixed`` with parts in a fixed order:

1. the text/HTML body (8bit)
2. embedded images, in input order
3. attachments, in input order

The encoder only produces content. ``To``/``From``/``Subject`` belong to
the transport's header block (see ``courier.core.email.formatter``).
"""

import secrets
from dataclasses import dataclass
from email import base64mime
from typing import Iterable, List, Optional, Sequence

from courier.core.models.message import Attachment, EmbeddedImage
from courier.utils.logging import get_logger

logger = get_logger(__name__)

CRLF = "\r\n"
BASE64_LINE_LENGTH = 76
BOUNDARY_PREFIX = "=_courier_"


def generate_boundary() -> str:
    """Return a fresh multipart boundary token."""
    return BOUNDARY_PREFIX + secrets.token_hex(16)


def text_content_type(is_html: bool) -> str:
    return f"{'text/html' if is_html else 'text/plain'}; charset=UTF-8"


def wrap_base64(data: bytes) -> str:
    """Base64-encode ``data`` in CRLF-terminated lines of 76 characters."""
    return base64mime.body_encode(data, maxlinelen=BASE64_LINE_LENGTH, eol=CRLF)


@dataclass(frozen=True)
class EncodedBody:
    """Encoder output: the Content-Type header value plus the payload."""

    content_type: str
    payload: bytes
    boundary: Optional[str] = None

    @property
    def is_multipart(self) -> bool:
        return self.boundary is not None

    def as_bytes(self) -> bytes:
        """Render as a standalone entity: Content-Type line, blank line, payload."""
        return f"Content-Type: {self.content_type}{CRLF}{CRLF}".encode() + self.payload


class MessageEncoder:
    """Encode message content into single-part or multipart/mixed MIME."""

    def __init__(self, boundary_factory=generate_boundary):
        self._boundary_factory = boundary_factory

    def encode(
        self,
        body: str,
        is_html: bool = False,
        attachments: Sequence[Attachment] = (),
        embedded_images: Sequence[EmbeddedImage] = (),
    ) -> EncodedBody:
        """Encode a message body with its attachments and inline images.

        Args:
            body: Plain text or HTML body
            is_html: Whether the body is HTML
            attachments: Attachments, in the order they should appear
            embedded_images: Inline images, in the order they should appear

        Returns:
            EncodedBody with the Content-Type value and payload bytes

        Raises:
            AttachmentNotFoundError: If any referenced file cannot be read
        """
        if not attachments and not embedded_images:
            return EncodedBody(
                content_type=text_content_type(is_html),
                payload=(body + CRLF).encode("utf-8"),
            )

        # Read every file up front so a missing one leaves no partial output
        image_parts = [self._image_part(image) for image in embedded_images]
        attachment_parts = [self._attachment_part(item) for item in attachments]

        boundary = self._boundary_factory()
        parts = [self._body_part(body, is_html), *image_parts, *attachment_parts]

        logger.debug(
            "Encoded multipart body",
            extra={
                "images": len(image_parts),
                "attachments": len(attachment_parts),
            },
        )

        return EncodedBody(
            content_type=f'multipart/mixed; boundary="{boundary}"',
            payload=self._join(parts, boundary).encode("utf-8"),
            boundary=boundary,
        )

    @staticmethod
    def _join(parts: Iterable[str], boundary: str) -> str:
        chunks: List[str] = []
        for part in parts:
            chunks.append(f"--{boundary}{CRLF}{part}{CRLF}{CRLF}")
        chunks.append(f"--{boundary}--{CRLF}")
        return "".join(chunks)

    @staticmethod
    def _headers(*lines: str) -> str:
        return "".join(line + CRLF for line in lines) + CRLF

    def _body_part(self, body: str, is_html: bool) -> str:
        return (
            self._headers(
                f"Content-Type: {text_content_type(is_html)}",
                "Content-Transfer-Encoding: 8bit",
            )
            + body
        )

    def _image_part(self, image: EmbeddedImage) -> str:
        content = wrap_base64(image.read())
        return (
            self._headers(
                f'Content-Type: {image.mime_type}; name="{image.filename}"',
                "Content-Transfer-Encoding: base64",
                f"Content-ID: <{image.content_id}>",
                f'Content-Disposition: inline; filename="{image.filename}"',
            )
            + content
        )

    def _attachment_part(self, attachment: Attachment) -> str:
        content = wrap_base64(attachment.read())
        name = attachment.display_name
        return (
            self._headers(
                f'Content-Type: {attachment.content_type}; name="{name}"',
                "Content-Transfer-Encoding: base64",
                f'Content-Disposition: attachment; filename="{name}"',
            )
            + content
        )


def encode(
    body: str,
    is_html: bool = False,
    attachments: Sequence[Attachment] = (),
    embedded_images: Sequence[EmbeddedImage] = (),
) -> EncodedBody:
    """Module-level shortcut for ``MessageEncoder().encode``."""
    return MessageEncoder().encode(body, is_html, attachments, embedded_images)
