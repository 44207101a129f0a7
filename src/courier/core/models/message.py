"""Outbound message domain models"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Optional, Tuple

from courier.utils.errors import (
    AttachmentNotFoundError,
    LineBreakError,
    MissingRequiredFieldError,
)

DEFAULT_ATTACHMENT_TYPE = "application/octet-stream"


def _read_file(path: str, kind: str) -> bytes:
    """Read a referenced file, raising a resource error if it is unusable."""
    try:
        return Path(path).read_bytes()
    except OSError as e:
        raise AttachmentNotFoundError(
            f"{kind} file {path} could not be read: {e.strerror or e}",
            details={"path": path, "errno": e.errno},
        ) from e


@dataclass(frozen=True)
class Attachment:
    """File attached to a message, from raw bytes or a filesystem path."""

    display_name: str
    mime_type: Optional[str] = None
    content: Optional[bytes] = None
    path: Optional[str] = None

    def __post_init__(self):
        if (self.content is None) == (self.path is None):
            raise ValueError(
                "Attachment needs exactly one of 'content' or 'path'"
            )

    @property
    def content_type(self) -> str:
        return self.mime_type or DEFAULT_ATTACHMENT_TYPE

    def read(self) -> bytes:
        """Return the attachment bytes.

        Raises:
            AttachmentNotFoundError: If the path cannot be read
        """
        if self.content is not None:
            return self.content
        return _read_file(self.path, "Attachment")

    def __repr__(self) -> str:
        source = f"path={self.path!r}" if self.path else f"{len(self.content)} bytes"
        return (
            f"Attachment(display_name={self.display_name!r}, "
            f"content_type={self.content_type!r}, {source})"
        )


@dataclass(frozen=True)
class EmbeddedImage:
    """Inline image referenced from an HTML body as ``cid:<content_id>``."""

    path: str
    content_id: str
    mime_type: str = "image/jpeg"

    @property
    def filename(self) -> str:
        return Path(self.path).name

    def read(self) -> bytes:
        return _read_file(self.path, "Image")


@dataclass(frozen=True)
class EmailMessage:
    """Immutable message handed to a transport."""

    sender: str
    to: str
    subject: str
    body: str
    is_html: bool = False
    cc: Tuple[str, ...] = ()
    bcc: Tuple[str, ...] = ()
    headers: Dict[str, str] = field(default_factory=dict)
    attachments: Tuple[Attachment, ...] = ()
    embedded_images: Tuple[EmbeddedImage, ...] = ()

    def __post_init__(self):
        # Freeze list inputs so the message cannot change after hand-off
        object.__setattr__(self, "cc", tuple(self.cc))
        object.__setattr__(self, "bcc", tuple(self.bcc))
        object.__setattr__(self, "headers", dict(self.headers))
        object.__setattr__(self, "attachments", tuple(self.attachments))
        object.__setattr__(self, "embedded_images", tuple(self.embedded_images))

    def recipients(self) -> Tuple[str, ...]:
        """Envelope recipients in to, cc, bcc order."""
        return (self.to, *self.cc, *self.bcc)

    def validate(self) -> None:
        """Check required fields before any delivery work starts.

        Raises:
            MissingRequiredFieldError: If to, from, subject or body is empty
            LineBreakError: If an address, the subject or a header has CR or LF
        """
        required = (
            ("to", self.to, "Recipient address is required"),
            ("from", self.sender, "Sender address is required"),
            ("subject", self.subject, "Email subject is required"),
            ("body", self.body, "Email body is required"),
        )

        for field_name, value, message in required:
            if not value:
                raise MissingRequiredFieldError(message, details={"field": field_name})

        single_line = [
            ("from", self.sender),
            ("to", self.to),
            ("subject", self.subject),
            *(("cc", address) for address in self.cc),
            *(("bcc", address) for address in self.bcc),
        ]
        for name, value in self.headers.items():
            single_line.append(("header", name))
            single_line.append((name, value))

        for field_name, value in single_line:
            if "\r" in value or "\n" in value:
                raise LineBreakError(
                    f"Line break in {field_name} is not allowed",
                    details={"field": field_name},
                )
