"""Outbound email encoding and delivery.

- mime: MIME body encoding (single part or multipart/mixed)
- formatter: header block shared by every transport
- smtp: SMTP protocol client
- transports: SMTP and local sendmail transports
"""

from .formatter import format_message
from .mime import EncodedBody, MessageEncoder

__all__ = [
    "EncodedBody",
    "MessageEncoder",
    "format_message",
]
