from .message import Attachment, EmailMessage, EmbeddedImage

__all__ = ["Attachment", "EmailMessage", "EmbeddedImage"]
