"""courier - outbound email over SMTP or local sendmail."""

from .builder import Email
from .core.config import PROVIDER_PRESETS, EmailConfig
from .core.email.transports import (
    SendmailTransport,
    SMTPTransport,
    Transport,
    select_transport,
)
from .core.models import Attachment, EmailMessage, EmbeddedImage
from .utils.errors import CourierError

__version__ = "0.1.0"

__all__ = [
    "Attachment",
    "CourierError",
    "Email",
    "EmailConfig",
    "EmailMessage",
    "EmbeddedImage",
    "PROVIDER_PRESETS",
    "SMTPTransport",
    "SendmailTransport",
    "Transport",
    "select_transport",
]
