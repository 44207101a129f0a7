"""Transport selection."""

from typing import Optional

from courier.core.config import EmailConfig
from courier.core.email.smtp.constants import Timeouts
from courier.utils.logging import get_logger

from .base import Transport
from .sendmail import SendmailTransport
from .smtp import SMTPTransport

logger = get_logger(__name__)


def select_transport(
    config: EmailConfig,
    transport: Optional[Transport] = None,
    connection_timeout: float = Timeouts.SMTP_CONNECT,
    timeout: float = Timeouts.SMTP_IO,
) -> Transport:
    """Pick the transport for a send.

    An explicit transport always wins. Otherwise authenticated delivery
    goes over SMTP and everything else through local sendmail. Timeouts
    are only applied to transports built here.
    """
    if transport is not None:
        return transport

    if config.auth:
        selected: Transport = SMTPTransport(config)
    else:
        selected = SendmailTransport()

    logger.debug(f"Selected {type(selected).__name__} for delivery")

    selected.set_connection_timeout(connection_timeout)
    selected.set_timeout(timeout)
    return selected
