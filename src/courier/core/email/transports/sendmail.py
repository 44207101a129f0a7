"""Local submission transport - hands messages to the host's sendmail."""

import subprocess
from typing import List, Optional

from courier.core.email.formatter import format_message
from courier.core.email.mime import MessageEncoder
from courier.core.email.smtp.constants import Timeouts
from courier.core.models.message import EmailMessage
from courier.core.validation.email import extract_address
from courier.utils.errors import LocalSubmissionError, NetworkTimeoutError
from courier.utils.logging import get_logger, log_call

logger = get_logger(__name__)

DEFAULT_SENDMAIL_PATH = "/usr/sbin/sendmail"


class SendmailTransport:
    """Deliver through a sendmail-compatible program on this host.

    Recipients are passed on the command line rather than read from the
    headers, so Bcc addresses reach the envelope without being written
    into the message.
    """

    def __init__(
        self,
        sendmail_path: str = DEFAULT_SENDMAIL_PATH,
        connection_timeout: float = Timeouts.SMTP_CONNECT,
        timeout: float = Timeouts.SENDMAIL,
        encoder: Optional[MessageEncoder] = None,
    ):
        self.sendmail_path = sendmail_path
        # Kept for interface parity; no connection is opened locally
        self.connection_timeout = connection_timeout
        self.timeout = timeout
        self.encoder = encoder or MessageEncoder()

    def set_connection_timeout(self, seconds: float) -> "SendmailTransport":
        self.connection_timeout = seconds
        return self

    def set_timeout(self, seconds: float) -> "SendmailTransport":
        self.timeout = seconds
        return self

    def build_command(self, message: EmailMessage) -> List[str]:
        return [
            self.sendmail_path,
            "-i",
            "-f",
            extract_address(message.sender),
            "--",
            *(extract_address(address) for address in message.recipients()),
        ]

    @log_call
    def send(self, message: EmailMessage) -> bool:
        """Pipe the formatted message into sendmail.

        Returns:
            True when sendmail exits successfully

        Raises:
            MissingRequiredFieldError: If to, from, subject or body is empty
            AttachmentNotFoundError: If an attachment or image is unreadable
            NetworkTimeoutError: If sendmail does not finish in time
            LocalSubmissionError: If sendmail is missing or exits non-zero
        """
        message.validate()
        data = format_message(message, encoder=self.encoder)
        command = self.build_command(message)

        logger.info(
            "Sending email via local sendmail",
            extra={"program": self.sendmail_path, "recipients": len(message.recipients())},
        )

        try:
            result = subprocess.run(
                command,
                input=data,
                capture_output=True,
                timeout=self.timeout,
                check=False,
            )
        except subprocess.TimeoutExpired as e:
            raise NetworkTimeoutError(
                f"sendmail did not finish within {self.timeout}s",
                details={"program": self.sendmail_path},
            ) from e
        except OSError as e:
            raise LocalSubmissionError(
                f"Could not run {self.sendmail_path}: {e.strerror or e}",
                details={"program": self.sendmail_path, "errno": e.errno},
            ) from e

        if result.returncode != 0:
            stderr = result.stderr.decode("utf-8", errors="replace").strip()
            logger.error(
                "Failed to send email using local sendmail",
                extra={"returncode": result.returncode, "stderr": stderr},
            )
            raise LocalSubmissionError(
                f"sendmail exited with status {result.returncode}: {stderr}".rstrip(": "),
                details={"returncode": result.returncode, "stderr": stderr},
            )

        logger.info("Email successfully handed to local sendmail")
        return True
