"""Fluent message builder - the main entry point for sending email.

    >>> from courier import Email
    >>>
    >>> (
    ...     Email()
    ...     .to("alice@example.com", "Alice")
    ...     .subject("Quarterly report")
    ...     .body("<p>See attached.</p>", is_html=True)
    ...     .attachment("report.pdf")
    ...     .send()
    ... )
    True
"""

import mimetypes
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Sequence

from courier.core.config import EmailConfig
from courier.core.email.smtp.constants import Timeouts
from courier.core.email.transports import Transport, select_transport
from courier.core.models.message import (
    DEFAULT_ATTACHMENT_TYPE,
    Attachment,
    EmailMessage,
    EmbeddedImage,
)
from courier.core.templates import TemplateProcessor
from courier.core.validation.email import format_address
from courier.utils.errors import AttachmentNotFoundError, ValidationError
from courier.utils.logging import get_logger

logger = get_logger(__name__)

DEFAULT_IMAGE_TYPE = "image/jpeg"


class Email:
    """Collects message fields and sends them through a transport."""

    def __init__(
        self,
        config: Optional[EmailConfig] = None,
        transport: Optional[Transport] = None,
        template_processor: Optional[TemplateProcessor] = None,
    ):
        """Initialise the builder.

        Args:
            config: Delivery configuration (read from the environment if None)
            transport: Transport to use instead of automatic selection
            template_processor: Processor for template() calls
        """
        self.config = config or EmailConfig.from_env()
        self._transport = transport
        self._template_processor = template_processor

        self._to: str = ""
        self._from: str = ""
        self._subject: str = ""
        self._body: str = ""
        self._is_html = False
        self._reply_to: str = ""
        self._cc: List[str] = []
        self._bcc: List[str] = []
        self._headers: Dict[str, str] = {}
        self._attachments: List[Attachment] = []
        self._embedded_images: List[EmbeddedImage] = []
        self.connection_timeout = Timeouts.SMTP_CONNECT
        self.timeout = Timeouts.SMTP_IO

        if self.config.from_address:
            self.sender(self.config.from_address, self.config.from_name)

    ## Addressing

    def to(self, email: str, name: str = "") -> "Email":
        self._to = format_address(email, name)
        return self

    def sender(self, email: str, name: str = "") -> "Email":
        self._from = format_address(email, name)
        return self

    def reply_to(self, email: str, name: str = "") -> "Email":
        self._reply_to = format_address(email, name)
        return self

    def cc(self, email: str, name: str = "") -> "Email":
        self._cc.append(format_address(email, name))
        return self

    def bcc(self, email: str, name: str = "") -> "Email":
        self._bcc.append(format_address(email, name))
        return self

    def add_recipients(self, recipients: Sequence[str] | Mapping[str, str]) -> "Email":
        """Set To from a list or address->name map.

        A message has a single To address, so the last entry wins.
        """
        for email, name in _pairs(recipients):
            self.to(email, name)
        return self

    def add_cc(self, recipients: Sequence[str] | Mapping[str, str]) -> "Email":
        """Add CC recipients from a list of addresses or an address->name map."""
        for email, name in _pairs(recipients):
            self.cc(email, name)
        return self

    def add_bcc(self, recipients: Sequence[str] | Mapping[str, str]) -> "Email":
        """Add BCC recipients from a list of addresses or an address->name map."""
        for email, name in _pairs(recipients):
            self.bcc(email, name)
        return self

    ## Content

    def subject(self, subject: str) -> "Email":
        self._subject = subject
        return self

    def body(self, body: str, is_html: bool = False) -> "Email":
        self._body = body
        self._is_html = is_html
        return self

    def add_header(self, name: str, value: str) -> "Email":
        self._headers[name] = value
        return self

    def attachment(self, path: str, name: str = "", mime_type: Optional[str] = None) -> "Email":
        """Attach a file from disk.

        Raises:
            AttachmentNotFoundError: If the file does not exist
        """
        if not Path(path).exists():
            raise AttachmentNotFoundError(
                f"File {path} does not exist", details={"path": path}
            )

        self._attachments.append(
            Attachment(display_name=name or Path(path).name, mime_type=mime_type, path=path)
        )
        return self

    def attachment_from_string(
        self,
        content: str | bytes,
        name: str,
        mime_type: str = DEFAULT_ATTACHMENT_TYPE,
    ) -> "Email":
        if isinstance(content, str):
            content = content.encode("utf-8")

        self._attachments.append(
            Attachment(display_name=name, mime_type=mime_type, content=content)
        )
        return self

    def embed_image(self, path: str, cid: str) -> "Email":
        """Embed an image, referenced from the HTML body as ``cid:<cid>``.

        Raises:
            AttachmentNotFoundError: If the image file does not exist
        """
        if not Path(path).exists():
            raise AttachmentNotFoundError(
                f"Image file {path} does not exist", details={"path": path}
            )

        mime_type, _ = mimetypes.guess_type(path)
        self._embedded_images.append(
            EmbeddedImage(path=path, content_id=cid, mime_type=mime_type or DEFAULT_IMAGE_TYPE)
        )
        return self

    ## Templates

    @property
    def template_processor(self) -> TemplateProcessor:
        if self._template_processor is None:
            self._template_processor = TemplateProcessor()
        return self._template_processor

    def set_template_processor(self, template_processor: TemplateProcessor) -> "Email":
        self._template_processor = template_processor
        return self

    def template(
        self,
        template_path: str,
        variables: Optional[Mapping[str, Any]] = None,
        is_html: bool = True,
    ) -> "Email":
        """Use a template file, with placeholders filled in, as the body.

        Raises:
            TemplateNotFoundError: If the template cannot be read
        """
        content = self.template_processor.process_file(template_path, variables)
        return self.body(content, is_html)

    def template_from_string(
        self,
        template_content: str,
        variables: Optional[Mapping[str, Any]] = None,
        is_html: bool = True,
    ) -> "Email":
        content = self.template_processor.process_content(template_content, variables)
        return self.body(content, is_html)

    ## Delivery Settings

    def set_connection_timeout(self, seconds: float) -> "Email":
        self.connection_timeout = seconds
        return self

    def set_timeout(self, seconds: float) -> "Email":
        self.timeout = seconds
        return self

    def set_oauth_token(self, token: str) -> "Email":
        self.config.set_oauth_token(token)
        return self

    def set_smtp_config(self, **values) -> "Email":
        """Override configuration values, e.g. ``host=...``, ``port=...``."""
        self.config.set_config(**values)
        return self

    def set_transport(self, transport: Transport) -> "Email":
        self._transport = transport
        return self

    def get_transport(self) -> Transport:
        return select_transport(
            self.config,
            self._transport,
            connection_timeout=self.connection_timeout,
            timeout=self.timeout,
        )

    ## Sending

    def build(self) -> EmailMessage:
        """Freeze the collected fields into a validated ``EmailMessage``.

        Raises:
            MissingRequiredFieldError: If to, from, subject or body is empty
            LineBreakError: If an address, the subject or a header has CR or LF
        """
        headers: Dict[str, str] = {}
        if self._reply_to:
            headers["Reply-To"] = self._reply_to
        headers.update(self._headers)

        message = EmailMessage(
            sender=self._from,
            to=self._to,
            subject=self._subject,
            body=self._body,
            is_html=self._is_html,
            cc=tuple(self._cc),
            bcc=tuple(self._bcc),
            headers=headers,
            attachments=tuple(self._attachments),
            embedded_images=tuple(self._embedded_images),
        )

        try:
            message.validate()
        except ValidationError as e:
            logger.error(e.message, extra={"field": e.details.get("field")})
            raise

        return message

    def send(self) -> bool:
        """Send the email.

        Returns:
            True on success; every failure raises a ``CourierError``
        """
        logger.info("Sending email")
        message = self.build()
        return self.get_transport().send(message)


def _pairs(recipients: Sequence[str] | Mapping[str, str]):
    if isinstance(recipients, Mapping):
        return list(recipients.items())
    return [(email, "") for email in recipients]
