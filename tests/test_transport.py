"""
Tests for the SMTP and sendmail transports and transport selection
"""
import subprocess
from unittest.mock import MagicMock, patch

import pytest

from courier.core.config import EmailConfig
from courier.core.email.transports import (
    SendmailTransport,
    SMTPTransport,
    Transport,
    select_transport,
)
from courier.core.models.message import Attachment, EmailMessage
from courier.utils.errors import (
    AttachmentNotFoundError,
    LineBreakError,
    LocalSubmissionError,
    MissingOAuthTokenError,
    MissingRequiredFieldError,
    NetworkTimeoutError,
    SMTPConnectionError,
    SMTPProtocolError,
)

from .test_helpers import SMTPTestHelper


class TestSMTPTransport:
    """Test delivery over SMTP"""

    def test_send_success(self, smtp_config, test_message, plain_server):
        transport = SMTPTransport(smtp_config, hostname="client.test")

        assert transport.send(test_message) is True
        assert plain_server.commands("MAIL FROM") == ["MAIL FROM:<a@x.com>"]
        assert plain_server.commands("RCPT TO") == ["RCPT TO:<b@y.com>"]
        assert plain_server.closed

    def test_message_headers_on_the_wire(self, smtp_config, test_message, plain_server):
        SMTPTransport(smtp_config, hostname="client.test").send(test_message)

        lines = plain_server.lines
        data_start = lines.index("DATA") + 1
        assert lines[data_start:data_start + 3] == [
            "To: b@y.com",
            "From: a@x.com",
            "Subject: Test Subject",
        ]
        assert "Test email body" in lines

    def test_bcc_in_envelope_not_in_headers(self, smtp_config, fake_smtp):
        sock = fake_smtp(*SMTPTestHelper.plain_delivery(recipients=3))
        message = EmailMessage(
            sender="a@x.com",
            to="b@y.com",
            subject="Hi",
            body="Hello",
            cc=("c@y.com",),
            bcc=("hidden@y.com",),
        )

        SMTPTransport(smtp_config, hostname="client.test").send(message)

        assert sock.commands("RCPT TO") == [
            "RCPT TO:<b@y.com>",
            "RCPT TO:<c@y.com>",
            "RCPT TO:<hidden@y.com>",
        ]
        assert "Cc: c@y.com" in sock.lines
        assert not any("hidden@y.com" in line for line in sock.lines if not line.startswith("RCPT"))

    def test_rejected_recipient(self, smtp_config, test_message, fake_smtp):
        sock = fake_smtp("220 ready", "250 hello", "250 ok", "550 no such user")

        with pytest.raises(SMTPProtocolError) as exc_info:
            SMTPTransport(smtp_config, hostname="client.test").send(test_message)

        assert "550" in str(exc_info.value)
        assert sock.closed

    def test_connection_refused(self, smtp_config, test_message, fake_smtp):
        fake_smtp.connect.side_effect = ConnectionRefusedError(111, "Connection refused")

        with pytest.raises(SMTPConnectionError):
            SMTPTransport(smtp_config).send(test_message)

    def test_missing_field_fails_before_connecting(self, smtp_config, fake_smtp):
        message = EmailMessage(sender="a@x.com", to="b@y.com", subject="", body="Hello")

        with pytest.raises(MissingRequiredFieldError) as exc_info:
            SMTPTransport(smtp_config).send(message)

        assert exc_info.value.details["field"] == "subject"
        fake_smtp.connect.assert_not_called()

    @pytest.mark.parametrize("overrides, field", [
        ({"to": "b@y.com\r\nRCPT TO:<evil@z.com>"}, "to"),
        ({"subject": "Hi\r\nBcc: leak@z.com"}, "subject"),
        ({"cc": ("c@y.com\nRCPT TO:<evil@z.com>",)}, "cc"),
        ({"headers": {"X-Tag": "1\r\nBcc: leak@z.com"}}, "X-Tag"),
        ({"headers": {"X-Tag\r\nBcc": "leak@z.com"}}, "header"),
    ])
    def test_line_break_fails_before_connecting(self, smtp_config, fake_smtp, overrides, field):
        values = dict(sender="a@x.com", to="b@y.com", subject="Hi", body="Hello")
        values.update(overrides)

        with pytest.raises(LineBreakError) as exc_info:
            SMTPTransport(smtp_config).send(EmailMessage(**values))

        assert exc_info.value.details["field"] == field
        fake_smtp.connect.assert_not_called()

    def test_missing_attachment_fails_before_connecting(self, smtp_config, fake_smtp, tmp_path):
        message = EmailMessage(
            sender="a@x.com",
            to="b@y.com",
            subject="Hi",
            body="Hello",
            attachments=(Attachment("gone.pdf", path=str(tmp_path / "gone.pdf")),),
        )

        with pytest.raises(AttachmentNotFoundError):
            SMTPTransport(smtp_config).send(message)

        fake_smtp.connect.assert_not_called()

    def test_missing_oauth_token_fails_before_connecting(self, test_message, fake_smtp):
        config = EmailConfig(host="smtp.office365.com", auth=True, auth_type="XOAUTH2")

        with pytest.raises(MissingOAuthTokenError):
            SMTPTransport(config).send(test_message)

        fake_smtp.connect.assert_not_called()

    def test_new_session_per_send(self, smtp_config, test_message, fake_smtp):
        transport = SMTPTransport(smtp_config, hostname="client.test")

        fake_smtp(*SMTPTestHelper.plain_delivery())
        transport.send(test_message)
        fake_smtp(*SMTPTestHelper.plain_delivery())
        transport.send(test_message)

        assert fake_smtp.connect.call_count == 2

    def test_timeout_setters_chain(self, smtp_config):
        transport = SMTPTransport(smtp_config).set_connection_timeout(3).set_timeout(7)
        session = transport.create_session()

        assert session.connection.connection_timeout == 3
        assert session.connection.timeout == 7


class TestSendmailTransport:
    """Test local sendmail submission"""

    def _completed(self, returncode=0, stderr=b""):
        return subprocess.CompletedProcess(args=[], returncode=returncode, stdout=b"", stderr=stderr)

    def test_build_command_passes_all_recipients(self):
        message = EmailMessage(
            sender="Sender <a@x.com>",
            to="b@y.com",
            subject="Hi",
            body="Hello",
            cc=("Carol <c@y.com>",),
            bcc=("hidden@y.com",),
        )

        command = SendmailTransport("/usr/bin/sendmail").build_command(message)

        assert command == [
            "/usr/bin/sendmail", "-i", "-f", "a@x.com", "--",
            "b@y.com", "c@y.com", "hidden@y.com",
        ]

    @patch("courier.core.email.transports.sendmail.subprocess.run")
    def test_send_pipes_message(self, mock_run, test_message):
        mock_run.return_value = self._completed()

        assert SendmailTransport(timeout=9).send(test_message) is True

        args, kwargs = mock_run.call_args
        assert args[0][0] == "/usr/sbin/sendmail"
        assert kwargs["timeout"] == 9
        assert kwargs["input"].startswith(b"To: b@y.com\r\nFrom: a@x.com\r\n")

    @patch("courier.core.email.transports.sendmail.subprocess.run")
    def test_bcc_not_in_piped_message(self, mock_run):
        mock_run.return_value = self._completed()
        message = EmailMessage(
            sender="a@x.com", to="b@y.com", subject="Hi", body="Hello", bcc=("hidden@y.com",)
        )

        SendmailTransport().send(message)

        args, kwargs = mock_run.call_args
        assert "hidden@y.com" in args[0]
        assert b"hidden@y.com" not in kwargs["input"]

    @patch("courier.core.email.transports.sendmail.subprocess.run")
    def test_nonzero_exit_raises(self, mock_run, test_message):
        mock_run.return_value = self._completed(returncode=75, stderr=b"queue unavailable\n")

        with pytest.raises(LocalSubmissionError) as exc_info:
            SendmailTransport().send(test_message)

        assert exc_info.value.details["returncode"] == 75
        assert exc_info.value.details["stderr"] == "queue unavailable"

    @patch("courier.core.email.transports.sendmail.subprocess.run")
    def test_missing_program_raises(self, mock_run, test_message):
        mock_run.side_effect = FileNotFoundError(2, "No such file or directory")

        with pytest.raises(LocalSubmissionError):
            SendmailTransport("/nowhere/sendmail").send(test_message)

    @patch("courier.core.email.transports.sendmail.subprocess.run")
    def test_timeout_raises(self, mock_run, test_message):
        mock_run.side_effect = subprocess.TimeoutExpired(cmd="sendmail", timeout=1)

        with pytest.raises(NetworkTimeoutError):
            SendmailTransport(timeout=1).send(test_message)

    @patch("courier.core.email.transports.sendmail.subprocess.run")
    def test_invalid_message_never_runs_sendmail(self, mock_run):
        message = EmailMessage(sender="", to="b@y.com", subject="Hi", body="Hello")

        with pytest.raises(MissingRequiredFieldError):
            SendmailTransport().send(message)

        mock_run.assert_not_called()


class TestSelectTransport:
    """Test automatic transport selection"""

    def test_auth_selects_smtp(self, auth_config):
        transport = select_transport(auth_config, connection_timeout=4, timeout=8)

        assert isinstance(transport, SMTPTransport)
        assert transport.config is auth_config
        assert transport.connection_timeout == 4
        assert transport.timeout == 8

    def test_no_auth_selects_sendmail(self, smtp_config):
        transport = select_transport(smtp_config, timeout=8)

        assert isinstance(transport, SendmailTransport)
        assert transport.timeout == 8

    def test_explicit_transport_wins(self, auth_config):
        custom = MagicMock()

        assert select_transport(auth_config, custom) is custom
        custom.set_timeout.assert_not_called()

    def test_transports_satisfy_protocol(self, smtp_config):
        assert isinstance(SMTPTransport(smtp_config), Transport)
        assert isinstance(SendmailTransport(), Transport)
