"""
Shared test fixtures and configuration for pytest
"""
import os
import tempfile

# Log files go to a throwaway directory; must be set before courier is imported
os.environ.setdefault("COURIER_HOME", tempfile.mkdtemp(prefix="courier-tests-"))

from unittest.mock import patch

import pytest

from courier.core.config import ENV_VARS, EmailConfig
from courier.core.models.message import EmailMessage

from .test_helpers import FakeSocket, SMTPTestHelper


@pytest.fixture(autouse=True)
def clear_env_vars(monkeypatch):
    """Clear delivery environment variables before each test"""
    for var in [*ENV_VARS.values(), "EMAIL_CONFIG", "SES_ENDPOINT"]:
        monkeypatch.delenv(var, raising=False)


@pytest.fixture
def smtp_config():
    """Plain SMTP config without auth or encryption"""
    return EmailConfig(host="smtp.test.com", port=25)


@pytest.fixture
def auth_config():
    """SMTP config with AUTH LOGIN credentials"""
    return EmailConfig(
        host="smtp.test.com",
        port=587,
        auth=True,
        username="user@test.com",
        password="testpass",
    )


@pytest.fixture
def test_message():
    """Sample plain-text message"""
    return EmailMessage(
        sender="a@x.com",
        to="b@y.com",
        subject="Test Subject",
        body="Test email body",
    )


@pytest.fixture
def fake_smtp():
    """Patch socket creation and return a factory for scripted servers.

    Usage: ``sock = fake_smtp(*SMTPTestHelper.plain_delivery())``
    """
    with patch("courier.core.email.smtp.connection.socket.create_connection") as mock_connect:

        def install(*replies):
            sock = FakeSocket(*replies)
            mock_connect.return_value = sock
            return sock

        install.connect = mock_connect
        yield install


@pytest.fixture
def plain_server(fake_smtp):
    """Fake server that accepts one plain-text delivery"""
    return fake_smtp(*SMTPTestHelper.plain_delivery())
