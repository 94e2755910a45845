"""
Shared test fixtures and configuration for pytest
"""
import os
import tempfile

# Keep log files out of the real home directory; must run before smtpwire is imported
os.environ.setdefault("SMTPWIRE_HOME", tempfile.mkdtemp(prefix="smtpwire-tests-"))

from unittest.mock import patch

import pytest

from smtpwire.core.models.message import Attachment, SendRequest
from smtpwire.utils.config import SMTPConfig

from .test_helpers import FakeSMTPServer

SMTP_ENV_KEYS = (
    "SMTP_HOST",
    "SMTP_PORT",
    "SMTP_SECURE",
    "SMTP_USER",
    "SMTP_PASSWORD",
    "SMTP_FROM",
    "SMTP_ENVELOPE_FROM",
    "SMTP_LOCAL_HOSTNAME",
    "SMTP_VERIFY_TLS",
)


@pytest.fixture(autouse=True)
def clean_smtp_env(tmp_path, monkeypatch):
    """Run every test without SMTP_* variables and away from any real .env file"""
    for key in SMTP_ENV_KEYS:
        monkeypatch.delenv(key, raising=False)
    monkeypatch.chdir(tmp_path)

    yield

    # load_dotenv writes straight into os.environ behind monkeypatch's back
    for key in SMTP_ENV_KEYS:
        os.environ.pop(key, None)


@pytest.fixture
def smtp_config():
    """STARTTLS configuration pointing at the fake server"""
    return SMTPConfig(
        host="smtp.test.com",
        port=587,
        username="sender@test.com",
        password="app-password",
        local_hostname="client.test",
        command_timeout=2,
        data_timeout=2,
    )


@pytest.fixture
def implicit_tls_config(smtp_config):
    """Implicit TLS configuration (port 465)"""
    return smtp_config.model_copy(update={"secure": True, "port": 465})


@pytest.fixture
def send_request():
    """Simple HTML message without attachments"""
    return SendRequest.build(
        sender="sender@test.com",
        recipient="guest@example.com",
        subject="Booking confirmation",
        html_body="<p>See you soon</p>",
    )


@pytest.fixture
def pdf_attachment():
    """Small binary attachment"""
    return Attachment("invoice.pdf", b"%PDF-1.4\n%\xe2\xe3\xcf\xd3\n", "application/pdf")


@pytest.fixture
def fake_server():
    """Patch asyncio.open_connection with a scripted in-memory SMTP server"""
    server = FakeSMTPServer()
    with patch(
        "smtpwire.core.email.smtp.connection.asyncio.open_connection",
        new=server.open_connection,
    ):
        yield server
