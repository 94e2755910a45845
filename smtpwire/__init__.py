"""smtpwire: a raw SMTP transport client.

Speaks SMTP directly over an asyncio TCP stream: plaintext or implicit TLS,
in-band STARTTLS upgrade, AUTH LOGIN, and a hand-built MIME payload with an
HTML body and base64 attachments.

    >>> from smtpwire import Attachment, SMTPConfig, send_email
    >>>
    >>> config = SMTPConfig(username="billing@example.com", password="app-password")
    >>> result = await send_email(
    ...     "Billing <billing@example.com>",
    ...     "guest@example.com",
    ...     "Your invoice",
    ...     "<h1>Thanks for staying with us</h1>",
    ...     attachments=[Attachment("invoice.pdf", pdf_bytes, "application/pdf")],
    ...     config=config,
    ... )
    >>> result.message_id
    'smtp-1760000000000-3f2a9c1e'
"""

from .core.email.composer import MessageComposer, compose_message
from .core.email.smtp.client import SMTPClient, send_email
from .core.models.message import Attachment, SendRequest, SendResult
from .utils.config import SMTPConfig
from .utils.errors import (
    ConfigurationError,
    MailError,
    MissingCredentialsError,
    NetworkTimeoutError,
    SMTPAuthenticationError,
    SMTPConnectionError,
    SMTPProtocolError,
    SMTPServerDisconnected,
)

__version__ = "0.1.0"

__all__ = [
    # Models
    "Attachment",
    "SendRequest",
    "SendResult",
    # Composer
    "MessageComposer",
    "compose_message",
    # Transport
    "SMTPClient",
    "SMTPConfig",
    "send_email",
    # Errors
    "ConfigurationError",
    "MailError",
    "MissingCredentialsError",
    "NetworkTimeoutError",
    "SMTPAuthenticationError",
    "SMTPConnectionError",
    "SMTPProtocolError",
    "SMTPServerDisconnected",
]
