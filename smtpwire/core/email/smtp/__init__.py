"""SMTP protocol implementation.

Low-level SMTP components, layered bottom-up:
- ResponseDecoder: Frames raw bytes into reply blocks
- SMTPTransport: Socket lifecycle, TLS upgrade, line I/O
- SMTPProtocol: One method per SMTP command with reply checks
- SMTPClient: The full send sequence for one message

Direct Usage (Advanced)
-----------------------
Most callers only need ``send_email`` or ``SMTPClient``. Driving the
layers by hand:

    >>> from smtpwire.core.email.smtp import SMTPProtocol, SMTPTransport
    >>>
    >>> async with SMTPTransport(config) as transport:
    ...     await transport.connect()
    ...     smtp = SMTPProtocol(transport)
    ...     await smtp.greeting()
    ...     await smtp.ehlo("client.example.com")
    ...     await smtp.quit()

Recommended Usage
-----------------

    >>> from smtpwire.core.email.smtp import SMTPClient
    >>>
    >>> result = await SMTPClient(config).send(request)
    >>> print(result.message_id)
"""

from .client import SMTPClient, send_email
from .connection import SessionState, SMTPTransport
from .framing import ResponseDecoder, SMTPResponse
from .protocol import SMTPProtocol

__all__ = [
    "ResponseDecoder",
    "SessionState",
    "SMTPClient",
    "SMTPProtocol",
    "SMTPResponse",
    "SMTPTransport",
    "send_email",
]
