"""Shared constants for outgoing mail.

Centralised configuration for:
- Timeout settings
- Standard submission ports

Customisation:
---------------
The values below are the defaults picked up by ``SMTPConfig``; every
timeout can be overridden per config instance.
"""


class Timeouts:
    """Timeout settings for SMTP operations (in seconds)."""

    SMTP_CONNECT = 30.0  # TCP connect (and TLS handshake for implicit TLS)
    SMTP_COMMAND = 30.0  # Reply to a single command
    SMTP_DATA = 60.0  # Final reply after the message body (slow for large mail)
    SMTP_STARTTLS = 30.0  # STARTTLS handshake


class SMTPPorts:
    """Standard SMTP port numbers."""

    # Submission ports (client to server)
    SUBMISSION = 587  # STARTTLS (recommended)
    SUBMISSION_SSL = 465  # Implicit TLS/SSL

    # Legacy/relay ports
    SMTP = 25  # Plain SMTP (server-to-server)

    @classmethod
    def is_implicit_ssl(cls, port: int) -> bool:
        """Check if port conventionally uses implicit SSL.

        Args:
            port: SMTP port number

        Returns:
            True if implicit SSL, False otherwise
        """
        return port == cls.SUBMISSION_SSL


class MIMELimits:
    """MIME formatting limits."""

    BASE64_LINE_WIDTH = 76  # RFC 2045
