"""Exception hierarchy for smtpwire.

Everything the package raises derives from ``MailError``:

    MailError
    ├── ConfigurationError
    │   ├── MissingCredentialsError
    │   └── InvalidConfigError
    ├── NetworkError
    │   ├── SMTPConnectionError
    │   │   └── SMTPServerDisconnected
    │   └── NetworkTimeoutError
    ├── SMTPProtocolError
    │   └── SMTPAuthenticationError
    └── SMTPStateError

Each class carries a ``category`` and a default ``user_message``; instances
add a ``details`` dict that ends up in the structured log record.
"""

from enum import Enum
from typing import Any, Dict, Optional


class ErrorCategory(Enum):
    """Coarse grouping used in logs and by callers deciding what to show."""

    CONFIGURATION = "configuration"
    NETWORK = "network"
    PROTOCOL = "protocol"
    AUTHENTICATION = "authentication"
    UNKNOWN = "unknown"


class MailError(Exception):
    """Root of every smtpwire failure."""

    category = ErrorCategory.UNKNOWN
    user_message = "Sending the email failed"

    def __init__(
        self, message: str | None = None, details: Dict[str, Any] | None = None
    ):
        self.message = message or self.user_message
        self.details = dict(details or {})
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        """Flatten for structured logging."""
        return {
            "error_type": type(self).__name__,
            "category": self.category.value,
            "message": self.message,
            "details": self.details,
        }


## Configuration


class ConfigurationError(MailError):
    category = ErrorCategory.CONFIGURATION
    user_message = "SMTP settings are incomplete or invalid"


class MissingCredentialsError(ConfigurationError):
    """SMTP username or password is empty; raised before any socket opens."""

    user_message = "SMTP credentials not configured"


class InvalidConfigError(ConfigurationError):
    """A setting has the wrong type or is out of range (port, timeout, flag)."""

    user_message = "SMTP settings contain an invalid value"


## Network


class NetworkError(MailError):
    category = ErrorCategory.NETWORK
    user_message = "Could not reach the mail server"


class SMTPConnectionError(NetworkError):
    """TCP connect failure, TLS failure or broken link mid-protocol."""

    user_message = "Failed to connect to the mail server"


class SMTPServerDisconnected(SMTPConnectionError):
    """The server closed the connection while a reply was expected."""

    user_message = "The mail server closed the connection unexpectedly"


class NetworkTimeoutError(NetworkError):
    """Connect, handshake or reply wait ran past its configured timeout."""

    user_message = "The mail server did not answer in time"


## Protocol


class SMTPProtocolError(MailError):
    """The server answered with a code the current phase does not allow.

    ``phase``, ``code`` and ``response`` (raw reply text) are kept as
    attributes and copied into ``details``.
    """

    category = ErrorCategory.PROTOCOL
    user_message = "The mail server rejected the message"

    def __init__(
        self,
        message: str | None = None,
        details: Dict[str, Any] | None = None,
        *,
        phase: Optional[str] = None,
        code: Optional[int] = None,
        response: Optional[str] = None,
    ):
        self.phase = phase
        self.code = code
        self.response = response

        reply = {"phase": phase, "code": code, "response": response}
        merged = {key: value for key, value in reply.items() if value is not None}
        merged.update(details or {})

        super().__init__(message, merged)


class SMTPAuthenticationError(SMTPProtocolError):
    """AUTH LOGIN was refused: the credentials are wrong or not allowed."""

    category = ErrorCategory.AUTHENTICATION
    user_message = "SMTP authentication failed"


class SMTPStateError(MailError):
    """A transport primitive was called in the wrong session state."""

    user_message = "Invalid SMTP session state"


def format_error_message(error: Exception) -> str:
    """Text for the terminal: the message, plus the server's reply if there was one."""
    if isinstance(error, SMTPProtocolError) and error.response:
        return f"{error.message} (server said: {error.response})"

    if isinstance(error, MailError):
        return error.message

    return "An unexpected error occurred - check logs for details."
