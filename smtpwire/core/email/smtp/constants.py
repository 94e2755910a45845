"""SMTP status codes, protocol phases and wire limits."""

from enum import Enum


class SMTPStatus:
    """SMTP reply codes used by the send sequence."""

    # 2xx Success
    SERVICE_READY = 220  # Greeting, and the go-ahead for STARTTLS
    CLOSING = 221  # Reply to QUIT
    AUTH_SUCCESSFUL = 235
    OK = 250  # Requested mail action okay, completed
    USER_NOT_LOCAL = 251  # User not local; will forward

    # 3xx Intermediate
    AUTH_CONTINUE = 334  # Server challenge during AUTH
    START_MAIL = 354  # Start mail input; end with <CRLF>.<CRLF>

    # 4xx Transient Failure
    SERVICE_NOT_AVAILABLE = 421

    # 5xx Permanent Failure
    AUTH_FAILED = 535


class SMTPPhase(str, Enum):
    """Steps of a single send, in the order they run."""

    CONNECT = "connect"
    GREETING = "greeting"
    EHLO = "ehlo"
    STARTTLS = "starttls"
    AUTH = "auth"
    MAIL_FROM = "mail_from"
    RCPT_TO = "rcpt_to"
    DATA = "data"
    QUIT = "quit"


class ConnectionLimits:
    """Wire limits."""

    MAX_LINE_LENGTH = 998  # RFC 5321 limit (excluding CRLF)
    MAX_REPLY_LINE = 2048  # Tolerated reply line length before giving up
    READ_CHUNK_SIZE = 4096
