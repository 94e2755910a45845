"""Domain models for outgoing mail."""

from .message import Attachment, SendRequest, SendResult

__all__ = ["Attachment", "SendRequest", "SendResult"]
