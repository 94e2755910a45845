"""Outgoing message domain models."""

import mimetypes
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable, Optional, Tuple

DEFAULT_CONTENT_TYPE = "application/octet-stream"


@dataclass(frozen=True)
class Attachment:
    """A binary file carried as its own MIME part."""

    filename: str
    content: bytes
    content_type: str = DEFAULT_CONTENT_TYPE

    def __post_init__(self):
        # bytearray/memoryview are accepted but stored as immutable bytes
        if not isinstance(self.content, bytes):
            object.__setattr__(self, "content", bytes(self.content))

    @property
    def size_bytes(self) -> int:
        return len(self.content)

    @classmethod
    def from_path(
        cls, path: Path | str, content_type: Optional[str] = None
    ) -> "Attachment":
        """Read a file from disk, guessing its MIME type from the extension.

        Args:
            path: File to attach
            content_type: Explicit MIME type, skips guessing

        Returns:
            Attachment named after the file's basename
        """
        path = Path(path)
        guessed, _ = mimetypes.guess_type(path.name)

        return cls(
            filename=path.name,
            content=path.read_bytes(),
            content_type=content_type or guessed or DEFAULT_CONTENT_TYPE,
        )


@dataclass(frozen=True)
class SendRequest:
    """Everything needed to deliver one message to one recipient."""

    sender: str
    recipient: str
    subject: str
    html_body: str
    attachments: Tuple[Attachment, ...] = field(default_factory=tuple)

    def __post_init__(self):
        object.__setattr__(self, "attachments", tuple(self.attachments))

    @classmethod
    def build(
        cls,
        sender: str,
        recipient: str,
        subject: str,
        html_body: str,
        attachments: Optional[Iterable[Attachment]] = None,
    ) -> "SendRequest":
        return cls(sender, recipient, subject, html_body, tuple(attachments or ()))

    def has_attachments(self) -> bool:
        """Check if the message carries attachments."""
        return len(self.attachments) > 0


@dataclass(frozen=True)
class SendResult:
    """Outcome of a successful send.

    ``message_id`` is a locally generated correlation token for logs, not
    an RFC 5322 Message-ID header.
    """

    message_id: str
    success: bool = True
