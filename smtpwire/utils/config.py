"""SMTP configuration model and environment loader."""

import os
import socket
from pathlib import Path
from typing import Any, Optional

from dotenv import find_dotenv, load_dotenv
from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    ModelWrapValidatorHandler,
    SecretStr,
    ValidationError,
    model_validator,
)

from smtpwire.core.email.constants import SMTPPorts, Timeouts

from .errors import InvalidConfigError, MissingCredentialsError
from .logging import get_logger

logger = get_logger(__name__)

DEFAULT_SMTP_HOST = "smtp.gmail.com"

_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off", ""}


class SMTPConfig(BaseModel):
    """Connection and account settings for one SMTP relay.

    Instances are immutable and validated on construction: a missing
    username or password raises ``MissingCredentialsError`` before any
    socket can be opened, and any other bad value (empty host, port out of
    range, non-positive timeout) raises ``InvalidConfigError``.
    """

    model_config = ConfigDict(frozen=True)

    host: str = Field(default=DEFAULT_SMTP_HOST, min_length=1)
    port: int = Field(default=SMTPPorts.SUBMISSION, ge=1, le=65535)
    secure: bool = False  # implicit TLS on connect instead of STARTTLS
    username: str = ""
    password: SecretStr = SecretStr("")
    from_address: Optional[str] = None
    envelope_from: Optional[str] = None
    local_hostname: Optional[str] = None
    verify_tls: bool = True

    connect_timeout: float = Field(default=Timeouts.SMTP_CONNECT, gt=0)
    command_timeout: float = Field(default=Timeouts.SMTP_COMMAND, gt=0)
    data_timeout: float = Field(default=Timeouts.SMTP_DATA, gt=0)
    tls_timeout: float = Field(default=Timeouts.SMTP_STARTTLS, gt=0)

    @model_validator(mode="wrap")
    @classmethod
    def translate_field_errors(
        cls, data: Any, handler: ModelWrapValidatorHandler["SMTPConfig"]
    ) -> "SMTPConfig":
        try:
            return handler(data)
        except ValidationError as e:
            raise InvalidConfigError(
                f"SMTP configuration does not match expected schema: {e}",
                details={"errors": [err["loc"] for err in e.errors()]},
            ) from e

    @model_validator(mode="after")
    def check_credentials(self) -> "SMTPConfig":
        missing = []
        if not self.username:
            missing.append("username")
        if not self.password.get_secret_value():
            missing.append("password")

        if missing:
            raise MissingCredentialsError(
                "SMTP credentials not configured: missing " + ", ".join(missing),
                details={"missing": missing, "host": self.host},
            )

        return self

    @model_validator(mode="after")
    def check_port_mode(self) -> "SMTPConfig":
        if SMTPPorts.is_implicit_ssl(self.port) and not self.secure:
            logger.warning(
                f"Port {self.port} normally expects implicit TLS but secure is off; "
                "the server may never send a plaintext greeting",
                extra={"host": self.host, "port": self.port},
            )
        return self

    @property
    def ehlo_identity(self) -> str:
        """Name announced in EHLO; falls back to this machine's FQDN."""
        return self.local_hostname or socket.getfqdn() or "localhost"

    @property
    def mail_from(self) -> str:
        """Envelope sender used in ``MAIL FROM``."""
        return self.envelope_from or self.username

    @classmethod
    def from_env(cls, env_file: Optional[Path] = None) -> "SMTPConfig":
        """Load settings from ``SMTP_*`` environment variables.

        A ``.env`` file is read first when present; variables already set in
        the process environment take precedence over it.
        """
        dotenv_path = env_file or find_dotenv(usecwd=True)
        if dotenv_path:
            load_dotenv(dotenv_path)

        secure = _env_bool("SMTP_SECURE", False)
        default_port = SMTPPorts.SUBMISSION_SSL if secure else SMTPPorts.SUBMISSION

        values = {
            "host": os.getenv("SMTP_HOST") or DEFAULT_SMTP_HOST,
            "port": _env_int("SMTP_PORT", default_port),
            "secure": secure,
            "username": os.getenv("SMTP_USER", ""),
            "password": os.getenv("SMTP_PASSWORD", ""),
            "from_address": os.getenv("SMTP_FROM") or None,
            "envelope_from": os.getenv("SMTP_ENVELOPE_FROM") or None,
            "local_hostname": os.getenv("SMTP_LOCAL_HOSTNAME") or None,
            "verify_tls": _env_bool("SMTP_VERIFY_TLS", True),
        }

        config = cls(**values)
        logger.debug(
            "SMTP configuration loaded from environment",
            extra={"host": config.host, "port": config.port, "secure": config.secure},
        )
        return config


def _env_int(key: str, default: int) -> int:
    raw = os.getenv(key)
    if raw is None or raw.strip() == "":
        return default

    try:
        return int(raw)
    except ValueError as e:
        raise InvalidConfigError(
            f"{key} must be a valid integer, got {raw!r}", details={"key": key}
        ) from e


def _env_bool(key: str, default: bool) -> bool:
    raw = os.getenv(key)
    if raw is None:
        return default

    value = raw.strip().lower()
    if value in _TRUE_VALUES:
        return True
    if value in _FALSE_VALUES:
        return False

    raise InvalidConfigError(
        f"{key} must be a boolean (true/false), got {raw!r}", details={"key": key}
    )
