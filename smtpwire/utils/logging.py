"""Logging for smtpwire.

All package loggers hang off the ``smtpwire`` logger, which gets two handlers
the first time a logger is requested:

- a rich console handler (WARNING and above unless ``init_logging`` says
  otherwise)
- a rotating JSON-lines file under ``<SMTPWIRE_HOME>/logs`` that records
  everything down to DEBUG, including the ``C:``/``S:`` wire trace

Both handlers run records through ``SensitiveDataFilter`` first, so
credentials and full addresses never reach either sink.
"""

import json
import logging
import re
import time
from datetime import datetime, timezone
from functools import wraps
from logging.handlers import RotatingFileHandler
from typing import Any, Callable, Dict, MutableMapping, Optional

from rich.logging import RichHandler

from .paths import LOG_FILE_PATH, LOGS_DIR

ROOT_LOGGER_NAME = "smtpwire"

LOG_FILE_MAX_BYTES = 5 * 1024 * 1024
LOG_FILE_BACKUPS = 5

# Attributes every LogRecord carries; anything else arrived through ``extra``
_RECORD_ATTRS = frozenset(
    vars(logging.LogRecord("", 0, "", 0, "", None, None))
) | {"message", "asctime"}


def _extra_fields(record: logging.LogRecord) -> Dict[str, Any]:
    return {
        key: value
        for key, value in vars(record).items()
        if key not in _RECORD_ATTRS and not key.startswith("_")
    }


## Formatting


class JSONFormatter(logging.Formatter):
    """One JSON object per line; ``extra`` fields are nested under ``context``."""

    def format(self, record: logging.LogRecord) -> str:
        entry: Dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "where": f"{record.module}:{record.funcName}:{record.lineno}",
            "message": record.getMessage(),
        }

        context = _extra_fields(record)
        if context:
            entry["context"] = context

        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)

        return json.dumps(entry, default=str)


class ContextAdapter(logging.LoggerAdapter):
    """Adds fixed context (e.g. a message id) to every record it emits."""

    def process(
        self, msg: Any, kwargs: MutableMapping[str, Any]
    ) -> tuple[Any, MutableMapping[str, Any]]:
        kwargs["extra"] = {**(self.extra or {}), **kwargs.get("extra", {})}
        return msg, kwargs


## Masking


class SensitiveDataMasker:
    """Redacts credentials and shortens addresses in log text and fields."""

    # key=value / key: value pairs whose value must never be logged
    CREDENTIAL_PAIR = re.compile(
        r'((?:password|passwd|secret|token|authorization)["\']?\s*[:=]\s*["\']?)'
        r'([^"\'}\s,]+)',
        re.IGNORECASE,
    )
    # AUTH PLAIN carries the whole credential blob on the command line
    AUTH_INLINE = re.compile(r"(\bAUTH\s+(?:PLAIN|LOGIN)\s+)(\S+)", re.IGNORECASE)
    ADDRESS = re.compile(r"[A-Za-z0-9._%+-]+@[A-Za-z0-9.-]+\.[A-Za-z]{2,}")

    SENSITIVE_FIELDS = frozenset(
        {
            "password",
            "passwd",
            "pwd",
            "secret",
            "token",
            "authorization",
            "auth",
            "credential",
            "credentials",
        }
    )

    def __init__(self, strategy: str = "full"):
        if strategy not in ("full", "partial"):
            raise ValueError(f"Unknown masking strategy: {strategy}")
        self.strategy = strategy

    def mask_func(self, value: str) -> str:
        """Hide ``value`` entirely, or keep three characters at each end."""
        if self.strategy == "partial" and len(value) > 6:
            return value[:3] + "*" * (len(value) - 6) + value[-3:]
        return "[REDACTED]"

    def mask_string(self, text: str) -> str:
        if not text or not isinstance(text, str):
            return text

        def redact(match: re.Match) -> str:
            return match.group(1) + self.mask_func(match.group(2))

        text = self.CREDENTIAL_PAIR.sub(redact, text)
        text = self.AUTH_INLINE.sub(redact, text)
        return self.ADDRESS.sub(lambda m: self.mask_address(m.group(0)), text)

    def mask_value(self, key: str, value: Any) -> Any:
        """Mask one named field: credentials by name, strings and dicts by content."""
        if str(key).lower() in self.SENSITIVE_FIELDS:
            return self.mask_func(str(value))
        if isinstance(value, str):
            return self.mask_string(value)
        if isinstance(value, dict):
            return self.mask_dict(value)
        return value

    def mask_dict(self, data: Dict[str, Any]) -> Dict[str, Any]:
        return {key: self.mask_value(key, value) for key, value in data.items()}

    @staticmethod
    def mask_address(address: str) -> str:
        """``guest@example.com`` -> ``g***@e***``"""
        local, _, domain = address.partition("@")
        masked_local = local[0] + "***" if len(local) > 1 else "***"
        masked_domain = domain[0] + ("***" if len(domain) > 1 else "*")
        return f"{masked_local}@{masked_domain}"


class SensitiveDataFilter(logging.Filter):
    """Masks the message, its arguments and every ``extra`` field in place."""

    def __init__(self, strategy: str = "full"):
        super().__init__()
        self.masker = SensitiveDataMasker(strategy)

    def filter(self, record: logging.LogRecord) -> bool:
        masker = self.masker

        if isinstance(record.msg, str):
            record.msg = masker.mask_string(record.msg)

        if isinstance(record.args, tuple):
            record.args = tuple(masker.mask_string(a) if isinstance(a, str) else a for a in record.args)

        for key, value in _extra_fields(record).items():
            setattr(record, key, masker.mask_value(key, value))

        return True


## Log Manager


class LogManager:
    """Owns the handlers of the ``smtpwire`` logger."""

    def __init__(self, log_level: str = "WARNING", log_to_file: bool = True):
        self.log_level = self._resolve_level(log_level)
        self.log_to_file = log_to_file
        self.root_logger = logging.getLogger(ROOT_LOGGER_NAME)
        self.root_logger.setLevel(logging.DEBUG)
        self._configure()

    @staticmethod
    def _resolve_level(level: str) -> int:
        resolved = logging.getLevelName(level.upper())
        if not isinstance(resolved, int):
            raise ValueError(f"Invalid logging level: {level}")
        return resolved

    def _configure(self) -> None:
        mask = SensitiveDataFilter()
        self.root_logger.handlers.clear()

        handlers = [self._console_handler()]
        if self.log_to_file:
            file_handler = self._file_handler()
            if file_handler is not None:
                handlers.append(file_handler)

        for handler in handlers:
            handler.addFilter(mask)
            self.root_logger.addHandler(handler)

    def _console_handler(self) -> logging.Handler:
        # markup off: server replies may contain square brackets
        handler = RichHandler(show_path=False, markup=False, rich_tracebacks=True)
        handler.setLevel(self.log_level)
        handler.setFormatter(logging.Formatter("%(message)s", datefmt="[%X]"))
        return handler

    def _file_handler(self) -> Optional[logging.Handler]:
        try:
            LOGS_DIR.mkdir(parents=True, exist_ok=True)
            handler = RotatingFileHandler(
                LOG_FILE_PATH,
                maxBytes=LOG_FILE_MAX_BYTES,
                backupCount=LOG_FILE_BACKUPS,
                encoding="utf-8",
            )
        except OSError as e:
            # Read-only home: carry on with the console only
            self.root_logger.warning(f"File logging disabled: {e}")
            return None

        handler.setLevel(logging.DEBUG)
        handler.setFormatter(JSONFormatter())
        return handler

    def get_logger(
        self, name: Optional[str] = None, **context
    ) -> logging.Logger | ContextAdapter:
        """Return ``smtpwire.<name>``, wrapped in a ContextAdapter if context is given."""
        if name and not name.startswith(ROOT_LOGGER_NAME):
            name = f"{ROOT_LOGGER_NAME}.{name}"

        logger = logging.getLogger(name or ROOT_LOGGER_NAME)
        return ContextAdapter(logger, context) if context else logger

    def set_level(self, level: str) -> None:
        """Change the console threshold; the file keeps logging everything."""
        self.log_level = self._resolve_level(level)

        for handler in self.root_logger.handlers:
            if isinstance(handler, RichHandler):
                handler.setLevel(self.log_level)

    def log_event(self, event_type: str, message: str, level: str = "INFO", **extra):
        self.root_logger.log(
            self._resolve_level(level), message, extra={"event_type": event_type, **extra}
        )


## Call Tracing


def _trace(func: Callable, outcome: str, started: float, error: Optional[Exception] = None) -> None:
    logger = logging.getLogger(ROOT_LOGGER_NAME)
    name = f"{func.__module__}.{func.__qualname__}"
    elapsed = time.perf_counter() - started

    if error is None:
        logger.debug(f"<- {outcome} {name} ({elapsed:.3f}s)")
    else:
        logger.debug(f"<- {outcome} {name} after {elapsed:.3f}s: {error}")


def log_call(func):
    """Trace entry, exit and failure of ``func`` at debug level."""

    @wraps(func)
    def wrapper(*args, **kwargs):
        logging.getLogger(ROOT_LOGGER_NAME).debug(f"-> {func.__module__}.{func.__qualname__}")
        started = time.perf_counter()
        try:
            result = func(*args, **kwargs)
        except Exception as e:
            _trace(func, "failed", started, e)
            raise
        _trace(func, "done", started)
        return result

    return wrapper


def async_log_call(func):
    """``log_call`` for coroutines."""

    @wraps(func)
    async def wrapper(*args, **kwargs):
        logging.getLogger(ROOT_LOGGER_NAME).debug(f"-> {func.__module__}.{func.__qualname__} (async)")
        started = time.perf_counter()
        try:
            result = await func(*args, **kwargs)
        except Exception as e:
            _trace(func, "failed", started, e)
            raise
        _trace(func, "done", started)
        return result

    return wrapper


## Module-level helpers

_log_manager: Optional[LogManager] = None


def init_logging(log_level: str = "WARNING", log_to_file: bool = True) -> LogManager:
    """Set up handlers on first call; later calls only change the console level."""
    global _log_manager

    if _log_manager is None:
        _log_manager = LogManager(log_level, log_to_file=log_to_file)
    else:
        _log_manager.set_level(log_level)

    return _log_manager


def _manager() -> LogManager:
    return _log_manager or init_logging()


def get_logger(
    name: Optional[str] = None, **context
) -> logging.Logger | ContextAdapter:
    return _manager().get_logger(name, **context)


def log_event(event_type: str, message: str, **extra):
    """Log a structured event such as ``smtp_send_succeeded``."""
    return _manager().log_event(event_type, message, **extra)
