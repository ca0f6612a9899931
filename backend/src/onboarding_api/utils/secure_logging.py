"""Log helpers that keep connection details and personal data out of production logs."""

import logging
import re
from functools import lru_cache

from onboarding_api.config import get_settings

MAX_MESSAGE_LENGTH = 200

# Applied in order: URLs before paths, so a URL's path is not matched on its own
_REDACTIONS = (
    (re.compile(r"(postgresql|postgres|redis|ldaps?|https?)://\S+"), "[URL]"),
    (re.compile(r"['\"]?(/[a-zA-Z0-9_./\-]+|[A-Z]:\\[^\s'\"]+)['\"]?"), "[PATH]"),
    (re.compile(r"[a-zA-Z0-9_.+-]+@[a-zA-Z0-9-]+\.[a-zA-Z0-9-.]+"), "[EMAIL]"),
    (re.compile(r"(CN|OU|DC)=[^\s;,]+", re.IGNORECASE), "[DN]"),
    (re.compile(r"[a-zA-Z0-9_\-]{32,}"), "[TOKEN]"),
)


@lru_cache(maxsize=1)
def is_debug_mode() -> bool:
    return get_settings().debug


def sanitize_exception_message(error: Exception) -> str:
    """Text of ``error`` with URLs, paths, e-mail addresses, directory DNs and tokens masked."""
    message = str(error)
    for pattern, replacement in _REDACTIONS:
        message = pattern.sub(replacement, message)
    if len(message) > MAX_MESSAGE_LENGTH:
        message = message[: MAX_MESSAGE_LENGTH - 3] + "..."
    return message


def _log(logger: logging.Logger, level: int, message: str, error: Exception | None) -> None:
    if error is None:
        logger.log(level, message)
    elif is_debug_mode():
        logger.log(level, "%s: %s", message, error, exc_info=level >= logging.ERROR)
    else:
        logger.log(level, "%s: %s", message, sanitize_exception_message(error))


def log_error(logger: logging.Logger, message: str, error: Exception | None = None) -> None:
    """Log at ERROR; the exception and traceback appear unredacted only in debug mode."""
    _log(logger, logging.ERROR, message, error)


def log_warning(logger: logging.Logger, message: str, error: Exception | None = None) -> None:
    """Log at WARNING; the exception appears unredacted only in debug mode."""
    _log(logger, logging.WARNING, message, error)
