import logging
import re
import sys
from typing import Union

# Credentials that may end up in a log line through a URL or an exception
# message: bearer headers, OAuth query/form parameters.
_SECRET_PATTERNS = [
    re.compile(r"(Bearer\s+)[A-Za-z0-9._~+/=-]+"),
    re.compile(
        r"((?:access_token|refresh_token|oauth_token|client_secret|code)=)[^&\s\"']+"
    ),
]
REDACTED = "[redacted]"


def redact(text: str) -> str:
    for pattern in _SECRET_PATTERNS:
        text = pattern.sub(lambda m: m.group(1) + REDACTED, text)
    return text


class SecretRedactingFilter(logging.Filter):
    """Masks provider credentials in the rendered message of every record."""

    def filter(self, record: logging.LogRecord) -> bool:
        message = record.getMessage()
        cleaned = redact(message)
        if cleaned != message:
            record.msg = cleaned
            record.args = None
        return True


def configure_logging(level: Union[int, str] = logging.INFO) -> None:
    """
    Configure root logging for the application.

    - Logs go to stdout through a single handler
    - Time, level and logger name on every line
    - Provider credentials are masked before a record is written
    - `level` accepts a logging constant or a name such as "DEBUG"
    """
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.INFO

    root = logging.getLogger()
    root.setLevel(level)

    if any(isinstance(f, SecretRedactingFilter) for h in root.handlers for f in h.filters):
        return

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(
        logging.Formatter(
            "%(asctime)s [%(levelname)s] %(name)s - %(message)s",
            datefmt="%H:%M:%S",
        )
    )
    handler.addFilter(SecretRedactingFilter())
    root.addHandler(handler)
