"""Logging configuration helpers."""

import logging
from collections.abc import Iterable

_REDACTED = "<redacted>"


class SecretRedactingFilter(logging.Filter):
    """Mask configured secret values in rendered log messages."""

    def __init__(self, secrets: Iterable[str]) -> None:
        super().__init__()
        self.secrets: tuple[str, ...] = ()
        self.add_secrets(secrets)

    def add_secrets(self, secrets: Iterable[str]) -> None:
        """Start masking secrets in addition to those already known."""
        for secret in secrets:
            if secret and secret not in self.secrets:
                self.secrets += (secret,)

    def filter(self, record: logging.LogRecord) -> bool:
        if not self.secrets:
            return True
        message = record.getMessage()
        redacted = message
        for secret in self.secrets:
            redacted = redacted.replace(secret, _REDACTED)
        if redacted != message:
            record.msg = redacted
            record.args = None
        return True


def configure_logging(
    level: str | int = logging.INFO, secrets: Iterable[str] = ()
) -> None:
    """Configure the site_cloner logger with a single redacting stream handler."""
    logger = logging.getLogger("site_cloner")
    logger.setLevel(level)
    if logger.handlers:
        for handler in logger.handlers:
            for existing in handler.filters:
                if isinstance(existing, SecretRedactingFilter):
                    existing.add_secrets(secrets)
        return
    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter("%(levelname)s: %(name)s: %(message)s"))
    handler.addFilter(SecretRedactingFilter(secrets))
    logger.addHandler(handler)
    logger.propagate = False
