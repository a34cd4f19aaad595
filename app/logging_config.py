"""
Service-wide logger.

Modules import the shared instance:

    from app.logging_config import logger

Passwords and bearer tokens must never be passed to the logger.
"""

import logging

from app.config import settings

LOGGER_NAME = "credential_provisioner"


def configure_logging(level: str | None = None) -> logging.Logger:
    """Attach a stream handler once and apply the configured level."""
    log = logging.getLogger(LOGGER_NAME)
    if not log.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(
            logging.Formatter("%(asctime)s %(levelname)s [%(name)s] %(message)s")
        )
        log.addHandler(handler)
    log.setLevel((level or settings.LOG_LEVEL).upper())
    return log


logger = configure_logging()
