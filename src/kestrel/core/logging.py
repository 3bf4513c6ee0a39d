"""Process-wide logging bootstrap."""

from __future__ import annotations

import logging

from kestrel.core.config import KestrelSettings

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def configure_logging(settings: KestrelSettings | None = None) -> None:
    """Apply ``KESTREL_LOG_LEVEL`` unless the host already configured logging."""

    if logging.getLogger().handlers:
        return
    settings = settings or KestrelSettings()
    level = getattr(logging, str(settings.log_level).upper(), logging.INFO)
    logging.basicConfig(level=level, format=LOG_FORMAT)


__all__ = ["LOG_FORMAT", "configure_logging"]
