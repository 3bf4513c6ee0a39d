"""Core shared primitives for Kestrel.

Contains the settings container and the logging bootstrap used by scripts
and long-running hosts.
"""

from .config import KestrelSettings, ReadinessIntegration
from .logging import configure_logging

__all__ = [
    "KestrelSettings",
    "ReadinessIntegration",
    "configure_logging",
]
