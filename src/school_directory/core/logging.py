"""
Logging Setup

Configures the root logger once at application startup.
"""

import logging

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def configure_logging(level: str = "INFO") -> None:
    """Install a stream handler on the root logger at the given level."""
    root = logging.getLogger()
    root.setLevel(level.upper())

    if not any(getattr(handler, "_school_directory", False) for handler in root.handlers):
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        handler._school_directory = True  # type: ignore[attr-defined]
        root.addHandler(handler)
