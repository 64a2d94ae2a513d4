"""
Logging setup for crd-purge.

Modules log through structlog with dotted event names and the resource
identifiers as keys; this routes those records through stdlib logging.
"""

import logging
import os
import sys

import structlog


def setup_logging(verbose: bool = False) -> None:
    """Configure stdlib logging and structlog key=value output on stderr.

    - Level comes from LOG_LEVEL (default INFO); --verbose forces DEBUG
    - Calling it again only adjusts the level
    """
    level_name = "DEBUG" if verbose else os.getenv("LOG_LEVEL", "INFO").upper()
    level = getattr(logging, level_name, logging.INFO)

    root = logging.getLogger()
    if root.handlers:
        root.setLevel(level)
    else:
        logging.basicConfig(level=level, stream=sys.stderr, format="%(message)s")

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.format_exc_info,
            structlog.processors.KeyValueRenderer(
                key_order=["timestamp", "level", "event"], drop_missing=True
            ),
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )
