"""
Logging configuration for circulation.

Provides a single place to configure log level and format.
"""

import logging
import sys


def setup_logging(log_level: str = "WARNING", app_name: str = "circulation") -> None:
    """
    Configure logging for the application.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        app_name: Name used to identify log lines
    """
    logging.basicConfig(
        level=getattr(logging, log_level.upper(), logging.WARNING),
        format=f"%(asctime)s - {app_name} - %(name)s - %(levelname)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        handlers=[logging.StreamHandler(sys.stderr)],
    )

