"""Logging configuration for the cache engine."""

import logging
import sys

from swr_cache.config import get_settings


def setup_logging() -> None:
    """Configure package-wide logging.

    Level comes from settings.log_level. Output goes to stdout.
    """
    settings = get_settings()
    logging.basicConfig(
        level=getattr(logging, settings.log_level.upper(), logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=[logging.StreamHandler(sys.stdout)],
    )
