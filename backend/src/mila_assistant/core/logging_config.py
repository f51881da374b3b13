"""
Centralized logging configuration for the application.
"""

import logging
import sys
from typing import Optional

from mila_assistant.core.config import ApplicationConfig, get_config


def setup_logging(app_config: Optional[ApplicationConfig] = None) -> None:
    """
    Setup centralized logging configuration.

    Args:
        app_config: ApplicationConfig instance, uses the global one if None
    """
    if app_config is None:
        app_config = get_config().application

    level = getattr(logging, app_config.log_level.upper(), logging.INFO)
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        handlers=[logging.StreamHandler(sys.stdout)],
    )
    # httpx logs every request at INFO
    logging.getLogger("httpx").setLevel(logging.WARNING)
