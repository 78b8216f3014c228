"""
Logging configuration
"""

import logging
import sys
from typing import Optional
from core.config import settings


NOISY_LOGGERS = (
    "sqlalchemy.engine",
    "sqlalchemy.pool",
    "botocore",
    "boto3",
    "urllib3",
    "httpx",
    "httpcore",
    "apscheduler",
)


def setup_logging(level: Optional[str] = None):
    """Configure application logging"""

    level_name = (level or settings.LOG_LEVEL).upper()
    log_level = getattr(logging, level_name, logging.INFO)

    # Configure root logger
    logging.basicConfig(
        level=log_level,
        format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        handlers=[
            logging.StreamHandler(sys.stdout)
        ]
    )

    # Third-party clients log every request at INFO/DEBUG
    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    logger = logging.getLogger(__name__)
    logger.info(f"Logging configured at {level_name} level")
