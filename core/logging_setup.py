"""
Core Module - Logging Setup.

Configures the root logger once at process start. Modules
only ever call logging.getLogger(__name__).
"""

import json
import logging
import sys
from typing import Optional


def setup_logging(
    level: str = "INFO",
    log_format: str = "text",
    service_name: Optional[str] = None,
) -> logging.Logger:
    """
    Set up structured logging.

    Args:
        level: Log level
        log_format: Output format (json or text)
        service_name: Value of the "service" field in every record

    Returns:
        Configured service logger
    """
    log_level = getattr(logging, level.upper(), logging.INFO)
    service_name = service_name or "dokani"

    if log_format == "json":
        formatter = logging.Formatter(
            json.dumps({
                "timestamp": "%(asctime)s",
                "level": "%(levelname)s",
                "logger": "%(name)s",
                "message": "%(message)s",
                "service": service_name,
            })
        )
    else:
        formatter = logging.Formatter(
            "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(formatter)

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)
    root_logger.handlers = [handler]

    return logging.getLogger(service_name)
