#!/usr/bin/env python
"""
Risk Assessment API Server Runner.

Usage:
    python run_api.py

Or with PM2:
    pm2 start run_api.py --interpreter python
"""

import sys
import logging
import uvicorn

from core.config import AppSettings
from core.logging_setup import setup_logging

logger = logging.getLogger(__name__)


def main():
    """Run the risk assessment API server."""
    settings = AppSettings.from_env()

    errors = settings.validate()
    setup_logging(level=settings.log_level, log_format=settings.log_format, service_name="dokani-risk")
    if errors:
        for error in errors:
            logger.error(f"Invalid setting: {error}")
        sys.exit(1)

    logger.info(f"Starting Risk Assessment API on {settings.api_host}:{settings.api_port}")

    try:
        uvicorn.run(
            "api.main:app",
            host=settings.api_host,
            port=settings.api_port,
            reload=settings.is_development,
            log_level=settings.log_level.lower(),
            access_log=True,
        )
    except Exception as e:
        logger.error(f"Failed to start risk assessment API: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
