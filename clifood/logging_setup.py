# -*- coding: utf-8 -*-
import logging
import os
import sys
from typing import Optional

import structlog


def configure_logging(level: Optional[str] = None):
    """
    Route structlog through stdlib logging to stderr so stdout only carries
    command output. LOG_LEVEL defaults to WARNING.
    """
    level = (level or os.getenv("LOG_LEVEL", "WARNING")).upper()
    logging.basicConfig(format="%(message)s", stream=sys.stderr, level=getattr(logging, level, logging.WARNING))

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            structlog.dev.ConsoleRenderer(colors=False),
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )
