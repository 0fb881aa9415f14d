"""Logging configuration for evppi_tool.

Plain console output for the CLI and an optional JSON-lines log file that
carries the run context (component, scenario, parameter, sample count).
"""

import functools
import json
import logging
import logging.config
import sys
import time
from datetime import datetime
from pathlib import Path
from typing import Optional

# Record attributes passed through ``extra=`` that are kept in the JSON output
CONTEXT_FIELDS = ('component', 'operation', 'scenario', 'parameter', 'n_samples')


class EVPPIFormatter(logging.Formatter):
    """JSON formatter with run context fields and time since setup."""

    def __init__(self):
        super().__init__()
        self.start_time = time.time()

    def format(self, record):
        message = {
            'timestamp': datetime.fromtimestamp(record.created).isoformat(),
            'elapsed': f"{record.created - self.start_time:.3f}s",
            'level': record.levelname,
            'logger': record.name,
            'message': record.getMessage(),
        }
        message.update({key: getattr(record, key) for key in CONTEXT_FIELDS if hasattr(record, key)})

        if record.exc_info:
            message['exception'] = self.formatException(record.exc_info)

        return json.dumps(message, default=str)


def setup_logging(log_level: str = "INFO", log_file: Optional[Path] = None) -> logging.Logger:
    """Set up logging for evppi_tool.

    Console output is plain ``LEVEL: message`` on stderr. When ``log_file``
    is given, records are also written there as JSON lines with the run
    context fields and the time elapsed since logging was configured.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_file: Optional file path for log output

    Returns:
        Configured logger instance
    """
    config = {
        'version': 1,
        'disable_existing_loggers': False,
        'formatters': {
            'simple': {
                'format': '%(levelname)s: %(message)s'
            },
            'structured': {
                '()': EVPPIFormatter
            }
        },
        'handlers': {
            'console': {
                'class': 'logging.StreamHandler',
                'stream': sys.stderr,
                'formatter': 'simple',
                'level': log_level
            }
        },
        'loggers': {
            'evppi_tool': {
                'level': log_level,
                'handlers': ['console'],
                'propagate': False
            }
        }
    }

    if log_file:
        log_file = Path(log_file)
        log_file.parent.mkdir(parents=True, exist_ok=True)
        config['handlers']['file'] = {
            'class': 'logging.handlers.RotatingFileHandler',
            'filename': str(log_file),
            'maxBytes': 10 * 1024 * 1024,  # 10MB
            'backupCount': 5,
            'formatter': 'structured',
            'level': log_level
        }
        config['loggers']['evppi_tool']['handlers'].append('file')

    logging.config.dictConfig(config)

    logger = logging.getLogger('evppi_tool')
    logger.debug(
        "evppi_tool logging initialized",
        extra={'component': 'logging', 'operation': 'initialization'}
    )

    return logger


def get_logger(name: str) -> logging.Logger:
    """Get a logger instance for a specific component.

    Args:
        name: Logger name (usually __name__)

    Returns:
        Logger instance
    """
    if name == 'evppi_tool' or name.startswith('evppi_tool.'):
        return logging.getLogger(name)
    return logging.getLogger(f"evppi_tool.{name}")


def log_performance(func):
    """Decorator for automatic performance logging."""
    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        logger = get_logger(func.__module__)
        start_time = time.perf_counter()
        extra = {'component': func.__module__, 'operation': func.__name__}

        try:
            logger.debug(f"Starting {func.__name__}", extra=extra)
            result = func(*args, **kwargs)
        except Exception as e:
            elapsed = time.perf_counter() - start_time
            logger.error(f"Failed {func.__name__} after {elapsed:.3f}s: {e}", extra=extra)
            raise

        elapsed = time.perf_counter() - start_time
        logger.info(f"Completed {func.__name__} in {elapsed:.3f}s", extra=extra)
        return result

    return wrapper
