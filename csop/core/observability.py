"""
Observability configuration for the dispatch router.

Provides a consistent logging schema and per-message correlation ids
across the dispatcher and capabilities.
"""

import logging
import logging.config
import sys
from contextvars import ContextVar
from pathlib import Path
from typing import Optional

# Correlation id of the message currently being dispatched
message_id: ContextVar[Optional[str]] = ContextVar('message_id', default=None)


class MessageIdFilter(logging.Filter):
    """Add message id (and a default component) to all log records."""

    def filter(self, record):
        record.message_id = message_id.get() or "no-message"
        if not hasattr(record, 'component'):
            record.component = record.name
        return True


class ComponentAdapter(logging.LoggerAdapter):
    """Logger adapter that adds component context."""

    def __init__(self, logger, component: str):
        super().__init__(logger, {'component': component})

    def process(self, msg, kwargs):
        if 'extra' not in kwargs:
            kwargs['extra'] = {}
        if self.extra and 'component' in self.extra:
            kwargs['extra']['component'] = self.extra['component']
        return msg, kwargs


def setup_logging(level: str = "INFO", log_file: Optional[Path] = None) -> None:
    """
    Configure logging for the router.

    Args:
        level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_file: Optional file path for logging output
    """
    config = {
        'version': 1,
        'disable_existing_loggers': False,
        'filters': {
            'message_id': {
                '()': MessageIdFilter,
            },
        },
        'formatters': {
            'detailed': {
                'format': '%(asctime)s [%(levelname)s] %(component)s %(name)s %(message_id)s - %(message)s',
                'datefmt': '%Y-%m-%d %H:%M:%S'
            },
            'simple': {
                'format': '[%(levelname)s] %(component)s %(message_id)s - %(message)s'
            }
        },
        'handlers': {
            'console': {
                'class': 'logging.StreamHandler',
                'level': level,
                'formatter': 'simple',
                'stream': sys.stdout,
                'filters': ['message_id']
            }
        },
        'loggers': {
            'csop': {
                'level': level,
                'handlers': ['console'],
                'propagate': False,
            },
        }
    }

    if log_file:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        config['handlers']['file'] = {
            'class': 'logging.FileHandler',
            'level': level,
            'formatter': 'detailed',
            'filename': str(log_file),
            'filters': ['message_id']
        }
        config['loggers']['csop']['handlers'].append('file')

    logging.config.dictConfig(config)


def get_logger(component: str) -> ComponentAdapter:
    """
    Get a logger for a specific component.

    Args:
        component: Component name (e.g. 'dispatcher', 'storage', 'retry')

    Returns:
        Logger adapter with component context
    """
    logger = logging.getLogger(f'csop.{component}')
    return ComponentAdapter(logger, component)


def set_message_context(message_id_val: Optional[str]):
    """Set the message id for log correlation. Returns a token for reset."""
    return message_id.set(message_id_val)


def reset_message_context(token) -> None:
    message_id.reset(token)
