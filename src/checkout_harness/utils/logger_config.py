"""
Logging for the checkout harness
Format: YYYY-MM-DD HH:MM:SS - [Module] - [Source] - Description
"""

import logging
import os
from datetime import datetime


class HarnessFormatter(logging.Formatter):
    """Formatter that prints the module/source context passed through ``extra``"""

    COLORS = {
        'DEBUG': '\033[36m',
        'INFO': '\033[32m',
        'WARNING': '\033[33m',
        'ERROR': '\033[31m',
        'CRITICAL': '\033[35m',
    }
    RESET = '\033[0m'

    def __init__(self, use_color: bool = True):
        super().__init__()
        self.use_color = use_color

    def format(self, record):
        module = getattr(record, 'module_name', 'SYSTEM')
        source = getattr(record, 'source', 'CORE')
        timestamp = datetime.fromtimestamp(record.created).strftime('%Y-%m-%d %H:%M:%S')

        formatted = f"{timestamp} - [{module}] - [{source}] - {record.getMessage()}"
        if record.exc_info:
            formatted = f"{formatted}\n{self.formatException(record.exc_info)}"

        if not self.use_color:
            return formatted
        return f"{self.COLORS.get(record.levelname, '')}{formatted}{self.RESET}"


def setup_logger(name='checkout_harness', level=None):
    """Return a logger under the ``checkout_harness`` tree.

    The handler lives on the root ``checkout_harness`` logger only, so child
    loggers propagate to it and pytest's caplog still sees every record.
    """
    root = logging.getLogger('checkout_harness')
    if not root.handlers:
        level_name = level or os.getenv('HARNESS_LOG_LEVEL', 'INFO')
        root.setLevel(getattr(logging, str(level_name).upper(), logging.INFO))

        console_handler = logging.StreamHandler()
        console_handler.setFormatter(HarnessFormatter(use_color=os.getenv('NO_COLOR') is None))
        root.addHandler(console_handler)

    if name == 'checkout_harness' or name.startswith('checkout_harness.'):
        return logging.getLogger(name)
    return logging.getLogger(f'checkout_harness.{name}')


def log(logger, level, message, module='SYSTEM', source='CORE'):
    """Log with module and source context"""
    extra = {'module_name': module, 'source': source}
    log_method = getattr(logger, level, None)
    if log_method is None:
        raise ValueError(f"Unknown log level: {level}")
    log_method(message, extra=extra)
