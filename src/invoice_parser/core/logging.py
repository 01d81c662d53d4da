"""
Logging setup for the invoice_parser package.

Modules only call ``logging.getLogger(__name__)``. ``setup_logging`` attaches
handlers to the package logger; ``InvoicePipeline.from_settings`` calls it
with the configured level.
"""

import logging
import sys
from pathlib import Path

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
PACKAGE_LOGGER = "invoice_parser"

# Set on handlers installed here so a second call replaces them.
_OWNED = "_invoice_parser_owned"


def setup_logging(level: str = "INFO", log_file: str | None = None) -> logging.Logger:
    """
    Configure the package logger.

    Records still propagate to the root logger. Calling this again swaps
    the handlers it installed before instead of stacking new ones, so
    building several pipelines does not print every record twice.

    Args:
        level: Log level name ('DEBUG', 'INFO', 'WARNING', 'ERROR'),
            unknown names mean INFO
        log_file: Optional log file path

    Returns:
        The package logger
    """
    log_level = getattr(logging, level.upper(), logging.INFO)
    formatter = logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT)

    package_logger = logging.getLogger(PACKAGE_LOGGER)
    package_logger.setLevel(log_level)
    for handler in [h for h in package_logger.handlers if getattr(h, _OWNED, False)]:
        package_logger.removeHandler(handler)
        handler.close()

    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stdout)]
    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(log_path, encoding="utf-8"))

    for handler in handlers:
        handler.setLevel(log_level)
        handler.setFormatter(formatter)
        setattr(handler, _OWNED, True)
        package_logger.addHandler(handler)
    return package_logger
