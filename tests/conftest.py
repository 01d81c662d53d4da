import logging
import sys
from pathlib import Path

import pytest

sys.path.append(str(Path(__file__).parents[1] / "src"))

from invoice_parser.core.config import Settings
from invoice_parser.extraction.pipeline import InvoicePipeline
from invoice_parser.parsers.factory import build_default_parsers


@pytest.fixture
def settings() -> Settings:
    """Engine settings with the documented defaults, independent of the environment."""
    return Settings(
        _env_file=None,
        extractor_base_url="http://extractor.test",
        extractor_timeout_seconds=1.0,
    )


@pytest.fixture
def parsers():
    """Default strategy registry without an extraction client."""
    return build_default_parsers()


@pytest.fixture
def pipeline(parsers, settings) -> InvoicePipeline:
    return InvoicePipeline(parsers, settings)


@pytest.fixture(autouse=True)
def restore_package_logger():
    """Undo setup_logging so one test's level does not filter the next test's records."""
    package_logger = logging.getLogger("invoice_parser")
    handlers, level = package_logger.handlers[:], package_logger.level
    yield package_logger
    for handler in package_logger.handlers[:]:
        if handler not in handlers:
            package_logger.removeHandler(handler)
            handler.close()
    package_logger.setLevel(level)
