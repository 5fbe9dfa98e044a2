import logging

import pytest

from haltwatch.core import config


@pytest.fixture(autouse=True)
def default_config():
    """Every test starts from the built-in defaults."""
    config.configure(None)
    yield
    config.configure(None)


@pytest.fixture(autouse=True)
def reset_logger():
    """Drop handlers the CLI installs so they don't outlive captured streams."""
    yield
    logger = logging.getLogger("haltwatch")
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
    logger.setLevel(logging.NOTSET)
