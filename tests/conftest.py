"""Pytest configuration and fixtures."""

import logging

import pytest

from sample_records import FakeDriver


@pytest.fixture
def driver():
    """A recording driver with no queued responses (every call succeeds)."""
    return FakeDriver()


@pytest.fixture
def error_log(driver):
    """Collects every response passed to the driver's error handler."""
    seen = []
    driver.set_error_handler(seen.append)
    return seen


@pytest.fixture(autouse=True)
def reset_logging():
    """Drop handlers added by configure_logging so they don't outlive a test's captured streams."""
    yield
    root = logging.getLogger("restrecord")
    for handler in [h for h in root.handlers if getattr(h, "_restrecord", False)]:
        root.removeHandler(handler)
    root.setLevel(logging.NOTSET)
