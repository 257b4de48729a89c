"""
Pytest configuration for the test suite.

This file is automatically loaded by pytest and applies configuration
to all tests in the tests/ directory.
"""

import os
import sys

import pytest

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from gridq.utils.logger import LogLevel, setup_logging


def pytest_configure(config):
    """Configure pytest with custom markers and settings."""
    config.addinivalue_line(
        "markers", "slow: marks tests as slow (deselect with '-m \"not slow\"')"
    )


@pytest.fixture(autouse=True, scope='session')
def quiet_logging():
    """Console-only logging at WARNING so test output stays readable."""
    setup_logging(level=LogLevel.WARNING, file_output=False, force=True)
    yield
