"""Pytest configuration for phased testing.

Tests are organized by phase:
- f1: configuration, formula engine and helpers
- f2: pure grading rules (calculator, classification, CSV)
- f3: SQLite repositories
- f4: grading services
- f5: Web API

Each test is marked with its phase, so `pytest -m f3` runs one phase.
"""

import pytest

from edugest.config import clear_config_cache


def pytest_collection_modifyitems(config, items):
    """Mark tests with the phase of their directory."""
    for item in items:
        # tests/f2/... -> f2
        for part in item.path.parts:
            if part.startswith("f") and part[1:].isdigit():
                item.add_marker(getattr(pytest.mark, part))
                break


@pytest.fixture(autouse=True)
def fresh_config():
    """Each test loads configuration from its own working directory."""
    clear_config_cache()
    yield
    clear_config_cache()
