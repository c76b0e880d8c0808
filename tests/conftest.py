"""Shared test fixtures for decktourney."""

import pytest
from pathlib import Path

EXAMPLE_CONFIG = Path(__file__).resolve().parent.parent / "tournament.yaml.example"


@pytest.fixture
def tmp_output(tmp_path):
    """Provide a temporary output directory for test runs."""
    return tmp_path / "output"


@pytest.fixture
def example_config_path():
    return EXAMPLE_CONFIG
