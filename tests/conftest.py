# PATH: tests/conftest.py
"""
Pytest configuration and fixtures for XARB tests.
"""

import sys
from pathlib import Path

# Add project root to path
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

import pytest

from discovery.registry import TokenRegistry


def pytest_configure(config):
    """Configure pytest."""
    # Add custom markers
    config.addinivalue_line(
        "markers", "slow: marks tests as slow (deselect with '-m \"not slow\"')"
    )
    config.addinivalue_line(
        "markers", "integration: marks tests as integration tests"
    )


@pytest.fixture
def registry() -> TokenRegistry:
    """Builtin-only registry, isolated from the process environment."""
    return TokenRegistry(env={})
