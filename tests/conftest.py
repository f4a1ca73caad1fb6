"""
Pytest configuration and shared fixtures for airdrop engine tests.

This conftest.py:
1. Adds project root to sys.path for imports
2. Provides commonly-used fixtures via pytest's autodiscovery
3. Configures pytest markers and settings
"""

import sys
from pathlib import Path

import pytest

# =============================================================================
# Path Setup - Must happen before any local imports
# =============================================================================

# Get the project root (parent of tests/)
_PROJECT_ROOT = Path(__file__).resolve().parent.parent
_TESTS_ROOT = Path(__file__).resolve().parent

# Add both project root and tests root to sys.path
for _path in [str(_PROJECT_ROOT), str(_TESTS_ROOT)]:
    if _path not in sys.path:
        sys.path.insert(0, _path)

# =============================================================================
# Import fixtures using importlib (more robust for pytest loading)
# =============================================================================

import importlib

_airdrop = importlib.import_module("fixtures.airdrop_fixtures")

make_airdrop = _airdrop.make_airdrop
make_runtime = _airdrop.make_runtime
make_tree = _airdrop.make_tree


# =============================================================================
# Pytest Fixtures (autodiscovered by pytest)
# =============================================================================

@pytest.fixture
def drop():
    """An initialized, funded 10-recipient airdrop with an active window."""
    return make_airdrop()


@pytest.fixture
def tree():
    """The 10-recipient allocation tree."""
    return make_tree()


@pytest.fixture
def runtime():
    """A runtime on a fixed clock."""
    rt, _ = make_runtime()
    return rt


@pytest.fixture(autouse=True)
def _clean_airdrop_env(monkeypatch):
    """Keep AIRDROP_* variables from the host out of config tests."""
    for name in (
        "AIRDROP_LEDGER_KIND",
        "AIRDROP_MAX_CLAIMS",
        "AIRDROP_PROGRAM_ID",
        "AIRDROP_LAMPORTS_PER_BYTE",
        "AIRDROP_LOG_LEVEL",
    ):
        monkeypatch.delenv(name, raising=False)


# =============================================================================
# Pytest Configuration
# =============================================================================

def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line(
        "markers", "slow: marks tests as slow (deselect with '-m \"not slow\"')"
    )
    config.addinivalue_line(
        "markers", "integration: marks tests as integration tests"
    )
    config.addinivalue_line(
        "markers", "unit: marks tests as unit tests"
    )


# =============================================================================
# Test Helpers (available to all tests via fixtures)
# =============================================================================

@pytest.fixture
def assert_airdrop_error():
    """Helper to assert an exception carries the expected error code."""
    def _assert(exc_info, code: str):
        assert exc_info.value.code == code, (
            f"Expected code '{code}', got '{exc_info.value.code}': {exc_info.value.message}"
        )
        assert exc_info.value.retryable is False
    return _assert
