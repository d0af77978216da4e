"""
Pytest configuration and shared fixtures for bridge tests.

This conftest.py:
1. Adds project root to sys.path for imports
2. Provides commonly-used chain fixtures via pytest's autodiscovery
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

_chain = importlib.import_module("fixtures.chain")

make_chain = _chain.make_chain
make_keyring = _chain.make_keyring
make_signed_block = _chain.make_signed_block


# =============================================================================
# Pytest Fixtures (autodiscovered by pytest)
# =============================================================================

@pytest.fixture(scope="session")
def chain():
    """Two linked blocks 11000 -> 11001 signed by 80 of 120 power."""
    return make_chain(2)


@pytest.fixture(scope="session")
def trusted_block(chain):
    return chain[0]


@pytest.fixture(scope="session")
def target_block(chain):
    return chain[1]


@pytest.fixture(scope="session")
def long_chain():
    """Five linked blocks 11000..11004."""
    return make_chain(5)


@pytest.fixture
def fixture_dir(tmp_path, long_chain):
    """Fixture directory holding the long chain as RPC JSON."""
    from orchestrator.inputs import write_fixture

    root = tmp_path / "fixtures"
    for block in long_chain:
        write_fixture(root, block)
    return root


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
def assert_check_passed():
    """Helper to assert a specific check passed in a VerificationResult."""
    def _assert(result, check_id: str):
        checks = [c for c in result.checks if c.check_id == check_id]
        assert len(checks) == 1, f"Expected check '{check_id}' not found in {[c.check_id for c in result.checks]}"
        assert checks[0].ok, f"Check '{check_id}' failed: {checks[0].message}"
    return _assert


@pytest.fixture
def assert_check_failed():
    """Helper to assert a specific check failed in a VerificationResult."""
    def _assert(result, check_id: str):
        checks = [c for c in result.checks if c.check_id == check_id]
        assert len(checks) == 1, f"Expected check '{check_id}' not found in {[c.check_id for c in result.checks]}"
        assert not checks[0].ok, f"Check '{check_id}' unexpectedly passed"
    return _assert
