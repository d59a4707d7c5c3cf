"""
Shared fixtures for the decentrust test suite.
"""

import hashlib

import pytest

from decentrust.core.sketch import CountMinSketch
from decentrust.reputation import LightHonestPeer, PreciseHonestPeer


# Sketch sizing shared by the tracker tests
ERROR_BOUND = 10.0
PROBABILITY = 0.0001
MAX_ENTRIES = 3000.0


def pytest_configure(config):
    config.addinivalue_line("markers", "unit: fast, isolated tests")
    config.addinivalue_line("markers", "integration: tests spanning several components")


@pytest.fixture
def sketch():
    """816 x 10 sketch bounded below by zero."""
    return CountMinSketch.from_bounds(ERROR_BOUND, PROBABILITY, MAX_ENTRIES)


@pytest.fixture
def precise_peer():
    """Empty exact trust tracker."""
    return PreciseHonestPeer()


@pytest.fixture
def light_peer():
    """Empty sketch trust tracker."""
    return LightHonestPeer.from_bounds(ERROR_BOUND, PROBABILITY, MAX_ENTRIES)


@pytest.fixture(params=["precise", "light"])
def honest_peer(request):
    """Each backend in turn, for properties both must satisfy."""
    if request.param == "precise":
        return PreciseHonestPeer()
    return LightHonestPeer.from_bounds(ERROR_BOUND, PROBABILITY, MAX_ENTRIES)


@pytest.fixture
def peer_ids():
    """Ten realistic peer IDs (hex SHA-256 of a node name)."""
    return [hashlib.sha256(f"peer_{i}".encode()).hexdigest() for i in range(10)]
