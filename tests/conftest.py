"""
Pytest configuration and fixtures.
"""
import os
import random
import sys

import pytest

# Add repository root to path for imports
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))


@pytest.fixture
def rng():
    """Seeded random source so shuffle-dependent assertions are reproducible."""
    return random.Random(1234)
