"""
Pytest configuration and fixtures for statblock-sidekick tests.
"""

import sys
from pathlib import Path

import pytest

# Add src directory to Python path to allow importing statblock_sidekick
src_path = Path(__file__).parent.parent / "src"
if str(src_path) not in sys.path:
    sys.path.insert(0, str(src_path))


@pytest.fixture
def statblock():
    from helpers import make_statblock
    return make_statblock()
