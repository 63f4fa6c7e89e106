"""
Configuration for pytest.
"""

import sys
from pathlib import Path

import pytest

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from ascension_log.services import reference_data  # noqa: E402


@pytest.fixture(autouse=True)
def bundled_reference_data():
    """Give every test the shared reference tables built from the bundled file."""
    reference_data._reference_data = None
    yield
    reference_data._reference_data = None
