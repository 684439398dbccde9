"""
Pytest configuration file.

This file ensures that the parent directory is in the Python path
so that test files can import pipeline, models, capability and utils.
"""

import sys
from pathlib import Path

# Add the parent directory to the Python path
parent_dir = Path(__file__).parent.parent
if str(parent_dir) not in sys.path:
    sys.path.insert(0, str(parent_dir))

import pytest

from utils import clear_performance_metrics, make_sample_values, parse_int, strip_label


@pytest.fixture
def values():
    """The ten labelled sample values: 'valor 10'..'valor 14', 'valor 5'..'valor 9'"""
    return make_sample_values()


@pytest.fixture
def to_number():
    """Label-stripping integer parser used as a map stage"""
    return lambda value: parse_int(strip_label(value))


@pytest.fixture(autouse=True)
def reset_performance_metrics():
    clear_performance_metrics()
    yield
    clear_performance_metrics()
