import sys
from pathlib import Path

# Ensure the project root is on sys.path so `eqsolver` and `backend` are importable
sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

import pytest

from eqsolver import new_context


@pytest.fixture
def ctx():
    return new_context()
