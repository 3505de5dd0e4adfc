import sys
from pathlib import Path

import pytest

# Ensure the repository root is importable when running tests directly from the repo.
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from drawsync.db import init_db  # noqa: E402
from drawsync.metrics import SyncMetrics  # noqa: E402


@pytest.fixture
def session_factory():
    """Fresh in-memory SQLite database per test."""

    return init_db("sqlite://")


@pytest.fixture
def metrics():
    return SyncMetrics()
