from __future__ import annotations

import sys
from pathlib import Path

import pytest

# Ensure the package is importable when running pytest from the repo root without installing
REPO_ROOT = Path(__file__).resolve().parents[2]
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

from madrid_map.app.services.map_session import MapSession  # noqa: E402


@pytest.fixture(autouse=True)
def _reset_session():
    MapSession.reset_instance()
    yield
    MapSession.reset_instance()
