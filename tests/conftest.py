import sys
from pathlib import Path

REPO_ROOT = Path(__file__).resolve().parents[1]
SRC_DIR = REPO_ROOT / "src"

# Add both src and repo root to path for imports
if str(SRC_DIR) not in sys.path:
    sys.path.insert(0, str(SRC_DIR))

if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

import pytest  # noqa: E402


@pytest.fixture
def linking_config(tmp_path):
    """Config with a dummy jar, fixed resources and folders under ``tmp_path``."""
    from tests.helpers.linking import make_config

    return make_config(tmp_path)


@pytest.fixture
def fake_builder():
    """Command builder running the Python stand-in for ParticleLinker."""
    from tests.helpers.linking import FakeLinkerBuilder

    return FakeLinkerBuilder()
