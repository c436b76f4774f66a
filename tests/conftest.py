import os
import sys
from unittest.mock import patch

import pytest


# Ensure 'src' is on sys.path for package imports in tests
TESTS_DIR = os.path.dirname(__file__)
PROJECT_ROOT = os.path.abspath(os.path.join(TESTS_DIR, os.pardir))
SRC_DIR = os.path.join(PROJECT_ROOT, "src")
if SRC_DIR not in sys.path:
    sys.path.insert(0, SRC_DIR)


@pytest.fixture
def slurm_on_path():
    """Pretend every Slurm binary is installed under /usr/bin."""
    with patch(
        "slurm_bridge.client.shutil.which",
        side_effect=lambda name: f"/usr/bin/{os.path.basename(name)}",
    ):
        yield


@pytest.fixture
def client(slurm_on_path):
    from slurm_bridge.client import SlurmClient

    return SlurmClient(tail_poll_interval=0.01)
