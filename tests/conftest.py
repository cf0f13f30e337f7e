"""Shared pytest configuration: path setup for service & src imports, common fixtures."""

import sys
from pathlib import Path

import pytest

# Repository root
_ROOT = Path(__file__).resolve().parent.parent

# Allow ``from policygate import ...`` (src is the package root)
sys.path.insert(0, str(_ROOT / "src"))

# Allow ``from service.main import app``
sys.path.insert(0, str(_ROOT))

from policygate.engine import PolicyEngine
from policygate.pack_loader import default_pack, default_pack_dict


PACKS_DIR = _ROOT / "packs"


@pytest.fixture
def pack():
    return default_pack()


@pytest.fixture
def pack_dict():
    return default_pack_dict()


@pytest.fixture
def engine(pack):
    return PolicyEngine(pack)


@pytest.fixture
def packs_dir():
    return PACKS_DIR
