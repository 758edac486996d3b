from __future__ import annotations

import os
import sys
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

os.environ.setdefault("SDL_VIDEODRIVER", "dummy")
os.environ.setdefault("PYGAME_HIDE_SUPPORT_PROMPT", "1")

from sandpile import Grid  # noqa: E402


@pytest.fixture
def small_grid() -> Grid:
    """A lattice large enough for a few thousand grains at its centre."""
    return Grid(24)


@pytest.fixture
def tiny_grid() -> Grid:
    return Grid(8)
