"""Map pile heights to colours for display. Height 0 never contributes."""

from __future__ import annotations
from typing import Sequence, Tuple

import numpy as np

from sandpile import TOPPLE_THRESHOLD

# slider units 0..5 per channel, one triple per height 1..5
DEFAULT_PALETTE: Tuple[Tuple[int, int, int], ...] = (
    (0, 0, 5),
    (0, 4, 4),
    (0, 5, 0),
    (4, 4, 0),
    (5, 0, 0),
)

def color_table(palette: Sequence[Sequence[float]] = DEFAULT_PALETTE) -> np.ndarray:
    pal = np.asarray(palette, dtype=np.float64)
    if pal.shape != (TOPPLE_THRESHOLD - 1, 3):
        raise ValueError(f"palette must hold {TOPPLE_THRESHOLD - 1} RGB triples, got shape {pal.shape}")
    table = np.zeros((TOPPLE_THRESHOLD, 3), dtype=np.float64)
    table[1:] = np.clip(pal * 0.2, 0.0, 1.0)
    return table

def brightness_factor(slider: float) -> float:
    return float(np.exp((slider - 22.0) * 0.2))

def _check_levels(values: np.ndarray, table: np.ndarray) -> None:
    if values.size and int(values.max()) >= len(table):
        raise ValueError(f"height {int(values.max())} has no colour; grid is not stable")

def to_rgba(snapshot: np.ndarray, table: np.ndarray) -> np.ndarray:
    """Expand a flat snapshot to uint8 RGBA, one row per cell; empty cells are transparent."""
    idx = np.asarray(snapshot)
    _check_levels(idx, table)
    rgba = np.zeros((idx.size, 4), dtype=np.uint8)
    rgba[:, :3] = np.round(table[idx] * 255.0).astype(np.uint8)
    rgba[:, 3] = np.where(idx > 0, 255, 0)
    return rgba

def project(volume: np.ndarray, table: np.ndarray, brightness: float = 1.0,
            opacity: float = 0.0, axis: int = 2) -> np.ndarray:
    """
    Collapse the lattice along ``axis`` into an RGB image in [0, 1].

    Each non-empty cell at depth d along the ray is weighted by (1 - opacity)**d,
    so opacity=0 sees through the whole pile and opacity near 1 shows only the
    front layer. Contributions add up, so deep piles need a low ``brightness``
    to stay out of saturation; the sum is clipped.
    """
    if not 0.0 <= opacity < 1.0:
        raise ValueError(f"opacity must be in [0, 1), got {opacity}")
    vol = np.moveaxis(np.asarray(volume), axis, -1)
    _check_levels(vol, table)
    w = (1.0 - opacity) ** np.arange(vol.shape[-1], dtype=np.float64)

    rgb = np.zeros(vol.shape[:2] + (3,), dtype=np.float64)
    for level in range(1, len(table)):
        hits = (vol == level) @ w
        rgb += hits[..., None] * table[level]
    return np.clip(rgb * brightness, 0.0, 1.0)

def central_slice(volume: np.ndarray, table: np.ndarray, axis: int = 2) -> np.ndarray:
    vol = np.asarray(volume)
    idx = np.take(vol, vol.shape[axis] // 2, axis=axis)
    _check_levels(idx, table)
    return table[idx]
