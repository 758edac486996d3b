"""
3D abelian sandpile on a cubic lattice
======================================

Grains are dropped on an interior cell of a ``size**3`` lattice. A cell holding
six or more grains topples: it keeps ``h % 6`` and sends ``h // 6`` grains to
each of its six axis-neighbours. Topples are batched per worklist entry, so one
pop can move millions of grains at once.

The outermost shell of the lattice is a hard wall, not a sink. A cascade that
reaches it means the lattice is too small for the mass requested; the
injection is rejected and the grid is restored to its previous state.

Cells are stored as ``uint8`` in a C-ordered ``(size, size, size)`` array, so the
flat snapshot index of ``(x, y, z)`` is ``(x*size + y)*size + z``.
"""

from __future__ import annotations
import logging
import time
from typing import Tuple

import numpy as np
from numba import njit

WORLD_SIZE = 128
TOPPLE_THRESHOLD = 6

STABLE = 0
OVERFLOW = 1

Coord = Tuple[int, int, int]

# ========================= Errors =========================

class SandpileError(Exception):
    """Base class for sandpile errors."""


class OutOfBounds(SandpileError, IndexError):
    """A coordinate lies outside the lattice (or outside its interior for injection)."""


class CapacityOverflow(SandpileError, RuntimeError):
    """The lattice cannot absorb an injection; the grid is left as it was."""

    def __init__(self, requested: int, total_grains: int, size: int):
        self.requested = requested
        self.total_grains = total_grains
        self.size = size
        super().__init__(f"Overflow before {total_grains}: lattice of size {size} "
                         f"cannot absorb {requested} more grains")

# ========================= Cascade kernel =========================

@njit(cache=True)
def _interior(i, j, k, size):
    return 0 < i < size - 1 and 0 < j < size - 1 and 0 < k < size - 1

@njit(cache=True)
def topple_cascade(world, x, y, z, num_grains):
    """
    Drop ``num_grains`` on ``world[x, y, z]`` and topple until stable.

    Returns ``(status, events)`` where status is STABLE or OVERFLOW and events is
    the number of worklist entries processed. On OVERFLOW the array is left
    half-updated; the caller owns the rollback.
    """
    size = world.shape[0]
    todo = [(x, y, z, num_grains)]
    events = 0
    while len(todo) > 0:
        i, j, k, n = todo.pop()
        events += 1
        if not _interior(i, j, k, size):
            return OVERFLOW, events

        pile = world[i, j, k] + n
        topples = pile // TOPPLE_THRESHOLD
        world[i, j, k] = pile % TOPPLE_THRESHOLD

        if topples > 0:
            todo.append((i + 1, j, k, topples))
            todo.append((i - 1, j, k, topples))
            todo.append((i, j + 1, k, topples))
            todo.append((i, j - 1, k, topples))
            todo.append((i, j, k + 1, topples))
            todo.append((i, j, k - 1, topples))
    return STABLE, events

# ========================= Grid =========================

class Grid:
    """Fixed-size cubic lattice of pile heights plus a running grain counter."""

    def __init__(self, size: int = WORLD_SIZE):
        if size < 3:
            raise ValueError(f"size must be at least 3 to have an interior, got {size}")
        self.size = int(size)
        self._cells = np.zeros((self.size, self.size, self.size), dtype=np.uint8)
        self._total_grains = 0

    @property
    def total_grains(self) -> int:
        return self._total_grains

    @property
    def center(self) -> Coord:
        c = self.size // 2
        return (c, c, c)

    def _check(self, coord) -> Coord:
        if len(coord) != 3:
            raise OutOfBounds(f"expected a 3D coordinate, got {coord!r}")
        x, y, z = (int(c) for c in coord)
        for c in (x, y, z):
            if not 0 <= c < self.size:
                raise OutOfBounds(f"{coord!r} is outside a lattice of size {self.size}")
        return x, y, z

    def is_interior(self, coord) -> bool:
        return all(0 < int(c) < self.size - 1 for c in coord)

    def read(self, coord) -> int:
        return int(self._cells[self._check(coord)])

    def write(self, coord, value: int) -> None:
        # No height validation; the cascade keeps stable cells in 0..5.
        self._cells[self._check(coord)] = value

    def snapshot(self) -> np.ndarray:
        """Flat read-only view of all cells, x-major then y then z."""
        # backed by a read-only buffer, so the flag cannot be switched back on
        buf = memoryview(self._cells.reshape(-1)).toreadonly()
        return np.frombuffer(buf, dtype=self._cells.dtype)

    def volume(self) -> np.ndarray:
        """Read-only ``(size, size, size)`` view, indexed ``[x, y, z]``."""
        return self.snapshot().reshape(self._cells.shape)

    def capacity_left(self) -> int:
        """Grains the interior can still hold at height 5 everywhere."""
        return 5 * (self.size - 2) ** 3 - int(self._cells.sum(dtype=np.int64))

    def is_stable(self) -> bool:
        return bool((self._cells < TOPPLE_THRESHOLD).all())

    def add_sand(self, count: int) -> int:
        return self.inject(self.center, count)

    def inject(self, coord: Coord, count: int) -> int:
        """
        Add ``count`` grains at ``coord`` and topple to a stable configuration.
        Returns the number of topple events processed.

        Raises OutOfBounds for a target outside the interior and CapacityOverflow
        when the count exceeds the interior capacity or the cascade reaches the
        boundary shell. In both cases the grid and
        the grain counter are unchanged.
        """
        count = int(count)
        if count < 0:
            raise ValueError(f"grain count must be non-negative, got {count}")
        x, y, z = self._check(coord)
        if not self.is_interior((x, y, z)):
            raise OutOfBounds(f"injection target {(x, y, z)} lies on the boundary shell")
        if count > self.capacity_left():
            logging.warning(f"Rejected {count} grains at {(x, y, z)}: exceeds interior capacity")
            raise CapacityOverflow(count, self._total_grains, self.size)

        backup = self._cells.copy()
        t0 = time.perf_counter()
        status, events = topple_cascade(self._cells, x, y, z, count)
        dt = time.perf_counter() - t0

        if status == OVERFLOW:
            np.copyto(self._cells, backup)
            logging.warning(f"Rejected {count} grains at {(x, y, z)} after {events} events; grid rolled back")
            raise CapacityOverflow(count, self._total_grains, self.size)

        self._total_grains += count
        logging.debug(f"Injected {count} grains at {(x, y, z)}: events={events}, "
                      f"total={self._total_grains}, {dt:.4f}s")
        return int(events)
