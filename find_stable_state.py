from __future__ import annotations
import argparse
import logging
import sys
from typing import Dict, Optional, Tuple

import numpy as np
import matplotlib.pyplot as plt

from colors import brightness_factor, central_slice, color_table, project
from logs import Timer, setup_logging
from sandpile import TOPPLE_THRESHOLD, WORLD_SIZE, CapacityOverflow, Grid

# ========================= Measurements =========================

def height_histogram(grid: Grid) -> np.ndarray:
    return np.bincount(grid.snapshot(), minlength=TOPPLE_THRESHOLD)

def pile_radius(grid: Grid) -> float:
    """Largest euclidean distance from the centre to a non-empty cell."""
    occupied = np.argwhere(grid.volume() > 0)
    if occupied.size == 0:
        return 0.0
    d = occupied - np.asarray(grid.center)
    return float(np.sqrt((d * d).sum(axis=1)).max())

def run(size: int, grains: int, batch: Optional[int] = None) -> Tuple[Grid, Dict]:
    grid = Grid(size)
    batch = grains if not batch else batch
    events = 0
    with Timer(f"inject {grains} grains on a {size}^3 lattice (batch={batch})") as t:
        remaining = grains
        while remaining > 0:
            n = min(batch, remaining)
            events += grid.add_sand(n)
            remaining -= n
    stats = {
        "total_grains": grid.total_grains,
        "events": events,
        "seconds": t.elapsed,
        "histogram": height_histogram(grid).tolist(),
        "radius": pile_radius(grid),
    }
    return grid, stats

# ========================= Plots =========================

def plot_state(grid: Grid, out: Optional[str] = None, show: bool = False, brightness: int = 0) -> None:
    table = color_table()
    vol = grid.volume()
    fig, (ax1, ax2) = plt.subplots(1, 2, figsize=(11.0, 5.4), constrained_layout=True)

    ax1.imshow(central_slice(vol, table).transpose(1, 0, 2), origin="lower", interpolation="nearest")
    ax1.set_xlabel("x"); ax1.set_ylabel("y"); ax1.set_title("Central slice (z = size/2)")

    ax2.imshow(project(vol, table, brightness_factor(brightness)).transpose(1, 0, 2), origin="lower", interpolation="nearest")
    ax2.set_xlabel("x"); ax2.set_ylabel("y"); ax2.set_title("Projection along z")

    fig.suptitle(f"{grid.total_grains} grains")
    if out:
        fig.savefig(out, dpi=200, bbox_inches="tight")
    if show:
        plt.show()
    plt.close(fig)

# ========================= CLI =========================

def main(argv=None) -> int:
    ap = argparse.ArgumentParser(description="Drop grains at the centre of a 3D sandpile and report the stable state")
    ap.add_argument("--size", type=int, default=WORLD_SIZE)
    ap.add_argument("--grains", type=int, default=1_000_000)
    ap.add_argument("--batch", type=int, default=None, help="inject in batches of this many grains")
    ap.add_argument("--out", type=str, default=None, help="PNG path for the slice/projection figure")
    ap.add_argument("--show", action="store_true")
    ap.add_argument("--brightness", type=int, default=0, help="projection brightness slider, 0..20")
    ap.add_argument("--loglevel", type=str, default="INFO", help="DEBUG, INFO, WARNING, ERROR")
    ap.add_argument("--logfile", type=str, default=None)
    args = ap.parse_args(argv)

    setup_logging(args.loglevel, args.logfile)

    try:
        grid, stats = run(args.size, args.grains, args.batch)
    except CapacityOverflow as e:
        logging.error(str(e))
        return 1

    logging.info(f"Stable after {stats['events']} events in {stats['seconds']:.1f} s: "
                 f"total={stats['total_grains']}, radius≈{stats['radius']:.1f}")
    logging.info("Heights 0..5: " + " ".join(str(c) for c in stats["histogram"]))

    if args.out or args.show:
        plot_state(grid, out=args.out, show=args.show, brightness=args.brightness)
    return 0

if __name__ == "__main__":
    sys.exit(main())
