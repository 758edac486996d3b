from __future__ import annotations
import argparse
import logging
from dataclasses import dataclass
from typing import Tuple

import numpy as np
import pygame

from colors import DEFAULT_PALETTE, brightness_factor, central_slice, color_table, project
from fps import FrameCounter
from logs import setup_logging
from sandpile import TOPPLE_THRESHOLD, WORLD_SIZE, CapacityOverflow, Grid

# ========================= Parameters =========================

@dataclass(frozen=True)
class ViewParams:
    size: int = WORLD_SIZE
    cell_size: int = 5
    palette: Tuple[Tuple[int, int, int], ...] = DEFAULT_PALETTE
    brightness: int = 20   # slider 0..20
    opacity: int = 0       # percent per block, 0..95
    max_fps: int = 60

GRAIN_KEYS = {
    pygame.K_RETURN: 1,
    pygame.K_k: 1_000,
    pygame.K_m: 1_000_000,
}

LEVEL_KEYS = {pygame.K_1: 1, pygame.K_2: 2, pygame.K_3: 3, pygame.K_4: 4, pygame.K_5: 5}
CHANNEL_KEYS = {pygame.K_r: 0, pygame.K_g: 1, pygame.K_b: 2}
AXIS_NAMES = "xyz"

def parse_palette(text: str) -> Tuple[Tuple[int, int, int], ...]:
    """'r,g,b;r,g,b;...' with five triples of slider values 0..5."""
    triples = []
    for part in text.split(";"):
        rgb = tuple(int(v) for v in part.split(","))
        if len(rgb) != 3 or not all(0 <= v <= 5 for v in rgb):
            raise ValueError(f"bad palette entry {part!r}")
        triples.append(rgb)
    if len(triples) != TOPPLE_THRESHOLD - 1:
        raise ValueError(f"palette needs {TOPPLE_THRESHOLD - 1} entries, got {len(triples)}")
    return tuple(triples)

# ========================= Viewer state =========================

class Viewer:
    def __init__(self, params: ViewParams = ViewParams()):
        self.params = params
        self.grid = Grid(params.size)
        self.palette = [list(rgb) for rgb in params.palette]
        self.table = color_table(self.palette)
        self.level = 1
        self.brightness = params.brightness
        self.opacity = params.opacity
        self.mode = "projection"
        self.axis = 2
        self.status = ""
        self.running = True
        self._image = None
        self.add_sand(1)

    def add_sand(self, n: int) -> None:
        try:
            events = self.grid.add_sand(n)
        except CapacityOverflow as e:
            logging.error(str(e))
            self.status = f"rejected: {e}"
        else:
            logging.info(f"+{n} grains ({events} events), total {self.grid.total_grains}")
            self.status = ""
        self._image = None

    def set_color(self, level: int, channel: int, value: int) -> None:
        self.palette[level - 1][channel] = value
        self.table = color_table(self.palette)
        self._image = None

    def on_key(self, key: int) -> None:
        if key in GRAIN_KEYS:
            self.add_sand(GRAIN_KEYS[key])
            return
        if key in LEVEL_KEYS:
            self.level = LEVEL_KEYS[key]
            return
        if key in CHANNEL_KEYS:
            ch = CHANNEL_KEYS[key]
            self.set_color(self.level, ch, (self.palette[self.level - 1][ch] + 1) % 6)
            return
        if key == pygame.K_p:
            self.mode = "slice" if self.mode == "projection" else "projection"
        elif key == pygame.K_x:
            self.axis = (self.axis + 1) % 3
        elif key == pygame.K_LEFTBRACKET:
            self.brightness = max(0, self.brightness - 1)
        elif key == pygame.K_RIGHTBRACKET:
            self.brightness = min(20, self.brightness + 1)
        elif key == pygame.K_MINUS:
            self.opacity = max(0, self.opacity - 5)
        elif key == pygame.K_EQUALS:
            self.opacity = min(95, self.opacity + 5)
        elif key == pygame.K_ESCAPE:
            self.running = False
            return
        else:
            return
        self._image = None

    def image(self) -> np.ndarray:
        """RGB uint8 image of the two axes other than ``self.axis``, cached until something changes."""
        if self._image is None:
            vol = self.grid.volume()
            if self.mode == "projection":
                rgb = project(vol, self.table, brightness_factor(self.brightness), self.opacity * 0.01, axis=self.axis)
            else:
                rgb = central_slice(vol, self.table, axis=self.axis)
            self._image = (rgb * 255.0).astype(np.uint8)
        return self._image

    def info(self, fps: FrameCounter) -> str:
        text = (f"{fps} | total grains: {self.grid.total_grains} | "
                f"brightness: {brightness_factor(self.brightness):.4f} (slider {self.brightness}) | "
                f"opacity: {self.opacity}% per block | {self.mode} along {AXIS_NAMES[self.axis]} | "
                f"colour {self.level}: {tuple(self.palette[self.level - 1])}")
        if self.status:
            text += f" | {self.status}"
        return text

# ========================= Main loop =========================

def run(params: ViewParams) -> None:
    pygame.init()
    viewer = Viewer(params)

    width = height = params.size * params.cell_size
    screen = pygame.display.set_mode((width, height + 24))
    pygame.display.set_caption("3D sandpile")
    font = pygame.font.SysFont(None, 18)

    clock = pygame.time.Clock()
    fps = FrameCounter(pygame.time.get_ticks())

    while viewer.running:
        for event in pygame.event.get():
            if event.type == pygame.QUIT:
                viewer.running = False
            elif event.type == pygame.KEYDOWN:
                viewer.on_key(event.key)

        fps.frame(pygame.time.get_ticks())
        screen.fill((0, 0, 0))
        surf = pygame.surfarray.make_surface(viewer.image())
        screen.blit(pygame.transform.scale(surf, (width, height)), (0, 0))
        screen.blit(font.render(viewer.info(fps), True, (255, 255, 255)), (4, height + 4))
        pygame.display.flip()
        clock.tick(params.max_fps)

    pygame.quit()

def build_params(argv=None) -> Tuple[ViewParams, argparse.Namespace]:
    ap = argparse.ArgumentParser(description="Interactive 3D sandpile viewer (Enter/k/m add 1/1e3/1e6 grains)")
    ap.add_argument("--size", type=int, default=WORLD_SIZE)
    ap.add_argument("--cell_size", type=int, default=5)
    ap.add_argument("--palette", type=parse_palette, default=DEFAULT_PALETTE,
                    help="five r,g,b triples (0..5) separated by ';', for heights 1..5")
    ap.add_argument("--brightness", type=int, default=20, help="slider 0..20")
    ap.add_argument("--opacity", type=int, default=0, help="percent per block, 0..95")
    ap.add_argument("--loglevel", type=str, default="INFO", help="DEBUG, INFO, WARNING, ERROR")
    ap.add_argument("--logfile", type=str, default=None)
    args = ap.parse_args(argv)
    params = ViewParams(size=args.size, cell_size=args.cell_size, palette=args.palette,
                        brightness=args.brightness, opacity=args.opacity)
    return params, args

def main(argv=None):
    params, args = build_params(argv)
    setup_logging(args.loglevel, args.logfile)
    run(params)

if __name__ == "__main__":
    main()
