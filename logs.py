from __future__ import annotations
import logging
import time

# ========================= Logging & timing =========================

def setup_logging(level: str = "INFO", logfile: str | None = None) -> None:
    lvl = getattr(logging, level.upper(), logging.INFO)
    handlers = [logging.StreamHandler()]
    if logfile:
        handlers.append(logging.FileHandler(logfile, mode="w"))
    logging.basicConfig(
        level=lvl,
        handlers=handlers,
        format="%(asctime)s | %(levelname)-7s | %(message)s",
        datefmt="%H:%M:%S",
        force=True,
    )

class Timer:
    def __init__(self, msg: str, logger: logging.Logger | None = None):
        self.log = logger or logging.getLogger()
        self.msg = msg
        self.elapsed = 0.0
    def __enter__(self):
        self.t0 = time.perf_counter()
        self.log.info(f"[start] {self.msg}")
        return self
    def __exit__(self, exc_type, exc, tb):
        self.elapsed = time.perf_counter() - self.t0
        if exc_type is None:
            self.log.info(f"[done ] {self.msg} in {self.elapsed:.4f}s")
        else:
            self.log.info(f"[fail ] {self.msg} after {self.elapsed:.4f}s")
