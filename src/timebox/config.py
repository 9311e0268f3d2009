"""Configuration defaults, env vars, and runtime options for timebox."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path


VERSION = "2.0.0"

DEFAULT_DATA_DIR = Path.home() / ".local" / "share" / "timebox"

DEFAULT_UNDO_WINDOW = 5.0


def _env_float(name: str, default: float) -> float:
    raw = os.environ.get(name, "").strip()
    if not raw:
        return default
    try:
        value = float(raw)
    except ValueError:
        return default
    return value if value > 0 else default


@dataclass
class Config:
    """Runtime configuration; empty fields are filled from the environment."""

    # Storage
    data_dir: str = ""

    # Schedule
    date: str = ""
    undo_window: float = 0.0
    default_duration: int = 30

    # Misc
    verbose: bool = False

    def __post_init__(self) -> None:
        if not self.data_dir:
            self.data_dir = os.environ.get("TIMEBOX_DATA_DIR") or str(DEFAULT_DATA_DIR)
        if self.undo_window <= 0:
            self.undo_window = _env_float("TIMEBOX_UNDO_WINDOW", DEFAULT_UNDO_WINDOW)

    @property
    def data_path(self) -> Path:
        return Path(self.data_dir).expanduser()
