"""Task, settings, template and undo data models used across the store and storage."""

from __future__ import annotations

from dataclasses import dataclass

MINUTES_PER_DAY = 24 * 60
SLOT_MINUTES = 15
QUARTERS_PER_HOUR = 4
HOURS_PER_DAY = 24


@dataclass(frozen=True)
class PaletteColor:
    label: str
    value: str
    text: str


PALETTE: tuple[PaletteColor, ...] = (
    PaletteColor("Red", "rgba(239, 68, 68, 0.15)", "#dc2626"),
    PaletteColor("Blue", "rgba(59, 130, 246, 0.15)", "#2563eb"),
    PaletteColor("Green", "rgba(34, 197, 94, 0.15)", "#16a34a"),
    PaletteColor("Purple", "rgba(168, 85, 247, 0.15)", "#9333ea"),
    PaletteColor("Orange", "rgba(251, 146, 60, 0.15)", "#ea580c"),
)

DEFAULT_COLOR = PALETTE[0].value


def palette_entry(color: str) -> PaletteColor | None:
    """Look up a palette entry by stored value or (case-insensitive) label."""
    lowered = color.strip().lower()
    for entry in PALETTE:
        if entry.value == color or entry.label.lower() == lowered:
            return entry
    return None


@dataclass
class Task:
    id: str
    title: str = ""
    start_min: int = 0
    duration: int = 30
    color: str = DEFAULT_COLOR
    is_completed: bool = False

    @property
    def end_min(self) -> int:
        return self.start_min + self.duration

    def overlaps(self, start: int, end: int) -> bool:
        """True when ``[start, end)`` intersects this task's interval."""
        return self.start_min < end and self.end_min > start


@dataclass
class AppSettings:
    wake_time: int = 7
    bed_time: int = 23

    def is_blocked(self, hour: int) -> bool:
        """Hours before waking or from bedtime on are shaded and not offered."""
        return hour < self.wake_time or hour >= self.bed_time


@dataclass
class Template:
    id: str
    title: str = ""
    duration: int = 30
    color: str = DEFAULT_COLOR


@dataclass(frozen=True)
class UndoRecord:
    task_id: str
    prev_start_min: int
    date: str
    armed_at: float = 0.0
