"""Shared fixtures for timebox tests.

File handling in tests:
- Use tmp_path for the data directory so tests are isolated and cleaned up.
- Use timebox.io_utils read_text/write_text for consistent UTF-8 I/O.
"""

from __future__ import annotations

from pathlib import Path

import pytest

from timebox.storage import Storage
from timebox.store import ScheduleStore
from timebox.tasks.model import DEFAULT_COLOR, Task


class FakeClock:
    """Monotonic clock stand-in advanced by hand."""

    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


def _make_task(
    id: str,
    start_min: int = 540,
    duration: int = 30,
    title: str = "",
    color: str = DEFAULT_COLOR,
    is_completed: bool = False,
) -> Task:
    return Task(
        id=id,
        title=title or f"Task {id}",
        start_min=start_min,
        duration=duration,
        color=color,
        is_completed=is_completed,
    )


@pytest.fixture
def make_task():
    """Factory fixture that creates Task instances."""
    return _make_task


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def data_dir(tmp_path: Path) -> Path:
    path = tmp_path / "data"
    path.mkdir()
    return path


@pytest.fixture
def storage(data_dir: Path) -> Storage:
    return Storage(data_dir)


@pytest.fixture
def make_store(clock: FakeClock):
    """Factory fixture: store on a fixed date with the fake clock."""

    def _make(
        tasks: list[Task] | None = None,
        date: str = "2024-01-01",
        storage: Storage | None = None,
        undo_window: float = 5.0,
    ) -> ScheduleStore:
        schedule = {date: tasks} if tasks else None
        return ScheduleStore(
            schedule,
            storage=storage,
            date=date,
            undo_window=undo_window,
            clock=clock,
        )

    return _make
