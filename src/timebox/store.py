"""Per-date schedule store: slot occupancy queries, mutations and one-step move undo."""

from __future__ import annotations

import time
from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass, replace

from timebox import log
from timebox.config import DEFAULT_UNDO_WINDOW
from timebox.dates import add_days, parse_date, today
from timebox.errors import Outcome
from timebox.storage import Storage
from timebox.tasks.model import (
    HOURS_PER_DAY,
    MINUTES_PER_DAY,
    QUARTERS_PER_HOUR,
    SLOT_MINUTES,
    Task,
    UndoRecord,
)


@dataclass(frozen=True)
class MoveResult:
    outcome: Outcome
    prev_start_min: int | None = None
    record: UndoRecord | None = None


def slot_bounds(hour: int, quarter: int) -> tuple[int, int]:
    """Return ``[start, end)`` minutes of the grid slot ``(hour, quarter)``."""
    if not 0 <= hour < HOURS_PER_DAY:
        raise ValueError(f"hour must be in [0, {HOURS_PER_DAY}), got {hour}")
    if not 0 <= quarter < QUARTERS_PER_HOUR:
        raise ValueError(f"quarter must be in [0, {QUARTERS_PER_HOUR}), got {quarter}")
    start = hour * 60 + quarter * SLOT_MINUTES
    return start, start + SLOT_MINUTES


class ScheduleStore:
    """Owns every day's tasks, the active date and the pending undo record.

    Usage::

        store = ScheduleStore.load(storage)
        store.task_at(9, 0)                 # occupancy of the 09:00 slot
        res = store.move("a", 600)          # arms an undo record
        store.undo(res.record)              # within the undo window
        store.switch_date("2024-01-02")     # later calls target that day

    Each mutation is written through *storage* (when given) before it
    returns. Undo state lives only in memory.
    """

    def __init__(
        self,
        schedule: Mapping[str, Sequence[Task]] | None = None,
        *,
        storage: Storage | None = None,
        date: str | None = None,
        undo_window: float = DEFAULT_UNDO_WINDOW,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._days: dict[str, list[Task]] = {
            day: [replace(t) for t in tasks] for day, tasks in (schedule or {}).items()
        }
        self._storage = storage
        self._date = date or today()
        parse_date(self._date)
        self._undo_window = undo_window
        self._clock = clock
        self._pending: UndoRecord | None = None

    @classmethod
    def load(cls, storage: Storage, **kwargs) -> ScheduleStore:
        """Hydrate from *storage*; unreadable state yields an empty schedule."""
        return cls(storage.load_tasks(today_id=today()), storage=storage, **kwargs)

    # ── day indexing ─────────────────────────────────────────────

    @property
    def active_date(self) -> str:
        return self._date

    def switch_date(self, day: str) -> None:
        parse_date(day)
        if day != self._date:
            log.debug(f"Active date: {self._date} -> {day}")
        self._date = day

    def shift_days(self, days: int) -> str:
        self.switch_date(add_days(self._date, days))
        return self._date

    def go_today(self) -> str:
        self.switch_date(today())
        return self._date

    def dates(self) -> list[str]:
        """Dates that currently hold at least one task, oldest first."""
        return sorted(day for day, tasks in self._days.items() if tasks)

    def tasks(self, day: str | None = None) -> list[Task]:
        """Copies of the tasks of *day* (default: active date) ordered by start time."""
        return [replace(t) for t in sorted(self._days.get(day or self._date, []), key=lambda t: t.start_min)]

    def get(self, task_id: str, day: str | None = None) -> Task | None:
        """Copy of *task_id* on *day*; change it through :meth:`update`."""
        task = self._find(task_id, day)
        return replace(task) if task is not None else None

    def _find(self, task_id: str, day: str | None = None) -> Task | None:
        for t in self._days.get(day or self._date, []):
            if t.id == task_id:
                return t
        return None

    def _bucket(self, day: str | None = None) -> list[Task]:
        return self._days.setdefault(day or self._date, [])

    # ── slot queries ─────────────────────────────────────────────

    def task_at(self, hour: int, quarter: int) -> Task | None:
        """Return the task covering slot ``(hour, quarter)`` of the active date.

        If stored tasks overlap, the first in insertion order wins.
        """
        start, end = slot_bounds(hour, quarter)
        for t in self._days.get(self._date, []):
            if t.overlaps(start, end):
                return replace(t)
        return None

    def is_task_start(self, hour: int, quarter: int) -> bool:
        """True when the slot holds the first cell of its task."""
        task = self.task_at(hour, quarter)
        if task is None:
            return False
        start, end = slot_bounds(hour, quarter)
        return start <= task.start_min < end

    def is_free(
        self,
        start_min: int,
        duration: int,
        *,
        ignore_id: str | None = None,
        day: str | None = None,
    ) -> bool:
        end = start_min + duration
        for t in self._days.get(day or self._date, []):
            if t.id != ignore_id and t.overlaps(start_min, end):
                return False
        return True

    def new_task_id(self) -> str:
        """Millisecond wall-clock id, bumped until unused on every day."""
        taken = {t.id for tasks in self._days.values() for t in tasks}
        candidate = int(time.time() * 1000)
        while str(candidate) in taken:
            candidate += 1
        return str(candidate)

    # ── mutations ────────────────────────────────────────────────

    def _commit(self, msg: str) -> None:
        log.debug(msg)
        if self._storage is not None:
            self._storage.save_tasks(self._days)

    def create(self, task: Task) -> Outcome:
        """Append *task* to the active date.

        No overlap or id collision check happens here; callers offer only
        empty slots and mint ids with :meth:`new_task_id`.
        """
        self._bucket().append(replace(task))
        self._commit(f"Task {task.id}: created at {task.start_min}+{task.duration}")
        return Outcome.OK

    def save(self, task: Task) -> Outcome:
        """Form submit: update when the id exists on the active date, else create."""
        if self.get(task.id) is not None:
            return self.update(task)
        return self.create(task)

    def update(self, task: Task) -> Outcome:
        tasks = self._days.get(self._date, [])
        for idx, current in enumerate(tasks):
            if current.id != task.id:
                continue
            if current == task:
                return Outcome.UNCHANGED
            if not self.is_free(task.start_min, task.duration, ignore_id=task.id):
                log.debug(f"Task {task.id}: update rejected (overlap)")
                return Outcome.OVERLAP
            tasks[idx] = replace(task)
            self._commit(f"Task {task.id}: updated")
            return Outcome.OK
        return Outcome.NOT_FOUND

    def move(self, task_id: str, new_start_min: int) -> MoveResult:
        """Reschedule *task_id* to *new_start_min* and arm the undo record.

        Returns the previous start on success. An unchanged start, unknown id
        or a collision with another task leaves everything (including any
        pending undo) as it was.
        """
        if not 0 <= new_start_min < MINUTES_PER_DAY:
            raise ValueError(f"start must be in [0, {MINUTES_PER_DAY}), got {new_start_min}")
        task = self._find(task_id)
        if task is None:
            return MoveResult(Outcome.NOT_FOUND)
        if task.start_min == new_start_min:
            return MoveResult(Outcome.UNCHANGED)
        if not self.is_free(new_start_min, task.duration, ignore_id=task_id):
            log.debug(f"Task {task_id}: move to {new_start_min} rejected (overlap)")
            return MoveResult(Outcome.OVERLAP)

        prev = task.start_min
        task.start_min = new_start_min
        record = UndoRecord(
            task_id=task_id,
            prev_start_min=prev,
            date=self._date,
            armed_at=self._clock(),
        )
        self._pending = record
        self._commit(f"Task {task_id}: {prev} -> {new_start_min} (undo armed)")
        return MoveResult(Outcome.OK, prev_start_min=prev, record=record)

    def remove(self, task_id: str) -> Outcome:
        tasks = self._days.get(self._date, [])
        for t in tasks:
            if t.id == task_id:
                tasks.remove(t)
                self._commit(f"Task {task_id}: removed")
                return Outcome.OK
        return Outcome.NOT_FOUND

    def toggle_completion(self, task_id: str) -> Outcome:
        task = self._find(task_id)
        if task is None:
            return Outcome.NOT_FOUND
        task.is_completed = not task.is_completed
        self._commit(f"Task {task_id}: completed={task.is_completed}")
        return Outcome.OK

    # ── undo ─────────────────────────────────────────────────────

    @property
    def undo_window(self) -> float:
        return self._undo_window

    @property
    def pending_undo(self) -> UndoRecord | None:
        """The armed record, or ``None`` once consumed, replaced or expired."""
        record = self._pending
        if record is not None and self._clock() - record.armed_at >= self._undo_window:
            log.debug(f"Task {record.task_id}: undo expired")
            self._pending = None
        return self._pending

    def undo(self, record: UndoRecord | None = None) -> Outcome:
        """Revert the most recent move.

        *record* must be the current pending record (default: whatever is
        pending). Stale, replaced, expired or consumed records change nothing.
        """
        pending = self.pending_undo
        if pending is None or (record is not None and record is not pending):
            return Outcome.UNCHANGED
        self._pending = None

        task = self._find(pending.task_id, pending.date)
        if task is None:
            return Outcome.NOT_FOUND
        if not self.is_free(
            pending.prev_start_min, task.duration, ignore_id=task.id, day=pending.date
        ):
            return Outcome.OVERLAP
        task.start_min = pending.prev_start_min
        self._commit(f"Task {task.id}: move undone -> {pending.prev_start_min}")
        return Outcome.OK
