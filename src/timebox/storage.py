"""Persistence adapter: a directory-backed blob store plus typed load/save.

Each key is one JSON file ``<data_dir>/<key>.json``. Decoding fails closed:
any shape mismatch rejects the whole blob and the caller gets defaults,
never a partially constructed Task.
"""

from __future__ import annotations

import json
from collections.abc import Mapping, Sequence
from pathlib import Path
from typing import Any

from timebox import log
from timebox.dates import is_day_id, today
from timebox.errors import MalformedStateError
from timebox.io_utils import read_text, write_text_atomic
from timebox.tasks.model import MINUTES_PER_DAY, AppSettings, Task, Template

STORAGE_KEYS = {
    "tasks": "timebox-tasks-v2",
    "settings": "timebox-settings",
    "templates": "timebox-templates",
    "legacy_tasks": "timebox-tasks",
}


class BlobStore:
    """Key -> text blob, one file per key."""

    def __init__(self, root: str | Path) -> None:
        self._root = Path(root)

    def path_for(self, key: str) -> Path:
        return self._root / f"{key}.json"

    def has(self, key: str) -> bool:
        return self.path_for(key).is_file()

    def get(self, key: str) -> str | None:
        path = self.path_for(key)
        if not path.is_file():
            return None
        return read_text(path)

    def set(self, key: str, text: str) -> None:
        write_text_atomic(self.path_for(key), text)

    def get_json(self, key: str) -> Any:
        """Return the parsed blob, ``None`` when absent."""
        try:
            raw = self.get(key)
            if raw is None:
                return None
            return json.loads(raw)
        except (json.JSONDecodeError, UnicodeDecodeError) as exc:
            raise MalformedStateError(key, f"not valid UTF-8 JSON ({exc})") from exc

    def set_json(self, key: str, value: Any) -> None:
        self.set(key, json.dumps(value, indent=2, ensure_ascii=False) + "\n")


# ── codecs ───────────────────────────────────────────────────────────


def _is_int(value: object) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def encode_task(task: Task) -> dict[str, Any]:
    return {
        "id": task.id,
        "title": task.title,
        "startMin": task.start_min,
        "duration": task.duration,
        "color": task.color,
        "isCompleted": task.is_completed,
    }


def decode_task(raw: object, key: str) -> Task:
    if not isinstance(raw, dict):
        raise MalformedStateError(key, "task entry is not an object")
    task_id = raw.get("id")
    title = raw.get("title", "")
    start = raw.get("startMin")
    duration = raw.get("duration")
    color = raw.get("color")
    completed = raw.get("isCompleted", False)

    if not isinstance(task_id, str) or not task_id:
        raise MalformedStateError(key, "task id must be a non-empty string")
    if not isinstance(title, str):
        raise MalformedStateError(key, f"task {task_id}: title must be a string")
    if not _is_int(start) or not 0 <= start < MINUTES_PER_DAY:
        raise MalformedStateError(key, f"task {task_id}: startMin out of range")
    if not _is_int(duration) or duration <= 0:
        raise MalformedStateError(key, f"task {task_id}: duration must be positive")
    if not isinstance(color, str):
        raise MalformedStateError(key, f"task {task_id}: color must be a string")
    if not isinstance(completed, bool):
        raise MalformedStateError(key, f"task {task_id}: isCompleted must be a boolean")

    return Task(
        id=task_id,
        title=title,
        start_min=start,
        duration=duration,
        color=color,
        is_completed=completed,
    )


def decode_task_list(raw: object, key: str) -> list[Task]:
    if not isinstance(raw, list):
        raise MalformedStateError(key, "expected a list of tasks")
    return [decode_task(item, key) for item in raw]


def decode_schedule(raw: object, key: str) -> dict[str, list[Task]]:
    if not isinstance(raw, dict):
        raise MalformedStateError(key, "expected a mapping of date -> tasks")
    schedule: dict[str, list[Task]] = {}
    for day, items in raw.items():
        if not is_day_id(day):
            raise MalformedStateError(key, f"invalid date key {day!r}")
        schedule[day] = decode_task_list(items, key)
    return schedule


def encode_schedule(schedule: Mapping[str, Sequence[Task]]) -> dict[str, list[dict[str, Any]]]:
    return {
        day: [encode_task(t) for t in tasks]
        for day, tasks in sorted(schedule.items())
        if tasks
    }


def encode_settings(settings: AppSettings) -> dict[str, int]:
    return {"wakeTime": settings.wake_time, "bedTime": settings.bed_time}


def decode_settings(raw: object, key: str) -> AppSettings:
    if not isinstance(raw, dict):
        raise MalformedStateError(key, "settings must be an object")
    wake = raw.get("wakeTime")
    bed = raw.get("bedTime")
    for name, value in (("wakeTime", wake), ("bedTime", bed)):
        if not _is_int(value) or not 0 <= value <= 23:
            raise MalformedStateError(key, f"{name} must be an hour 0-23")
    return AppSettings(wake_time=wake, bed_time=bed)


def encode_template(template: Template) -> dict[str, Any]:
    return {
        "id": template.id,
        "title": template.title,
        "duration": template.duration,
        "color": template.color,
    }


def decode_templates(raw: object, key: str) -> list[Template]:
    if not isinstance(raw, list):
        raise MalformedStateError(key, "expected a list of templates")
    templates: list[Template] = []
    for item in raw:
        if not isinstance(item, dict):
            raise MalformedStateError(key, "template entry is not an object")
        tid, title = item.get("id"), item.get("title", "")
        duration, color = item.get("duration"), item.get("color")
        if not isinstance(tid, str) or not tid:
            raise MalformedStateError(key, "template id must be a non-empty string")
        if not isinstance(title, str) or not isinstance(color, str):
            raise MalformedStateError(key, f"template {tid}: bad title or color")
        if not _is_int(duration) or duration <= 0:
            raise MalformedStateError(key, f"template {tid}: duration must be positive")
        templates.append(Template(id=tid, title=title, duration=duration, color=color))
    return templates


# ── typed adapter ────────────────────────────────────────────────────


class Storage:
    """Typed access to the planner's persisted blobs.

    Usage::

        storage = Storage(cfg.data_path)
        schedule = storage.load_tasks()     # {date: [Task, ...]}
        storage.save_tasks(schedule)        # after every mutation
    """

    def __init__(self, data_dir: str | Path) -> None:
        self._blobs = BlobStore(data_dir)

    @property
    def blobs(self) -> BlobStore:
        return self._blobs

    def _load(self, name: str, decoder: Any, default: Any) -> Any:
        key = STORAGE_KEYS[name]
        try:
            raw = self._blobs.get_json(key)
            if raw is None:
                return default
            return decoder(raw, key)
        except (MalformedStateError, OSError) as exc:
            log.debug(f"Ignoring unreadable {key}: {exc}")
            return default

    # ── tasks ────────────────────────────────────────────────────

    def load_tasks(self, *, today_id: str | None = None) -> dict[str, list[Task]]:
        """Load the date-keyed schedule, migrating the legacy day list once.

        The legacy key is only read. It is adopted as *today_id* when no
        date-keyed blob exists yet, and the result is written back at once so
        later runs on other days find the tasks where they were adopted.
        """
        if self._blobs.has(STORAGE_KEYS["tasks"]):
            return self._load("tasks", decode_schedule, {})

        legacy = self._load("legacy_tasks", decode_task_list, None)
        if legacy is None:
            return {}
        day = today_id or today()
        log.debug(f"Migrating {len(legacy)} legacy task(s) to {day}")
        schedule = {day: legacy}
        self.save_tasks(schedule)
        return schedule

    def save_tasks(self, schedule: Mapping[str, Sequence[Task]]) -> None:
        self._blobs.set_json(STORAGE_KEYS["tasks"], encode_schedule(schedule))

    # ── settings ─────────────────────────────────────────────────

    def load_settings(self) -> AppSettings:
        return self._load("settings", decode_settings, AppSettings())

    def save_settings(self, settings: AppSettings) -> None:
        self._blobs.set_json(STORAGE_KEYS["settings"], encode_settings(settings))

    # ── templates ────────────────────────────────────────────────

    def load_templates(self) -> list[Template]:
        return self._load("templates", decode_templates, [])

    def save_templates(self, templates: Sequence[Template]) -> None:
        self._blobs.set_json(
            STORAGE_KEYS["templates"], [encode_template(t) for t in templates]
        )
