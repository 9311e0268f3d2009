"""Reusable task presets offered by the create-task flow."""

from __future__ import annotations

import time

from timebox.errors import Outcome
from timebox.storage import Storage
from timebox.tasks.model import Task, Template


class TemplateBook:
    """Ordered list of templates, written through *storage* on every change."""

    def __init__(self, templates: list[Template] | None = None, *, storage: Storage | None = None) -> None:
        self._templates = list(templates or [])
        self._storage = storage

    @classmethod
    def load(cls, storage: Storage) -> TemplateBook:
        return cls(storage.load_templates(), storage=storage)

    def list(self) -> list[Template]:
        return list(self._templates)

    def get(self, template_id: str) -> Template | None:
        for t in self._templates:
            if t.id == template_id:
                return t
        return None

    def _persist(self) -> None:
        if self._storage is not None:
            self._storage.save_templates(self._templates)

    def add(self, title: str, duration: int, color: str) -> Template:
        if duration <= 0:
            raise ValueError("duration must be positive")
        taken = {t.id for t in self._templates}
        n = int(time.time() * 1000)
        while f"tpl-{n}" in taken:
            n += 1
        template = Template(id=f"tpl-{n}", title=title, duration=duration, color=color)
        self._templates.append(template)
        self._persist()
        return template

    def remove(self, template_id: str) -> Outcome:
        template = self.get(template_id)
        if template is None:
            return Outcome.NOT_FOUND
        self._templates.remove(template)
        self._persist()
        return Outcome.OK

    def instantiate(self, template_id: str, task_id: str, start_min: int) -> Task | None:
        """Build a fresh task from a template; ``None`` for an unknown template."""
        template = self.get(template_id)
        if template is None:
            return None
        return Task(
            id=task_id,
            title=template.title,
            start_min=start_min,
            duration=template.duration,
            color=template.color,
        )
