"""Rich rendering of the day grid (24 hours x 4 quarters) and the month picker."""

from __future__ import annotations

from datetime import datetime

from rich import box
from rich.table import Table
from rich.text import Text

from timebox.dates import format_date, format_time, month_weeks, parse_date
from timebox.store import ScheduleStore
from timebox.tasks.model import (
    HOURS_PER_DAY,
    MINUTES_PER_DAY,
    QUARTERS_PER_HOUR,
    SLOT_MINUTES,
    AppSettings,
    Task,
    palette_entry,
)

UNTITLED = "(untitled)"
NOW_MARKER = "▏"
WEEKDAY_HEADER = ("Sun", "Mon", "Tue", "Wed", "Thu", "Fri", "Sat")


def task_style(task: Task) -> str:
    entry = palette_entry(task.color)
    style = entry.text if entry else "white"
    if task.is_completed:
        style += " dim strike"
    return style


def _task_cell(task: Task, is_start: bool) -> Text:
    style = task_style(task)
    if not is_start:
        return Text("┃", style=style)
    check = "✓" if task.is_completed else "○"
    title = task.title or UNTITLED
    return Text.assemble((f"{check} ", style.replace(" strike", "")), (title, f"bold {style}"))


def render_day(store: ScheduleStore, settings: AppSettings, now: datetime | None = None) -> Table:
    """Build the grid for the store's active date.

    Blocked hours (outside wake/bed) are dimmed. When the active date is
    today, the current hour is bold and a marker sits in the current quarter.
    """
    now = now or datetime.now()
    showing_today = store.active_date == format_date(now.date())
    day = parse_date(store.active_date)

    table = Table(
        title=f"{day.strftime('%a %d %b %Y')}  [dim]{store.active_date}[/dim]",
        box=box.SIMPLE_HEAD,
        expand=True,
        pad_edge=False,
    )
    table.add_column("", justify="right", width=3, no_wrap=True)
    for quarter in range(QUARTERS_PER_HOUR):
        table.add_column(f":{quarter * SLOT_MINUTES:02d}", ratio=1, no_wrap=True, overflow="ellipsis")

    for hour in range(HOURS_PER_DAY):
        blocked = settings.is_blocked(hour)
        is_now_hour = showing_today and hour == now.hour
        row: list[Text] = [Text(str(hour), style="bold" if is_now_hour else "grey50")]
        for quarter in range(QUARTERS_PER_HOUR):
            task = store.task_at(hour, quarter)
            if task is not None:
                cell = _task_cell(task, store.is_task_start(hour, quarter))
            else:
                cell = Text("·" if blocked else "", style="grey35")
            if is_now_hour and now.minute // SLOT_MINUTES == quarter:
                cell = Text.assemble((NOW_MARKER, "bold red"), cell)
            row.append(cell)
        table.add_row(*row, style="dim" if blocked else None)

    table.caption = f"now {format_time(now.hour * 60 + now.minute)} {'PM' if now.hour >= 12 else 'AM'}"
    return table


def render_task_list(store: ScheduleStore) -> Table:
    """Tabular listing of the active date's tasks with their ids."""
    table = Table(box=box.SIMPLE, show_header=True)
    table.add_column("id", style="cyan", no_wrap=True)
    table.add_column("time", no_wrap=True)
    table.add_column("min", justify="right")
    table.add_column("title")
    table.add_column("done", justify="center")
    for task in store.tasks():
        table.add_row(
            task.id,
            f"{format_time(task.start_min)}-{format_time(task.end_min % MINUTES_PER_DAY)}",
            str(task.duration),
            Text(task.title or UNTITLED, style=task_style(task)),
            "✓" if task.is_completed else "",
        )
    return table


def render_month(year: int, month: int, *, selected: str, today_id: str) -> Table:
    """Month picker: Sunday-first weeks, selected day reversed, today underlined."""
    table = Table(title=f"{year}-{month:02d}", box=box.SIMPLE_HEAD)
    for name in WEEKDAY_HEADER:
        table.add_column(name, justify="right")
    for week in month_weeks(year, month):
        cells: list[Text] = []
        for day in week:
            if day is None:
                cells.append(Text(""))
                continue
            day_id = f"{year:04d}-{month:02d}-{day:02d}"
            style = ""
            if day_id == selected:
                style = "reverse bold"
            elif day_id == today_id:
                style = "underline bold"
            cells.append(Text(str(day), style=style))
        table.add_row(*cells)
    return table
