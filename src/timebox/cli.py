"""timebox CLI: a daily time-boxing planner on a 15-minute grid.

Installed as ``timebox`` console_script via pipx / pip.
"""

from __future__ import annotations

import shlex
from dataclasses import dataclass, replace

import click

from timebox import __version__
from timebox import log
from timebox.config import Config
from timebox.dates import format_time, parse_date, parse_time, shift_month, today
from timebox.errors import Outcome, describe
from timebox.grid import render_day, render_month, render_task_list
from timebox.storage import Storage
from timebox.store import ScheduleStore
from timebox.tasks.model import DEFAULT_COLOR, PALETTE, AppSettings, Task, palette_entry
from timebox.templates import TemplateBook


# ── Custom Click group that resolves short aliases ───────────────────

class TimeboxGroup(click.Group):
    """Accept short aliases (``ls``, ``mv``, ``del``) for subcommands."""

    _ALIASES: dict[str, str] = {
        "ls": "show",
        "mv": "move",
        "del": "rm",
        "delete": "rm",
        "toggle": "done",
        "cal": "calendar",
    }

    def get_command(self, ctx: click.Context, cmd_name: str) -> click.Command | None:
        return super().get_command(ctx, self._ALIASES.get(cmd_name, cmd_name))


CONTEXT_SETTINGS = dict(help_option_names=["-h", "--help"])


# ── Parameter types ──────────────────────────────────────────────────

class ClockTime(click.ParamType):
    """``HH:MM`` converted to minutes since midnight."""

    name = "HH:MM"

    def convert(self, value, param, ctx):
        if isinstance(value, int):
            return value
        try:
            return parse_time(value)
        except ValueError as exc:
            self.fail(str(exc), param, ctx)


class PaletteColorType(click.ParamType):
    """Palette label (case-insensitive) converted to the stored color value."""

    name = "color"

    def convert(self, value, param, ctx):
        entry = palette_entry(value)
        if entry is None:
            labels = ", ".join(c.label.lower() for c in PALETTE)
            self.fail(f"Unknown color {value!r}. Valid colors: {labels}.", param, ctx)
        return entry.value


CLOCK_TIME = ClockTime()
PALETTE_COLOR = PaletteColorType()


def _validate_date(ctx: click.Context, param: click.Parameter, value: str | None) -> str | None:
    if value is None:
        return None
    try:
        parse_date(value)
    except ValueError as exc:
        raise click.BadParameter(str(exc), param_hint="--date") from exc
    return value


def _validate_duration(ctx: click.Context, param: click.Parameter, value: int | None) -> int | None:
    if value is not None and value <= 0:
        raise click.BadParameter("Duration must be a positive number of minutes.", param_hint="--duration")
    return value


# ── Application wiring ───────────────────────────────────────────────

@dataclass
class App:
    cfg: Config
    storage: Storage
    store: ScheduleStore
    settings: AppSettings

    @classmethod
    def open(cls, cfg: Config) -> App:
        storage = Storage(cfg.data_path)
        store = ScheduleStore.load(storage, date=cfg.date or None, undo_window=cfg.undo_window)
        log.debug(f"Data dir: {cfg.data_path}")
        return cls(cfg=cfg, storage=storage, store=store, settings=storage.load_settings())


def _check(outcome: Outcome, task_id: str) -> None:
    """Turn a non-success outcome into a CLI error."""
    if outcome is Outcome.OK:
        return
    if outcome is Outcome.UNCHANGED:
        log.warn(f"Task {task_id}: {describe(outcome)}.")
        return
    raise click.ClickException(f"Task {task_id}: {describe(outcome)}.")


def _require_free(app: App, start_min: int, duration: int) -> None:
    """Only empty slots inside waking hours are offered for new tasks."""
    if app.settings.is_blocked(start_min // 60):
        raise click.ClickException(
            f"{format_time(start_min)} is outside waking hours "
            f"({app.settings.wake_time}:00-{app.settings.bed_time}:00)."
        )
    if not app.store.is_free(start_min, duration):
        raise click.ClickException(f"{format_time(start_min)} (+{duration} min) overlaps another task.")


def _show(app: App, as_list: bool = False) -> None:
    if as_list:
        log.console.print(render_task_list(app.store))
    else:
        log.console.print(render_day(app.store, app.settings))


@click.group(
    cls=TimeboxGroup,
    invoke_without_command=True,
    context_settings=CONTEXT_SETTINGS,
)
@click.option("--data-dir", default="", help="Directory holding the planner's data (env: TIMEBOX_DATA_DIR)")
@click.option("--date", "day", default=None, callback=_validate_date, help="Day to work on (YYYY-MM-DD, default today)")
@click.option("-v", "--verbose", is_flag=True, help="Show debug output")
@click.version_option(__version__, prog_name="timebox")
@click.pass_context
def main(ctx: click.Context, data_dir: str, day: str | None, verbose: bool) -> None:
    """timebox: plan your day in 15-minute boxes.

    \b
    EXAMPLES:
      timebox                                   # Show today's grid
      timebox add "Deep work" --at 09:00 -d 90  # Box 09:00-10:30
      timebox move 1718000000000 10:00          # Reschedule a task
      timebox --date 2024-01-02 show --list     # Another day, as a list
      timebox session                           # Interactive, with undo
    """
    log.set_verbose(verbose)
    cfg = Config(data_dir=data_dir, date=day or "", verbose=verbose)
    ctx.obj = App.open(cfg)

    if ctx.invoked_subcommand is None:
        _show(ctx.obj)


# ── Subcommands: viewing ─────────────────────────────────────────────


@main.command()
@click.option("--list", "as_list", is_flag=True, help="List tasks with their ids instead of the grid")
@click.pass_obj
def show(app: App, as_list: bool) -> None:
    """Show the day grid."""
    _show(app, as_list)


@main.command()
@click.option("--month", default="", help="Month to show (YYYY-MM, default: month of --date)")
@click.option("--offset", type=int, default=0, help="Shift the shown month by N months (negative goes back)")
@click.pass_obj
def calendar(app: App, month: str, offset: int) -> None:
    """Show a month calendar with the active day highlighted."""
    if month:
        try:
            first = parse_date(f"{month}-01")
        except ValueError as exc:
            raise click.BadParameter(f"Invalid month {month!r}; expected YYYY-MM", param_hint="--month") from exc
    else:
        first = parse_date(app.store.active_date)
    year, mon = shift_month(first.year, first.month, offset)
    log.console.print(render_month(year, mon, selected=app.store.active_date, today_id=today()))
    busy = [d for d in app.store.dates() if d.startswith(f"{year:04d}-{mon:02d}")]
    if busy:
        log.info(f"Days with tasks: {', '.join(d[-2:] for d in busy)}")


# ── Subcommands: task mutations ──────────────────────────────────────


@main.command()
@click.argument("title", default="")
@click.option("--at", "start", type=CLOCK_TIME, required=True, help="Start time (HH:MM)")
@click.option("-d", "--duration", type=int, default=None, callback=_validate_duration, help="Minutes (default 30)")
@click.option("-c", "--color", type=PALETTE_COLOR, default=None, help="Palette color (red, blue, green, purple, orange)")
@click.option("-t", "--template", "template_id", default="", help="Fill title/duration/color from a template")
@click.pass_obj
def add(app: App, title: str, start: int, duration: int | None, color: str | None, template_id: str) -> None:
    """Box a new task starting at --at."""
    task_id = app.store.new_task_id()
    if template_id:
        task = TemplateBook.load(app.storage).instantiate(template_id, task_id, start)
        if task is None:
            raise click.ClickException(f"Template {template_id} not found.")
    else:
        task = Task(id=task_id, start_min=start, duration=app.cfg.default_duration, color=DEFAULT_COLOR)
    task = replace(
        task,
        title=title or task.title,
        duration=duration or task.duration,
        color=color or task.color,
    )
    _require_free(app, task.start_min, task.duration)
    _check(app.store.create(task), task.id)
    log.success(
        f"Added {task.id}: {format_time(task.start_min)} +{task.duration}m {task.title!r}"
    )


@main.command()
@click.argument("task_id")
@click.option("--title", default=None, help="New title")
@click.option("--at", "start", type=CLOCK_TIME, default=None, help="New start time (HH:MM)")
@click.option("-d", "--duration", type=int, default=None, callback=_validate_duration, help="New duration in minutes")
@click.option("-c", "--color", type=PALETTE_COLOR, default=None, help="New palette color")
@click.pass_obj
def edit(app: App, task_id: str, title: str | None, start: int | None, duration: int | None, color: str | None) -> None:
    """Edit a task's fields."""
    current = app.store.get(task_id)
    if current is None:
        raise click.ClickException(f"Task {task_id}: {describe(Outcome.NOT_FOUND)}.")
    updated = replace(
        current,
        title=current.title if title is None else title,
        start_min=current.start_min if start is None else start,
        duration=duration or current.duration,
        color=color or current.color,
    )
    outcome = app.store.update(updated)
    _check(outcome, task_id)
    if outcome is Outcome.OK:
        log.success(f"Updated {task_id}.")


@main.command()
@click.argument("task_id")
@click.argument("start", type=CLOCK_TIME)
@click.pass_obj
def move(app: App, task_id: str, start: int) -> None:
    """Reschedule a task to START (HH:MM)."""
    result = app.store.move(task_id, start)
    _check(result.outcome, task_id)
    if result.prev_start_min is not None:
        log.success(f"Moved {task_id}: {format_time(result.prev_start_min)} -> {format_time(start)}")


@main.command()
@click.argument("task_id")
@click.pass_obj
def rm(app: App, task_id: str) -> None:
    """Delete a task."""
    _check(app.store.remove(task_id), task_id)
    log.success(f"Removed {task_id}.")


@main.command()
@click.argument("task_id")
@click.pass_obj
def done(app: App, task_id: str) -> None:
    """Toggle a task's completion."""
    _check(app.store.toggle_completion(task_id), task_id)
    task = app.store.get(task_id)
    state = "completed" if task and task.is_completed else "reopened"
    log.success(f"Task {task_id} {state}.")


# ── Subcommand: settings ─────────────────────────────────────────────


@main.command()
@click.option("--wake", type=click.IntRange(0, 23), default=None, help="Wake hour (0-23)")
@click.option("--bed", type=click.IntRange(0, 23), default=None, help="Bed hour (0-23)")
@click.pass_obj
def settings(app: App, wake: int | None, bed: int | None) -> None:
    """Show or change waking hours (hours outside are shaded)."""
    if wake is not None or bed is not None:
        app.settings = AppSettings(
            wake_time=app.settings.wake_time if wake is None else wake,
            bed_time=app.settings.bed_time if bed is None else bed,
        )
        app.storage.save_settings(app.settings)
        log.success("Settings saved.")
    log.console.print(f"Wake: [bold]{app.settings.wake_time}:00[/bold]  Bed: [bold]{app.settings.bed_time}:00[/bold]")


# ── Subcommand group: templates ──────────────────────────────────────


@main.group()
def template() -> None:
    """Manage reusable task templates."""


@template.command("add")
@click.argument("title")
@click.option("-d", "--duration", type=int, default=30, callback=_validate_duration, help="Minutes (default 30)")
@click.option("-c", "--color", type=PALETTE_COLOR, default="red", help="Palette color")
@click.pass_obj
def template_add(app: App, title: str, duration: int, color: str) -> None:
    """Save a template."""
    tpl = TemplateBook.load(app.storage).add(title, duration, color)
    log.success(f"Template {tpl.id}: {tpl.title!r} ({tpl.duration}m)")


@template.command("list")
@click.pass_obj
def template_list(app: App) -> None:
    """List templates."""
    templates = TemplateBook.load(app.storage).list()
    if not templates:
        log.info("No templates.")
        return
    for tpl in templates:
        entry = palette_entry(tpl.color)
        label = entry.label if entry else tpl.color
        log.console.print(f"  - [cyan]{tpl.id}[/cyan] {tpl.title} ({tpl.duration}m, {label})")


@template.command("rm")
@click.argument("template_id")
@click.pass_obj
def template_rm(app: App, template_id: str) -> None:
    """Delete a template."""
    if TemplateBook.load(app.storage).remove(template_id) is not Outcome.OK:
        raise click.ClickException(f"Template {template_id} not found.")
    log.success(f"Removed template {template_id}.")


# ── Subcommand: interactive session ──────────────────────────────────

SESSION_HELP = """\
Commands:
  show | list                 redraw the grid / list tasks
  add HH:MM MINUTES TITLE...  box a new task
  move ID HH:MM               reschedule (undo within the window)
  undo                        revert the last move
  done ID | rm ID             toggle completion / delete
  prev | next | today         change day
  goto YYYY-MM-DD             jump to a day
  quit"""


def _session_step(app: App, line: str) -> bool:
    """Run one session command. Returns ``False`` when the session should end."""
    try:
        parts = shlex.split(line)
    except ValueError as exc:
        log.error(str(exc))
        return True
    if not parts:
        return True
    cmd, args = parts[0].lower(), parts[1:]
    store = app.store

    match cmd:
        case "quit" | "exit" | "q":
            return False
        case "help" | "?":
            log.console.print(SESSION_HELP)
        case "show":
            _show(app)
        case "list" | "ls":
            _show(app, as_list=True)
        case "prev":
            store.shift_days(-1)
            _show(app)
        case "next":
            store.shift_days(1)
            _show(app)
        case "today":
            store.go_today()
            _show(app)
        case "goto" if len(args) == 1:
            store.switch_date(args[0])
            _show(app)
        case "add" if len(args) >= 2:
            start, duration = parse_time(args[0]), int(args[1])
            if duration <= 0:
                raise click.ClickException("Duration must be positive.")
            _require_free(app, start, duration)
            task = Task(id=store.new_task_id(), title=" ".join(args[2:]), start_min=start, duration=duration)
            store.create(task)
            log.success(f"Added {task.id} at {format_time(start)}.")
        case "move" | "mv" if len(args) == 2:
            result = store.move(args[0], parse_time(args[1]))
            _check(result.outcome, args[0])
            if result.record is not None:
                log.success(
                    f"Moved {args[0]} from {format_time(result.record.prev_start_min)}. "
                    f"Type 'undo' within {store.undo_window:g}s to revert."
                )
        case "undo":
            outcome = store.undo()
            if outcome is Outcome.UNCHANGED:
                log.warn("Nothing to undo.")
            else:
                _check(outcome, "undo")
                log.success("Move undone.")
        case "done" if len(args) == 1:
            _check(store.toggle_completion(args[0]), args[0])
        case "rm" | "del" if len(args) == 1:
            _check(store.remove(args[0]), args[0])
        case _:
            log.warn(f"Unknown or incomplete command: {line!r}. Type 'help'.")
    return True


@main.command()
@click.pass_obj
def session(app: App) -> None:
    """Interactive planner session; moves can be undone for a few seconds."""
    _show(app)
    log.console.print(SESSION_HELP)
    while True:
        try:
            line = click.prompt(f"timebox {app.store.active_date}", default="", show_default=False)
        except (click.Abort, EOFError):
            break
        try:
            if not _session_step(app, line):
                break
        except click.ClickException as exc:
            log.error(exc.format_message())
        except ValueError as exc:
            log.error(str(exc))
    log.info("Bye.")

