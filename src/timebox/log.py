"""Console output for timebox: colored status lines via Rich."""

from __future__ import annotations

from rich.console import Console

console = Console(highlight=False)
_err_console = Console(highlight=False, stderr=True)

# level -> (tag, style)
_TAGS: dict[str, tuple[str, str]] = {
    "info": ("INFO", "blue"),
    "ok": ("OK", "green"),
    "warn": ("WARN", "yellow"),
    "error": ("ERROR", "red"),
}

_verbose = False


def set_verbose(enabled: bool) -> None:
    global _verbose
    _verbose = enabled


def _emit(level: str, msg: str) -> None:
    tag, style = _TAGS[level]
    target = _err_console if level == "error" else console
    target.print(f"[{style}]\\[{tag}][/{style}] {msg}")


def info(msg: str) -> None:
    _emit("info", msg)


def success(msg: str) -> None:
    _emit("ok", msg)


def warn(msg: str) -> None:
    _emit("warn", msg)


def error(msg: str) -> None:
    _emit("error", msg)


def debug(msg: str) -> None:
    if _verbose:
        console.print(f"[dim]\\[DEBUG] {msg}[/dim]")
