"""Shared outcome and error types for schedule mutations and persisted state."""

from __future__ import annotations

from enum import Enum


class Outcome(str, Enum):
    """Result of a store mutation.

    Mutations never raise for stale ids or collisions; they report what
    happened so callers can tell "nothing changed" from "done".
    """

    OK = "ok"
    UNCHANGED = "unchanged"
    NOT_FOUND = "not_found"
    OVERLAP = "overlap"


class MalformedStateError(ValueError):
    """A persisted blob does not have the expected shape."""

    def __init__(self, key: str, reason: str) -> None:
        super().__init__(f"{key}: {reason}")
        self.key = key
        self.reason = reason


_MESSAGES: dict[Outcome, str] = {
    Outcome.OK: "done",
    Outcome.UNCHANGED: "nothing to change",
    Outcome.NOT_FOUND: "no such task",
    Outcome.OVERLAP: "overlaps another task",
}


def describe(outcome: Outcome) -> str:
    """Return a short human-readable explanation of *outcome*."""
    return _MESSAGES[outcome]
