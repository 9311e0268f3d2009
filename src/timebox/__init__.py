"""timebox: a daily time-boxing planner on a 15-minute grid."""

from timebox.config import VERSION

__version__ = VERSION
