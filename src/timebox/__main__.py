"""Allow ``python -m timebox``."""

from timebox.cli import main

main()
