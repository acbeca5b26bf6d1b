"""External collaborators for machine-setup.

This package provides the seams between the step catalog and the machine:
- machine: MachineState handle (commands, executables, paths, downloads, operator waits)
- brewfile: Brewfile lookup and entry listing
- files: Line-oriented dotfile edits
"""

from .brewfile import (
    BrewfileEntries,
    format_entries,
    parse_brewfile,
    resolve_brewfile,
)
from .files import ensure_lines, missing_lines
from .machine import MachineState, current_platform

__all__ = [
    "BrewfileEntries",
    "MachineState",
    "current_platform",
    "ensure_lines",
    "format_entries",
    "missing_lines",
    "parse_brewfile",
    "resolve_brewfile",
]
