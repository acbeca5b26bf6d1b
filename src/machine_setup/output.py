"""Output formatting for the machine-setup CLI."""

import json
from dataclasses import dataclass, field
from typing import Any

from rich.console import Console
from rich.markup import escape


def _json_console() -> Console:
    # stdout, resolved at write time; no wrapping, markup or emoji codes
    return Console(record=True, soft_wrap=True, highlight=False, markup=False, emoji=False)


@dataclass
class OutputContext:
    """Context for output formatting.

    Human-readable output goes through ``console``; JSON goes to stdout
    through ``json_console``. Both record what they print so the run
    transcript captures it.
    """

    console: Console
    json_mode: bool = False
    dry_run: bool = False
    json_console: Console = field(default_factory=_json_console)

    def print(self, message: str, style: str | None = None) -> None:
        """Print message respecting output mode."""
        if not self.json_mode:
            self.console.print(message, style=style)

    def print_plain(self, text: str) -> None:
        """Print text verbatim, without interpreting rich markup."""
        if not self.json_mode:
            self.console.print(escape(text), highlight=False)

    def print_json(self, data: dict[str, Any]) -> None:
        """Print JSON data."""
        if self.json_mode:
            self.json_console.print(json.dumps(data, indent=2, default=str))

    def heading(self, title: str) -> None:
        """Print a section heading."""
        if not self.json_mode:
            self.console.print(f"\n[bold]{escape(title)}[/bold]")

    def error(self, message: str, data: dict[str, Any] | None = None) -> None:
        """Print error in appropriate format."""
        if self.json_mode:
            self.print_json({"error": message, **(data or {})})
        else:
            self.console.print(f"[red]Error: {escape(message)}[/red]")

    def success(self, message: str) -> None:
        """Print success message (suppressed in json mode)."""
        if not self.json_mode:
            self.console.print(f"[green]{escape(message)}[/green]")
