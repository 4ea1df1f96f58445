"""Console output formatting for the command-line interface."""

import json
from typing import Any

from rich.console import Console
from rich.markup import escape


class OutputFormatter:
    """Writes status messages and results to the terminal.

    In quiet mode only errors are printed. In JSON mode human-readable
    messages go to stderr so stdout carries nothing but the JSON document.
    """

    def __init__(self, json_output: bool = False, quiet: bool = False):
        self.json_output = json_output
        self.quiet = quiet
        self.console = Console(stderr=json_output, highlight=False)
        self.error_console = Console(stderr=True, highlight=False)

    def print(self, message: str = "") -> None:
        if not self.quiet:
            self.console.print(escape(message))

    def info(self, message: str) -> None:
        if not self.quiet:
            self.console.print(escape(message))

    def success(self, message: str) -> None:
        if not self.quiet:
            self.console.print(f"[green]{escape(message)}[/green]")

    def warning(self, message: str) -> None:
        if not self.quiet:
            self.console.print(f"[yellow]{escape(message)}[/yellow]")

    def error(self, message: str) -> None:
        self.error_console.print(f"[red]{escape(message)}[/red]")

    def output_json(self, data: Any) -> None:
        """Print a JSON document to stdout."""
        print(json.dumps(data, indent=2, default=str))
