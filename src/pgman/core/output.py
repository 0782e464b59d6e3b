"""Rich-backed console used by every pgman command.

Status lines go to stdout, warnings and errors to stderr. The snapshot
browser borrows the stdout console through ``Console.rich`` to drive its
live display.
"""

from enum import IntEnum
from typing import Any

from rich import box
from rich.console import Console as RichConsole
from rich.panel import Panel
from rich.syntax import Syntax
from rich.table import Table


class Verbosity(IntEnum):
    QUIET = 0
    NORMAL = 1
    VERBOSE = 2
    DEBUG = 3


# Markup prefix and minimum verbosity for each status-line kind
_LEVELS = {
    "info": ("[green][INFO][/green] ", Verbosity.NORMAL),
    "success": ("[green][OK][/green] ", Verbosity.NORMAL),
    "step": ("[blue]->[/blue] ", Verbosity.NORMAL),
    "debug": ("[cyan][DEBUG][/cyan] ", Verbosity.DEBUG),
}


class Console:
    """Verbosity-aware wrapper around a pair of Rich consoles."""

    def __init__(self) -> None:
        self.verbosity = Verbosity.NORMAL
        self.no_color = False
        self._build()

    def _build(self) -> None:
        self._console = RichConsole(highlight=False, no_color=self.no_color)
        self._err_console = RichConsole(stderr=True, highlight=False, no_color=self.no_color)

    def configure(self, verbosity: int = 1, no_color: bool = False) -> None:
        self.verbosity = Verbosity(min(max(verbosity, Verbosity.QUIET), Verbosity.DEBUG))
        if no_color != self.no_color:
            self.no_color = no_color
            self._build()

    @property
    def rich(self) -> RichConsole:
        return self._console

    def _status(self, kind: str, message: str) -> None:
        prefix, level = _LEVELS[kind]
        if self.verbosity >= level:
            self._console.print(prefix + message)

    def info(self, message: str) -> None:
        self._status("info", message)

    def success(self, message: str) -> None:
        self._status("success", message)

    def step(self, message: str) -> None:
        self._status("step", message)

    def debug(self, message: str) -> None:
        self._status("debug", message)

    def verbose(self, message: str) -> None:
        if self.verbosity >= Verbosity.VERBOSE:
            self._console.print(f"[dim]{message}[/dim]")

    def warn(self, message: str) -> None:
        self._err_console.print(f"[yellow][WARN][/yellow] {message}")

    def error(self, message: str) -> None:
        self._err_console.print(f"[red][ERROR][/red] {message}")

    def hint(self, message: str) -> None:
        self._console.print(f"[cyan]Hint:[/cyan] {message}")

    def print(self, message: Any = "", **kwargs: Any) -> None:
        self._console.print(message, **kwargs)

    def table(self, title: str, columns: list[str], rows: list[list[str]]) -> None:
        grid = Table(title=title, box=box.ROUNDED)
        for name in columns:
            grid.add_column(name)
        for row in rows:
            grid.add_row(*row)
        self._console.print(grid)

    def yaml(self, yaml_text: str, title: str = "Configuration") -> None:
        body = Syntax(yaml_text, "yaml", theme="monokai")
        self._console.print(Panel(body, title=title, border_style="cyan"))

    def summary(self, title: str, items: dict[str, Any]) -> None:
        """Key/value panel; booleans render as a coloured Yes/No."""
        lines = []
        for key, value in items.items():
            if isinstance(value, bool):
                value = "[green]Yes[/green]" if value else "[red]No[/red]"
            lines.append(f"[bold]{key}:[/bold] {value}")
        self._console.print(Panel("\n".join(lines), title=title, border_style="blue"))

    def confirm(self, message: str, default: bool = False) -> bool:
        """Ask a yes/no question. EOF or Ctrl-C counts as "no"."""
        choices = "[Y/n]" if default else "[y/N]"
        try:
            answer = self._console.input(f"{message} {choices}: ")
        except (EOFError, KeyboardInterrupt):
            return False
        answer = answer.strip().lower()
        if not answer:
            return default
        return answer in ("y", "yes")


console = Console()
