"""Per-invocation state shared by commands, services and the executor."""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from pgman.core.config import AppConfig, DEFAULT_CONFIG_PATH
from pgman.core.output import Console, console, Verbosity


@dataclass
class ExecutionContext:
    """Global CLI flags plus the lazily loaded configuration.

    Creating a context reconfigures the shared console, so the verbosity
    and colour flags of the current command apply everywhere.
    """

    dry_run: bool = False
    yes: bool = False
    verbosity: int = Verbosity.NORMAL
    no_color: bool = False
    config_path: Path = field(default_factory=lambda: DEFAULT_CONFIG_PATH)

    _config: Optional[AppConfig] = field(default=None, repr=False)
    _console: Console = field(default_factory=lambda: console, repr=False)

    def __post_init__(self) -> None:
        self._console.configure(verbosity=self.verbosity, no_color=self.no_color)

    @property
    def config(self) -> AppConfig:
        # Loaded on first use so `pgman --help` works with a broken config file
        if self._config is None:
            self._config = AppConfig(config_path=self.config_path)
        return self._config

    @property
    def console(self) -> Console:
        return self._console

    @property
    def is_verbose(self) -> bool:
        return self.verbosity >= Verbosity.VERBOSE

    @property
    def is_debug(self) -> bool:
        return self.verbosity >= Verbosity.DEBUG


def create_context(
    dry_run: bool = False,
    yes: bool = False,
    verbose: int = 0,
    no_color: bool = False,
    config: Optional[Path] = None,
) -> ExecutionContext:
    """Build a context from the common options; each ``-v`` adds a level, up to DEBUG."""
    verbosity = min(Verbosity.NORMAL + verbose, Verbosity.DEBUG)
    return ExecutionContext(
        dry_run=dry_run,
        yes=yes,
        verbosity=verbosity,
        no_color=no_color,
        config_path=config or DEFAULT_CONFIG_PATH,
    )
