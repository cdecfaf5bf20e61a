import logging
import sys
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from enum import IntEnum

import typer
from rich.console import Console
from rich.markup import escape

from crate_probe.core.metrics import MetricsMode
from crate_probe.errors import CrateProbeError

err_console = Console(stderr=True)


class Verbosity(IntEnum):
    QUIET = 0
    NORMAL = 1
    VERBOSE = 2
    SPAMMY = 3

    @classmethod
    def from_flags(cls, verbose: int, quiet: bool) -> "Verbosity":
        if quiet:
            return cls.QUIET
        return cls(min(cls.NORMAL + verbose, cls.SPAMMY))

    @property
    def log_level(self) -> int:
        return {
            Verbosity.QUIET: logging.ERROR,
            Verbosity.NORMAL: logging.WARNING,
            Verbosity.VERBOSE: logging.INFO,
            Verbosity.SPAMMY: logging.DEBUG,
        }[self]


@dataclass(frozen=True)
class CliState:
    verbosity: Verbosity = Verbosity.NORMAL
    metrics: MetricsMode = MetricsMode.DISABLED


def configure_logging(verbosity: Verbosity) -> None:
    logging.basicConfig(
        level=verbosity.log_level,
        stream=sys.stderr,
        format="%(levelname)s %(name)s: %(message)s",
        force=True,
    )


def get_state(ctx: typer.Context) -> CliState:
    state = ctx.find_object(CliState)
    return state if state is not None else CliState()


@contextmanager
def exit_on_error() -> Iterator[None]:
    """Report a crate-probe failure on stderr and exit non-zero."""
    try:
        yield
    except CrateProbeError as exc:
        err_console.print(f"[red]{escape(str(exc))}[/red]")
        raise typer.Exit(1) from exc
