"""Commands that read Rust source from standard input."""

import sys
from typing import Annotated

import typer

from crate_probe.cli.common import exit_on_error, get_state
from crate_probe.core.introspect import IntrospectionFacade, dump_tree
from crate_probe.core.metrics import report_metric, stopwatch
from crate_probe.engine.rust import TreeSitterRustEngine
from crate_probe.errors import IoError


def _get_facade() -> IntrospectionFacade:
    return IntrospectionFacade(TreeSitterRustEngine())


def read_stdin() -> str:
    try:
        return sys.stdin.read()
    except (OSError, UnicodeDecodeError) as exc:
        raise IoError(f"Cannot read standard input: {exc}") from exc


def parse(
    ctx: typer.Context,
    no_dump: Annotated[bool, typer.Option("--no-dump", help="Parse without printing the tree.")] = False,
) -> None:
    """Parse stdin and print the syntax tree."""
    state = get_state(ctx)
    with exit_on_error():
        text = read_stdin()
    with stopwatch() as watch:
        tree = _get_facade().parse(text)
    if not no_dump:
        typer.echo(dump_tree(tree))
    report_metric("parse time", watch.elapsed_ms, "ms", mode=state.metrics, emit=typer.echo)


def symbols() -> None:
    """Print the outline of stdin, one symbol per line."""
    with exit_on_error():
        text = read_stdin()
    for symbol in _get_facade().outline(text):
        typer.echo(str(symbol))


def highlight(
    rainbow: Annotated[bool, typer.Option("--rainbow", "-r", help="Colour each binding distinctly.")] = False,
) -> None:
    """Print stdin as syntax-highlighted HTML."""
    with exit_on_error():
        text = read_stdin()
    typer.echo(_get_facade().render_highlight(text, rainbow))
