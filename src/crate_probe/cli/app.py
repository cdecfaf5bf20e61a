from typing import Annotated

import typer

from crate_probe.cli.analysis import highlight, parse, symbols
from crate_probe.cli.common import CliState, Verbosity, configure_logging
from crate_probe.cli.crates import crate_options
from crate_probe.core.metrics import MetricsMode

app = typer.Typer(
    name="crate-probe",
    help="Crate-probe CLI: find the crates that own a file and inspect Rust syntax.",
    no_args_is_help=True,
    context_settings={"help_option_names": ["-h", "--help"]},
)


@app.callback()
def setup(
    ctx: typer.Context,
    verbose: Annotated[int, typer.Option("--verbose", "-v", count=True, help="More logging; repeat for debug.")] = 0,
    quiet: Annotated[bool, typer.Option("--quiet", "-q", help="Only log errors.")] = False,
    metrics: Annotated[
        bool, typer.Option("--metrics", envvar="CRATE_PROBE_METRICS", help="Print METRIC:<name>:<value>:<unit> lines.")
    ] = False,
) -> None:
    verbosity = Verbosity.from_flags(verbose, quiet)
    configure_logging(verbosity)
    ctx.obj = CliState(verbosity=verbosity, metrics=MetricsMode.from_flag(metrics))


app.command("parse")(parse)
app.command("symbols")(symbols)
app.command("highlight")(highlight)
app.command("crate-options")(crate_options)


def main() -> None:
    app()
