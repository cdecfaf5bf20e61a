from collections.abc import Iterable
from pathlib import Path
from typing import Annotated

import typer

from crate_probe.cli.common import exit_on_error, get_state
from crate_probe.config import LoadCargoConfig, LoaderMethod
from crate_probe.core.ports.loader import WorkspaceLoader
from crate_probe.core.resolve import resolve_file_crates


def _get_loader(config: LoadCargoConfig) -> WorkspaceLoader:
    from crate_probe.workspace.cargo import CargoWorkspaceLoader

    return CargoWorkspaceLoader(config)


def format_crate_line(display_name: str | None, feature_set: Iterable[str]) -> str:
    name = display_name if display_name is not None else "<unnamed>"
    return f"{name}: [{', '.join(sorted(feature_set))}]"


def crate_options(
    ctx: typer.Context,
    manifest_root: Annotated[Path, typer.Argument(help="Workspace directory or path to its Cargo.toml.")],
    file: Annotated[Path, typer.Argument(help="File to resolve, relative to the current directory.")],
    load_output_dirs: Annotated[
        bool, typer.Option("--load-output-dirs", help="Track files generated by build scripts.")
    ] = False,
    with_proc_macro: Annotated[
        bool, typer.Option("--with-proc-macro", help="Follow include!() expansions when collecting crate files.")
    ] = False,
    features: Annotated[
        list[str] | None, typer.Option("--features", "-F", help="Features to enable (repeatable, comma separated).")
    ] = None,
    all_features: Annotated[bool, typer.Option("--all-features", help="Enable every declared feature.")] = False,
    no_default_features: Annotated[
        bool, typer.Option("--no-default-features", help="Do not enable the default feature.")
    ] = False,
    method: Annotated[LoaderMethod, typer.Option(help="How to discover workspace packages.")] = LoaderMethod.AUTO,
) -> None:
    """Print every crate that includes FILE, with its enabled features."""
    state = get_state(ctx)
    config = LoadCargoConfig(
        method=method,
        include_build_output=load_output_dirs,
        include_macro_expansion=with_proc_macro,
        features=tuple(features or ()),
        all_features=all_features,
        no_default_features=no_default_features,
    )
    with exit_on_error():
        crates = resolve_file_crates(
            _get_loader(config),
            manifest_root,
            file,
            config=config,
            metrics=state.metrics,
        )
    for display_name, feature_set in crates:
        typer.echo(format_crate_line(display_name, feature_set))
