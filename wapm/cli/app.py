"""wapm CLI.

Inspects the package manifest, records resolved dependencies, writes the lock
file, and looks up which module runs a command.
"""

from typing import Annotated

import typer

from wapm.cli._console import DEFAULT_LOG_LEVEL, configure_logging
from wapm.cli.commands._lock_helpers import DEFAULT_REGISTRY
from wapm.cli.commands.add_cmd import do_add
from wapm.cli.commands.list_cmd import do_list
from wapm.cli.commands.lock_cmd import do_lock
from wapm.cli.commands.which_cmd import do_which

app = typer.Typer(
    name="wapm",
    no_args_is_help=True,
    help="wapm: inspect wapm.toml, record dependencies, and lock commands.",
)

DirectoryOption = Annotated[
    str | None,
    typer.Option("--directory", "-d", help="Target package directory (defaults to current directory)"),
]
RegistryOption = Annotated[
    str,
    typer.Option("--registry", envvar="WAPM_REGISTRY", help="Registry base URL used to derive dependency download URLs"),
]


@app.callback()
def main(
    log_level: Annotated[
        str,
        typer.Option("--log-level", envvar="WAPM_LOG_LEVEL", help="Logging level (DEBUG, INFO, WARNING, ERROR)"),
    ] = DEFAULT_LOG_LEVEL,
    verbose: Annotated[
        bool,
        typer.Option("--verbose", "-v", help="Show debug logging (overrides --log-level)"),
    ] = False,
) -> None:
    """Configure logging before any command runs."""
    configure_logging("DEBUG" if verbose else log_level)


@app.command("list", help="Display wapm.toml: package, dependencies and command providers")
def list_cmd(directory: DirectoryOption = None) -> None:
    """Show the package manifest."""
    do_list(directory=directory)


@app.command("add", help="Record a resolved package as a dependency in wapm.toml")
def add_cmd(
    name: Annotated[
        str,
        typer.Argument(help="Package name (e.g. 'left-pad')"),
    ],
    version: Annotated[
        str,
        typer.Argument(help="Exact package version (e.g. '1.0.0')"),
    ],
    directory: DirectoryOption = None,
    registry: RegistryOption = DEFAULT_REGISTRY,
) -> None:
    """Add a dependency to the package manifest."""
    do_add(name=name, version=version, directory=directory, registry=registry)


@app.command("lock", help="Generate wapm.lock from wapm.toml")
def lock_cmd(
    directory: DirectoryOption = None,
    registry: RegistryOption = DEFAULT_REGISTRY,
) -> None:
    """Lock every module and command of the package."""
    do_lock(directory=directory, registry=registry)


@app.command("which", help="Show the package and module that run a command")
def which_cmd(
    command_name: Annotated[
        str,
        typer.Argument(help="Command name"),
    ],
    directory: DirectoryOption = None,
) -> None:
    """Look up a command in wapm.lock."""
    do_which(command_name=command_name, directory=directory)
