import typer
from rich.markup import escape

from wapm.cli._console import get_console, resolve_directory
from wapm.cli.commands._lock_helpers import read_lock_file_or_exit
from wapm.package.exceptions import LockfileCommandError


def do_which(command_name: str, directory: str | None = None) -> None:
    """Show which package, version and module run a locked command.

    Args:
        command_name: The command to look up
        directory: Package directory (defaults to current directory)
    """
    console = get_console()
    cwd = resolve_directory(directory)
    lock = read_lock_file_or_exit(console, cwd)

    try:
        command = lock.get_command(command_name)
        module = lock.get_module_for_command(command_name)
    except LockfileCommandError as exc:
        console.print(f"[red]{escape(exc.message)}[/red]")
        raise typer.Exit(code=1) from exc

    console.print(
        f"[bold]{escape(command.name)}[/bold] -> {escape(command.package_name)} {escape(command.package_version)}"
        f" module [cyan]{escape(module.name)}[/cyan] ({escape(module.resolved)})"
    )
    if command.main_args is not None:
        console.print(f"[dim]main args: {escape(command.main_args)}[/dim]")
