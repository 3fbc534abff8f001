import logging
from pathlib import Path

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape

DEFAULT_LOG_LEVEL = "WARNING"

_console: Console | None = None


def get_console() -> Console:
    """Return the shared Rich console instance for CLI output."""
    global _console  # noqa: PLW0603
    if _console is None:
        _console = Console(stderr=True)
    return _console


def configure_logging(level_name: str) -> None:
    """Route library logging through the shared console at the given level."""
    level = logging.getLevelName(level_name.upper())
    if not isinstance(level, int):
        get_console().print(f"[yellow]Unknown log level '{escape(level_name)}', using {DEFAULT_LOG_LEVEL}.[/yellow]")
        level = logging.WARNING
    logging.basicConfig(
        level=level,
        format="%(message)s",
        handlers=[RichHandler(console=get_console(), show_path=False)],
        force=True,
    )


def resolve_directory(directory: str | Path | None) -> Path:
    """Resolve the --directory option to an existing directory path.

    Args:
        directory: User-provided directory path, or None for current directory.

    Returns:
        Resolved absolute path to the directory.

    Raises:
        typer.Exit: If the path does not exist or is not a directory.
    """
    if directory is None:
        return Path.cwd()

    resolved = Path(directory).resolve()
    if not resolved.exists():
        console = get_console()
        console.print(f"[red]Directory not found: {escape(str(resolved))}[/red]")
        raise typer.Exit(code=1)
    if not resolved.is_dir():
        console = get_console()
        console.print(f"[red]Not a directory: {escape(str(resolved))}[/red]")
        raise typer.Exit(code=1)
    return resolved
