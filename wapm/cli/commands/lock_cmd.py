import logging

import typer
from rich.markup import escape

from wapm.cli._console import get_console, resolve_directory
from wapm.cli.commands._lock_helpers import DEFAULT_REGISTRY, collect_installed_packages, load_manifest_or_exit
from wapm.package.exceptions import LockFileError
from wapm.package.lock_file import LOCK_FILENAME, generate_lock_file, serialize_lock_file

logger = logging.getLogger(__name__)


def do_lock(directory: str | None = None, registry: str = DEFAULT_REGISTRY) -> None:
    """Generate wapm.lock from wapm.toml and the installed dependencies.

    Args:
        directory: Package directory (defaults to current directory)
        registry: Registry base URL the download URL is derived from
    """
    console = get_console()
    cwd = resolve_directory(directory)
    _, manifest, dependency_keys = load_manifest_or_exit(console, cwd)

    installed = collect_installed_packages(console, cwd, dependency_keys, registry)

    try:
        lock = generate_lock_file(manifest, installed)
    except LockFileError as exc:
        console.print(f"[red]Lock file generation failed: {escape(exc.message)}[/red]")
        raise typer.Exit(code=1) from exc

    lock_path = cwd / LOCK_FILENAME
    lock_path.write_text(serialize_lock_file(lock), encoding="utf-8")
    logger.info("Wrote %s", lock_path)

    console.print(f"[green]Wrote {LOCK_FILENAME} with {len(lock.modules)} module(s) and {len(lock.commands)} command(s).[/green]")
