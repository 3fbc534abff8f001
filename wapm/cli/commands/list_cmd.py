from rich import box
from rich.markup import escape
from rich.table import Table

from wapm.cli._console import get_console, resolve_directory
from wapm.cli.commands._lock_helpers import load_manifest_or_exit
from wapm.package.discovery import MANIFEST_FILENAME
from wapm.package.exceptions import InvalidCommandPackageError
from wapm.package.lockfile_command import build_lockfile_command


def do_list(directory: str | None = None) -> None:
    """Display the package, its dependency keys and where each command comes from.

    Args:
        directory: Package directory (defaults to current directory)
    """
    console = get_console()
    cwd = resolve_directory(directory)
    _, manifest, dependency_keys = load_manifest_or_exit(console, cwd)

    console.print(f"\n[bold]{MANIFEST_FILENAME}[/bold]\n")

    pkg_table = Table(title="Package", box=box.ROUNDED, show_header=True)
    pkg_table.add_column("Field", style="cyan")
    pkg_table.add_column("Value")
    pkg_table.add_row("Name", escape(manifest.package.name))
    pkg_table.add_row("Version", escape(manifest.package.version))
    pkg_table.add_row("Description", escape(manifest.package.description))
    if manifest.package.license:
        pkg_table.add_row("License", escape(manifest.package.license))
    console.print(pkg_table)

    if dependency_keys.keys():
        console.print()
        deps_table = Table(title="Dependencies", box=box.ROUNDED, show_header=True)
        deps_table.add_column("Name", style="cyan")
        deps_table.add_column("Version")
        for key in sorted(dependency_keys.keys(), key=lambda key: (key.name, key.version)):
            deps_table.add_row(escape(key.name), escape(key.version))
        console.print(deps_table)

    if manifest.commands:
        console.print()
        commands_table = Table(title="Commands", box=box.ROUNDED, show_header=True)
        commands_table.add_column("Command", style="cyan")
        commands_table.add_column("Module")
        commands_table.add_column("Provided by")
        for command in manifest.commands:
            try:
                locked = build_lockfile_command(manifest.package.name, manifest.package.version, command)
                provider = f"{locked.package_name} {locked.package_version}"
            except InvalidCommandPackageError as exc:
                provider = f"[red]{escape(exc.message)}[/red]"
            commands_table.add_row(escape(command.name), escape(command.module), provider)
        console.print(commands_table)

    console.print()
