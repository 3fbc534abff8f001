import typer
from rich.markup import escape

from wapm.cli._console import get_console, resolve_directory
from wapm.cli.commands._lock_helpers import DEFAULT_REGISTRY, download_url_for, load_manifest_or_exit, package_root_for
from wapm.package.discovery import MANIFEST_FILENAME
from wapm.package.exceptions import ManifestSaveError
from wapm.package.manifest_packages import InstalledPackage, PackageKey, reconcile_manifest


def do_add(name: str, version: str, directory: str | None = None, registry: str = DEFAULT_REGISTRY) -> None:
    """Record a resolved package as a dependency in wapm.toml.

    Args:
        name: Package name
        version: Exact package version
        directory: Package directory (defaults to current directory)
        registry: Registry base URL the download URL is derived from
    """
    console = get_console()
    cwd = resolve_directory(directory)
    outcome, _, dependency_keys = load_manifest_or_exit(console, cwd)

    if not name.strip() or not version.strip() or " " in name or " " in version:
        console.print(f"[red]Invalid package '{escape(name)}' '{escape(version)}': name and version must be non-empty and contain no spaces.[/red]")
        raise typer.Exit(code=1)

    key = PackageKey.new_registry_package(name, version)
    if key in dependency_keys:
        console.print(f"[dim]{escape(str(key))} is already a dependency.[/dim]")
        return

    installed = InstalledPackage(
        key=key,
        package_root=package_root_for(cwd, key),
        download_url=download_url_for(registry, key),
    )

    try:
        added = reconcile_manifest(outcome, [installed])
    except ManifestSaveError as exc:
        console.print(f"[red]{escape(exc.message)}[/red]")
        raise typer.Exit(code=1) from exc

    if not added:
        console.print(f"[yellow]'{escape(name)}' is already declared in {MANIFEST_FILENAME} with another version; left unchanged.[/yellow]")
        return
    console.print(f"[green]Added {escape(str(key))} to {MANIFEST_FILENAME}.[/green]")
