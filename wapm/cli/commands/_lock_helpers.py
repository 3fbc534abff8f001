"""Shared helpers for the commands that read the manifest or the lock file."""

import logging
from pathlib import Path

import typer
from rich.console import Console
from rich.markup import escape

from wapm.package.discovery import MANIFEST_FILENAME, ManifestFound, ManifestInvalid, ManifestOutcome, locate_manifest
from wapm.package.exceptions import LockFileError, ManifestError
from wapm.package.lock_file import LOCK_FILENAME, LockFile, parse_lock_file
from wapm.package.manifest.schema import Manifest
from wapm.package.manifest_packages import DependencyKeySet, InstalledPackage, PackageKey

logger = logging.getLogger(__name__)

PACKAGES_DIRNAME = "wapm_packages"
DEFAULT_REGISTRY = "https://registry.wapm.io"


def package_root_for(cwd: Path, key: PackageKey) -> Path:
    """Directory the install step places a dependency in."""
    return cwd / PACKAGES_DIRNAME / f"{key.name}@{key.version}"


def download_url_for(registry: str, key: PackageKey) -> str:
    return f"{registry.rstrip('/')}/{key.name}/{key.version}/download"


def load_manifest_or_exit(console: Console, cwd: Path) -> tuple[ManifestOutcome, Manifest, DependencyKeySet]:
    """Locate the wapm.toml in cwd and extract its dependency keys, or exit with an error message.

    Args:
        console: Rich console for output.
        cwd: The package directory.

    Returns:
        The outcome, the found manifest and its dependency keys.
    """
    outcome = locate_manifest(cwd)

    if isinstance(outcome, ManifestInvalid):
        console.print(f"[red]Could not load {MANIFEST_FILENAME}: {escape(outcome.error.message)}[/red]")
        raise typer.Exit(code=1)
    if not isinstance(outcome, ManifestFound):
        console.print(f"[red]{MANIFEST_FILENAME} not found in {escape(str(cwd))}.[/red]")
        raise typer.Exit(code=1)

    try:
        dependency_keys = DependencyKeySet.from_outcome(outcome)
    except ManifestError as exc:
        console.print(f"[red]Invalid dependencies in {MANIFEST_FILENAME}: {escape(exc.message)}[/red]")
        raise typer.Exit(code=1) from exc

    return outcome, outcome.manifest, dependency_keys


def collect_installed_packages(console: Console, cwd: Path, dependency_keys: DependencyKeySet, registry: str) -> list[InstalledPackage]:
    """Gather the dependencies already placed under ``wapm_packages/``.

    Dependencies that are not on disk are skipped with a warning; their
    modules will be missing from the lock file until they are installed.
    """
    installed: list[InstalledPackage] = []
    for key in sorted(dependency_keys.keys(), key=lambda key: (key.name, key.version)):
        package_root = package_root_for(cwd, key)
        if not package_root.is_dir():
            console.print(f"[yellow]{escape(str(key))} is not installed, its modules are not locked.[/yellow]")
            continue

        outcome = locate_manifest(package_root)
        if isinstance(outcome, ManifestInvalid):
            console.print(f"[red]Installed package {escape(str(key))} has an invalid manifest: {escape(outcome.error.message)}[/red]")
            raise typer.Exit(code=1)
        manifest = outcome.manifest if isinstance(outcome, ManifestFound) else None
        logger.debug("Found installed package %s at %s", key, package_root)
        installed.append(
            InstalledPackage(
                key=key,
                package_root=package_root,
                download_url=download_url_for(registry, key),
                manifest=manifest,
            )
        )
    return installed


def read_lock_file_or_exit(console: Console, cwd: Path) -> LockFile:
    """Parse the wapm.lock in cwd, or exit with an error message."""
    lock_path = cwd / LOCK_FILENAME
    if not lock_path.is_file():
        console.print(f"[red]{LOCK_FILENAME} not found in {escape(str(cwd))}.[/red]")
        console.print("Run [bold]wapm lock[/bold] first to generate a lock file.")
        raise typer.Exit(code=1)

    try:
        return parse_lock_file(lock_path.read_text(encoding="utf-8"))
    except LockFileError as exc:
        console.print(f"[red]Could not parse {LOCK_FILENAME}: {escape(exc.message)}[/red]")
        raise typer.Exit(code=1) from exc
