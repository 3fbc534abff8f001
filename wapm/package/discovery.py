"""Locate and load the wapm.toml manifest of a package directory.

Loading has three outcomes, modelled as distinct types so that callers handle
each one explicitly:

- ``ManifestFound``: the manifest was read and validated.
- ``ManifestAbsent``: the directory has no wapm.toml. This is not an error.
- ``ManifestInvalid``: a wapm.toml is there but cannot be used.
"""

import logging
import stat
from pathlib import Path

from pydantic import BaseModel, ConfigDict

from wapm.package.exceptions import ManifestError, ManifestIOError
from wapm.package.manifest.parser import parse_wapm_toml
from wapm.package.manifest.schema import MANIFEST_FILENAME, Manifest

logger = logging.getLogger(__name__)

__all__ = [
    "MANIFEST_FILENAME",
    "ManifestAbsent",
    "ManifestFound",
    "ManifestInvalid",
    "ManifestOutcome",
    "locate_manifest",
]


class ManifestFound(BaseModel):
    model_config = ConfigDict(frozen=True)

    manifest: Manifest


class ManifestAbsent(BaseModel):
    model_config = ConfigDict(frozen=True)

    directory: Path


class ManifestInvalid(BaseModel):
    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    error: ManifestError


ManifestOutcome = ManifestFound | ManifestAbsent | ManifestInvalid


def locate_manifest(directory: Path) -> ManifestOutcome:
    """Load the wapm.toml that sits directly inside ``directory``.

    Args:
        directory: The package directory

    Returns:
        ``ManifestFound`` with the parsed manifest, ``ManifestAbsent`` when there is
        no wapm.toml, or ``ManifestInvalid`` carrying the error otherwise.
    """
    directory = Path(directory)
    try:
        directory_mode = directory.stat().st_mode
    except OSError as exc:
        msg = f"Cannot look for {MANIFEST_FILENAME} in '{directory}': {exc}"
        return ManifestInvalid(error=ManifestIOError(msg))
    if not stat.S_ISDIR(directory_mode):
        msg = f"Cannot look for {MANIFEST_FILENAME} in '{directory}': not a directory"
        return ManifestInvalid(error=ManifestIOError(msg))

    manifest_path = directory / MANIFEST_FILENAME
    try:
        manifest_mode = manifest_path.stat().st_mode
    except FileNotFoundError:
        logger.debug("No %s in %s", MANIFEST_FILENAME, directory)
        return ManifestAbsent(directory=directory)
    except OSError as exc:
        msg = f"Could not inspect '{manifest_path}': {exc}"
        return ManifestInvalid(error=ManifestIOError(msg))
    if not stat.S_ISREG(manifest_mode):
        msg = f"Manifest must be a file named `{MANIFEST_FILENAME}`, but '{manifest_path}' is not a regular file"
        return ManifestInvalid(error=ManifestIOError(msg))

    try:
        content = manifest_path.read_text(encoding="utf-8")
    except FileNotFoundError:
        # Removed between the existence check and the read
        logger.debug("%s disappeared before it could be read", manifest_path)
        return ManifestAbsent(directory=directory)
    except (OSError, UnicodeDecodeError) as exc:
        msg = f"Could not read '{manifest_path}': {exc}"
        return ManifestInvalid(error=ManifestIOError(msg))

    try:
        manifest = parse_wapm_toml(content, base_directory_path=directory)
    except ManifestError as exc:
        logger.debug("Invalid manifest at %s: %s", manifest_path, exc.message)
        return ManifestInvalid(error=exc)

    logger.debug("Loaded manifest for %s %s from %s", manifest.package.name, manifest.package.version, manifest_path)
    return ManifestFound(manifest=manifest)
