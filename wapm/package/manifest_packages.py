"""Dependency identities declared by a manifest, and writing resolved ones back."""

import logging
from collections.abc import Iterable, Sequence
from enum import unique
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from wapm._compat import StrEnum
from wapm.package.discovery import ManifestAbsent, ManifestFound, ManifestInvalid, ManifestOutcome
from wapm.package.exceptions import DependencyVersionError, ManifestSaveError
from wapm.package.manifest.schema import Manifest

logger = logging.getLogger(__name__)


@unique
class PackageProvenance(StrEnum):
    DECLARED = "declared"
    RESOLVED = "resolved"


class PackageKey(BaseModel):
    """A ``(name, version)`` pair identifying a registry package.

    Provenance records where the key came from but takes no part in equality
    or hashing.
    """

    model_config = ConfigDict(frozen=True)

    name: str = Field(min_length=1)
    version: str = Field(min_length=1)
    provenance: PackageProvenance = PackageProvenance.DECLARED

    @classmethod
    def new_registry_package(cls, name: str, version: str) -> "PackageKey":
        return cls(name=name, version=version, provenance=PackageProvenance.RESOLVED)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, PackageKey):
            return NotImplemented
        return (self.name, self.version) == (other.name, other.version)

    def __hash__(self) -> int:
        return hash((self.name, self.version))

    def __str__(self) -> str:
        return f"{self.name}@{self.version}"


class InstalledPackage(BaseModel):
    """A package handed back by the resolver once it is available on disk."""

    model_config = ConfigDict(frozen=True)

    key: PackageKey
    package_root: Path
    download_url: str
    manifest: Manifest | None = None


def _key_from_dependency(name: str, value: Any) -> PackageKey:
    if not isinstance(value, str):
        msg = f"Dependency version must be a string. Package name: {name}."
        raise DependencyVersionError(msg)
    if not name or not value:
        msg = f"Dependency name and version must not be empty. Package name: '{name}'."
        raise DependencyVersionError(msg)
    return PackageKey(name=name, version=value)


class DependencyKeySet:
    """The set of package keys a manifest depends on.

    ``package_keys`` is None when the manifest declares no ``[dependencies]``
    table at all (or there is no manifest).
    """

    def __init__(self, package_keys: set[PackageKey] | None = None) -> None:
        self.package_keys = package_keys

    @classmethod
    def from_outcome(cls, outcome: ManifestOutcome) -> "DependencyKeySet":
        """Build the key set from the result of ``locate_manifest``.

        Raises:
            ManifestError: The error carried by a ``ManifestInvalid`` outcome, unchanged.
            DependencyVersionError: If a dependency version is not a non-empty string.
        """
        if isinstance(outcome, ManifestFound):
            return cls.from_manifest(outcome.manifest)
        if isinstance(outcome, ManifestAbsent):
            return cls()
        if isinstance(outcome, ManifestInvalid):
            raise outcome.error.with_traceback(None)
        msg = f"Unexpected manifest outcome: {outcome!r}"
        raise TypeError(msg)

    @classmethod
    def from_manifest(cls, manifest: Manifest) -> "DependencyKeySet":
        if manifest.dependencies is None:
            return cls()
        # Builds every key before assigning, so a bad entry leaves nothing behind
        package_keys = {_key_from_dependency(name, value) for name, value in manifest.dependencies.items()}
        return cls(package_keys=package_keys)

    def add(self, added_packages: Iterable[tuple[str, str]]) -> None:
        """Insert resolved ``(name, version)`` pairs; pairs already present are kept once.

        Raises:
            DependencyVersionError: If a name or version is empty. Nothing is inserted then.
        """
        try:
            new_keys = [PackageKey.new_registry_package(name, version) for name, version in added_packages]
        except ValidationError as exc:
            msg = f"Resolved packages must have a non-empty name and version: {exc}"
            raise DependencyVersionError(msg) from exc
        if self.package_keys is None:
            self.package_keys = set()
        self.package_keys.update(new_keys)

    def keys(self) -> set[PackageKey]:
        if self.package_keys is None:
            return set()
        return set(self.package_keys)

    def __len__(self) -> int:
        return 0 if self.package_keys is None else len(self.package_keys)

    def __contains__(self, key: object) -> bool:
        return self.package_keys is not None and key in self.package_keys


def reconcile_manifest(outcome: ManifestOutcome, installed_packages: Sequence[InstalledPackage]) -> set[str]:
    """Record installed packages as explicit dependencies in the manifest file.

    Does nothing unless a manifest was found and at least one package was
    installed. Names already declared in the manifest keep their version; a
    name appearing more than once in ``installed_packages`` keeps its last one.

    Args:
        outcome: The result of ``locate_manifest``
        installed_packages: Packages returned by the resolver

    Returns:
        The dependency names written to the manifest (empty when nothing was saved)

    Raises:
        ManifestSaveError: If the updated manifest cannot be written
    """
    if not isinstance(outcome, ManifestFound) or not installed_packages:
        return set()

    declared = set(outcome.manifest.dependencies or {})
    manifest = outcome.manifest.model_copy(deep=True)
    added: set[str] = set()
    for installed in installed_packages:
        if installed.key.name in declared:
            logger.debug("%s is already declared, keeping the manifest entry", installed.key.name)
            continue
        manifest.add_dependency(installed.key.name, installed.key.version)
        added.add(installed.key.name)

    if not added:
        return added

    try:
        manifest_path = manifest.save()
    except OSError as exc:
        msg = f"Could not save manifest file because {exc}."
        raise ManifestSaveError(msg) from exc

    logger.info("Added %d dependency entries to %s", len(added), manifest_path)
    return added
