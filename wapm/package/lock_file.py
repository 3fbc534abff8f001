"""Lock file model, generation, TOML I/O, and command lookup.

The lock file (``wapm.lock``) pins every module the package can run and binds
each command of the manifest to the exact package, version and module that
provides it. Command dispatch reads the lock file instead of the manifest.
"""

import logging
from collections.abc import Sequence
from typing import Any, cast

import tomlkit
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from wapm._utils.toml_utils import TomlError, load_toml_from_content
from wapm.package.exceptions import CommandNotFoundError, DependencyVersionError, LockFileError, ModuleForCommandDoesNotExistError
from wapm.package.lockfile_command import LockfileCommand
from wapm.package.manifest.schema import Abi, Manifest
from wapm.package.manifest_packages import DependencyKeySet, InstalledPackage, PackageKey

logger = logging.getLogger(__name__)

LOCK_FILENAME = "wapm.lock"
LOCKFILE_VERSION = "1"


# ---------------------------------------------------------------------------
# Models
# ---------------------------------------------------------------------------


class LockfileModule(BaseModel):
    """A module pinned to the package version that ships it."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    name: str
    package_name: str
    package_version: str
    source: str
    resolved: str
    abi: Abi = Abi.NONE


class LockFile(BaseModel):
    """The wapm.lock file model."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    lockfile_version: str = LOCKFILE_VERSION
    modules: list[LockfileModule] = Field(default_factory=list)
    commands: dict[str, LockfileCommand] = Field(default_factory=dict)

    def get_command(self, command_name: str) -> LockfileCommand:
        """Look up a locked command by name.

        Raises:
            CommandNotFoundError: If no command of that name is locked.
        """
        command = self.commands.get(command_name)
        if command is None:
            msg = f"Command '{command_name}' is not in {LOCK_FILENAME}. Run `wapm lock` after adding it to the manifest."
            raise CommandNotFoundError(msg)
        return command

    def get_module_for_command(self, command_name: str) -> LockfileModule:
        """Return the module that runs ``command_name``.

        Raises:
            CommandNotFoundError: If no command of that name is locked.
            ModuleForCommandDoesNotExistError: If the command points at a module
                that is not locked, which happens when wapm.lock was edited by hand.
        """
        command = self.get_command(command_name)
        for module in self.modules:
            if (module.package_name, module.package_version, module.name) == (command.package_name, command.package_version, command.module):
                return module
        msg = (
            f"The module for this command does not exist. Did you modify the {LOCK_FILENAME}? "
            f"(command '{command.name}' expects module '{command.module}' from {command.package_name} {command.package_version})"
        )
        raise ModuleForCommandDoesNotExistError(msg)


# ---------------------------------------------------------------------------
# Lock file generation
# ---------------------------------------------------------------------------


def generate_lock_file(manifest: Manifest, installed_packages: Sequence[InstalledPackage] = ()) -> LockFile:
    """Generate a lock file for the local manifest and its installed dependencies.

    Modules come from the local manifest and from the manifest of each installed
    package. Every command of the local manifest gets one top-level record.

    Args:
        manifest: The local package's manifest.
        installed_packages: Packages returned by the resolver.

    Returns:
        A ``LockFile`` with modules and commands.

    Raises:
        LockFileError: If a command names a package that is neither the local
            package nor one of its dependencies, or a dependency version is invalid.
        InvalidCommandPackageError: If a command's ``package`` field is malformed.
    """
    local_name = manifest.package.name
    local_version = manifest.package.version

    try:
        dependency_keys = DependencyKeySet.from_manifest(manifest)
    except DependencyVersionError as exc:
        msg = f"Cannot lock {local_name} {local_version}: {exc}"
        raise LockFileError(msg) from exc
    dependency_keys.add((installed.key.name, installed.key.version) for installed in installed_packages)

    modules: list[LockfileModule] = [
        LockfileModule(
            name=module.name,
            package_name=local_name,
            package_version=local_version,
            source=module.source,
            resolved=module.source,
            abi=module.abi,
        )
        for module in manifest.modules
    ]

    for installed in installed_packages:
        if installed.manifest is None:
            logger.debug("%s has no manifest, no modules to lock", installed.key)
            continue
        modules.extend(
            LockfileModule(
                name=module.name,
                package_name=installed.key.name,
                package_version=installed.key.version,
                source=f"registry+{module.name}",
                resolved=installed.download_url,
                abi=module.abi,
            )
            for module in installed.manifest.modules
        )

    commands: dict[str, LockfileCommand] = {}
    for command in manifest.commands:
        lockfile_command = LockfileCommand.from_command(local_name, local_version, command)
        is_local = (lockfile_command.package_name, lockfile_command.package_version) == (local_name, local_version)
        owner = PackageKey(name=lockfile_command.package_name, version=lockfile_command.package_version)
        if not is_local and owner not in dependency_keys:
            msg = f"Command '{command.name}' is provided by '{command.package}', which is not a dependency of {local_name} {local_version}"
            raise LockFileError(msg)
        commands[lockfile_command.name] = lockfile_command

    return LockFile(modules=modules, commands=commands)


# ---------------------------------------------------------------------------
# TOML parse / serialize
# ---------------------------------------------------------------------------


def parse_lock_file(content: str) -> LockFile:
    """Parse a lock file TOML string into a ``LockFile`` model.

    Args:
        content: The raw TOML string.

    Returns:
        A validated ``LockFile``.

    Raises:
        LockFileError: If parsing or validation fails.
    """
    if not content.strip():
        return LockFile()

    try:
        raw = load_toml_from_content(content)
    except TomlError as exc:
        msg = f"Invalid TOML syntax in lock file: {exc}"
        raise LockFileError(msg) from exc

    commands_section: Any = raw.get("command", {})
    if not isinstance(commands_section, dict):
        msg = f"Lock file 'command' must be a table, got {type(commands_section).__name__}"
        raise LockFileError(msg)

    commands: dict[str, Any] = {}
    for command_name, entry in cast("dict[str, Any]", commands_section).items():
        if not isinstance(entry, dict):
            msg = f"Lock file entry for command '{command_name}' must be a table, got {type(entry).__name__}"
            raise LockFileError(msg)
        inner_name = entry.get("name", command_name)
        if inner_name != command_name:
            msg = f"Lock file entry [command.{command_name}] has mismatched name '{inner_name}'"
            raise LockFileError(msg)
        commands[str(command_name)] = {**cast("dict[str, Any]", entry), "name": str(command_name)}

    try:
        return LockFile(
            lockfile_version=str(raw.get("lockfile_version", LOCKFILE_VERSION)),
            modules=raw.get("module", []),
            commands=commands,
        )
    except ValidationError as exc:
        msg = f"Invalid lock file: {exc}"
        raise LockFileError(msg) from exc


def serialize_lock_file(lock_file: LockFile) -> str:
    """Serialize a ``LockFile`` to a TOML string.

    Modules are sorted by package, version and name, commands by name, for
    deterministic output.

    Args:
        lock_file: The lock file model to serialize.

    Returns:
        A TOML-formatted string.
    """
    doc = tomlkit.document()
    doc.add("lockfile_version", lock_file.lockfile_version)

    if lock_file.modules:
        modules_array = tomlkit.aot()
        for module in sorted(lock_file.modules, key=lambda module: (module.package_name, module.package_version, module.name)):
            table = tomlkit.table()
            table.add("name", module.name)
            table.add("package_name", module.package_name)
            table.add("package_version", module.package_version)
            table.add("source", module.source)
            table.add("resolved", module.resolved)
            table.add("abi", module.abi.value)
            modules_array.append(table)
        doc.add("module", modules_array)

    if lock_file.commands:
        commands_table = tomlkit.table(is_super_table=True)
        for command_name in sorted(lock_file.commands):
            command = lock_file.commands[command_name]
            table = tomlkit.table()
            table.add("name", command.name)
            table.add("package_name", command.package_name)
            table.add("package_version", command.package_version)
            table.add("module", command.module)
            table.add("is_top_level_dependency", command.is_top_level_dependency)
            if command.main_args is not None:
                table.add("main_args", command.main_args)
            commands_table.add(command_name, table)
        doc.add("command", commands_table)

    return tomlkit.dumps(doc)  # type: ignore[arg-type]
