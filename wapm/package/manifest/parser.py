from pathlib import Path
from typing import Any

import tomlkit
from pydantic import BaseModel, ValidationError

from wapm._utils.toml_utils import TomlError, load_toml_from_content
from wapm.package.exceptions import ManifestParseError, ManifestValidationError
from wapm.package.manifest.schema import Abi, Manifest


def parse_wapm_toml(content: str, base_directory_path: Path | None = None) -> Manifest:
    """Parse wapm.toml content into a Manifest model.

    Args:
        content: The raw TOML string
        base_directory_path: Directory the manifest belongs to (used by ``Manifest.save``)

    Returns:
        A validated Manifest

    Raises:
        ManifestParseError: If the TOML syntax is invalid
        ManifestValidationError: If the parsed data fails model validation
    """
    try:
        raw = load_toml_from_content(content)
    except TomlError as exc:
        msg = f"Invalid TOML syntax in wapm.toml: {exc}"
        raise ManifestParseError(msg) from exc

    try:
        manifest = Manifest.model_validate(raw)
    except ValidationError as exc:
        msg = f"wapm.toml validation failed: {exc}"
        raise ManifestValidationError(msg) from exc

    manifest.base_directory_path = base_directory_path
    return manifest


def _to_toml_value(value: Any) -> Any:
    if isinstance(value, dict):
        table = tomlkit.inline_table()
        table.update(value)
        return table
    if isinstance(value, list):
        array = tomlkit.array()
        for item in value:
            array.append(_to_toml_value(item))
        return array
    return value


def _is_table_like(value: Any) -> bool:
    return isinstance(value, dict) or (isinstance(value, list) and bool(value) and all(isinstance(item, dict) for item in value))


def _add_extras(table: Any, model: BaseModel) -> None:
    """Write back the keys the model kept without knowing them."""
    for key, value in (model.model_extra or {}).items():
        table.add(key, _to_toml_value(value))


def serialize_manifest_to_toml(manifest: Manifest) -> str:
    """Serialize a Manifest to a human-readable TOML string.

    Args:
        manifest: The manifest model to serialize

    Returns:
        A TOML-formatted string
    """
    doc = tomlkit.document()
    manifest_extras = manifest.model_extra or {}

    # Unknown top-level keys: plain values must precede the first table
    for key, value in manifest_extras.items():
        if not _is_table_like(value):
            doc.add(key, _to_toml_value(value))

    # [package] section
    package = manifest.package
    package_table = tomlkit.table()
    package_table.add("name", package.name)
    package_table.add("version", package.version)
    package_table.add("description", package.description)
    for optional_key in ("license", "readme", "repository", "homepage"):
        optional_value = getattr(package, optional_key)
        if optional_value is not None:
            package_table.add(optional_key, optional_value)
    _add_extras(package_table, package)
    doc.add("package", package_table)

    # [dependencies] section
    if manifest.dependencies:
        doc.add(tomlkit.nl())
        deps_table = tomlkit.table()
        for name, version in manifest.dependencies.items():
            deps_table.add(name, _to_toml_value(version))
        doc.add("dependencies", deps_table)

    # [[module]] entries
    if manifest.modules:
        modules_array = tomlkit.aot()
        for module in manifest.modules:
            module_table = tomlkit.table()
            module_table.add("name", module.name)
            module_table.add("source", module.source)
            if module.abi != Abi.NONE:
                module_table.add("abi", module.abi.value)
            _add_extras(module_table, module)
            modules_array.append(module_table)
        doc.add("module", modules_array)

    # [[command]] entries
    if manifest.commands:
        commands_array = tomlkit.aot()
        for command in manifest.commands:
            command_table = tomlkit.table()
            command_table.add("name", command.name)
            command_table.add("module", command.module)
            if command.package is not None:
                command_table.add("package", command.package)
            if command.main_args is not None:
                command_table.add("main_args", command.main_args)
            _add_extras(command_table, command)
            commands_array.append(command_table)
        doc.add("command", commands_array)

    # [fs] section
    if manifest.fs:
        doc.add(tomlkit.nl())
        fs_table = tomlkit.table()
        for guest_path, host_path in manifest.fs.items():
            fs_table.add(guest_path, host_path)
        doc.add("fs", fs_table)

    # Unknown top-level sections
    for key, value in manifest_extras.items():
        if _is_table_like(value):
            doc.add(key, value)

    return tomlkit.dumps(doc)  # type: ignore[arg-type]
