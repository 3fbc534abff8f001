import re
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from wapm._compat import Self, StrEnum

# Semver regex: MAJOR.MINOR.PATCH with optional pre-release and build metadata
SEMVER_PATTERN = re.compile(
    r"^(0|[1-9]\d*)\.(0|[1-9]\d*)\.(0|[1-9]\d*)"
    r"(?:-((?:0|[1-9]\d*|\d*[a-zA-Z-][0-9a-zA-Z-]*)(?:\.(?:0|[1-9]\d*|\d*[a-zA-Z-][0-9a-zA-Z-]*))*))?"
    r"(?:\+([0-9a-zA-Z-]+(?:\.[0-9a-zA-Z-]+)*))?$"
)

# Package names are lowercase words joined by "-" or "_", optionally namespaced ("user/name")
PACKAGE_NAME_PATTERN = re.compile(r"^(?:[a-z0-9][a-z0-9_-]*/)?[a-z0-9][a-z0-9_.-]*$")

MANIFEST_FILENAME = "wapm.toml"


def is_valid_semver(version: str) -> bool:
    """Check if a version string is valid semver."""
    return SEMVER_PATTERN.match(version) is not None


def is_valid_package_name(name: str) -> bool:
    return PACKAGE_NAME_PATTERN.match(name) is not None


class Abi(StrEnum):
    NONE = "none"
    WASI = "wasi"
    EMSCRIPTEN = "emscripten"


class ManifestPackage(BaseModel):
    """The ``[package]`` section of wapm.toml."""

    model_config = ConfigDict(extra="allow")

    name: str
    version: str
    description: str
    license: str | None = None
    readme: str | None = None
    repository: str | None = None
    homepage: str | None = None

    @field_validator("name")
    @classmethod
    def validate_name(cls, name: str) -> str:
        if not is_valid_package_name(name):
            msg = f"Invalid package name '{name}'. Names are lowercase and may contain '-', '_' and '.' (e.g. 'left-pad')."
            raise ValueError(msg)
        return name

    @field_validator("version")
    @classmethod
    def validate_version(cls, version: str) -> str:
        if not is_valid_semver(version):
            msg = f"Invalid version '{version}'. Must be valid semver (e.g. '1.0.0', '2.1.3-beta.1')."
            raise ValueError(msg)
        return version

    @field_validator("description")
    @classmethod
    def validate_description(cls, description: str) -> str:
        stripped = description.strip()
        if not stripped:
            msg = "Package description must not be empty."
            raise ValueError(msg)
        return stripped


class ManifestModule(BaseModel):
    """A ``[[module]]`` entry: a WebAssembly module shipped by the package."""

    model_config = ConfigDict(extra="allow")

    name: str = Field(min_length=1)
    source: str = Field(min_length=1)
    abi: Abi = Abi.NONE


class Command(BaseModel):
    """A ``[[command]]`` entry: a runnable command backed by a module.

    ``package`` is set when the module lives in a dependency, formatted as
    ``"<name> <version>"``. It is checked when the command is locked.
    """

    model_config = ConfigDict(extra="allow")

    name: str = Field(min_length=1)
    module: str = Field(min_length=1)
    package: str | None = None
    main_args: str | None = None


class Manifest(BaseModel):
    """The wapm.toml package manifest model.

    Can be constructed in two ways:
    - From raw TOML dict: ``Manifest.model_validate(raw_toml_dict)``
    - Directly: ``Manifest(package=ManifestPackage(...), commands=[...])``

    Dependency values are kept as parsed; their type is checked when the
    dependency keys are extracted. Keys this model does not know about (here
    and in the nested sections) are kept as extras and written back by ``save``.
    """

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    package: ManifestPackage
    dependencies: dict[str, Any] | None = None
    modules: list[ManifestModule] = Field(default_factory=list, alias="module")
    commands: list[Command] = Field(default_factory=list, alias="command")
    fs: dict[str, str] | None = None

    base_directory_path: Path | None = Field(default=None, exclude=True)

    @model_validator(mode="after")
    def validate_unique_names(self) -> Self:
        """Ensure module and command names are unique."""
        module_names = [module.name for module in self.modules]
        command_names = [command.name for command in self.commands]
        for kind, names in (("module", module_names), ("command", command_names)):
            seen: set[str] = set()
            for name in names:
                if name in seen:
                    msg = f"Duplicate {kind} name '{name}'. Each {kind} must have a unique name."
                    raise ValueError(msg)
                seen.add(name)
        return self

    @property
    def manifest_path(self) -> Path | None:
        if self.base_directory_path is None:
            return None
        return self.base_directory_path / MANIFEST_FILENAME

    def add_dependency(self, name: str, version: str) -> None:
        """Insert or overwrite a ``[dependencies]`` entry."""
        if self.dependencies is None:
            self.dependencies = {}
        self.dependencies[name] = version

    def save(self) -> Path:
        """Write the manifest to ``wapm.toml`` inside its base directory.

        Returns:
            The path that was written.

        Raises:
            OSError: If the file cannot be written or the manifest has no base directory.
        """
        from wapm.package.manifest.parser import serialize_manifest_to_toml  # noqa: PLC0415

        manifest_path = self.manifest_path
        if manifest_path is None:
            msg = "manifest has no base directory to save into"
            raise FileNotFoundError(msg)
        manifest_path.write_text(serialize_manifest_to_toml(self), encoding="utf-8")
        return manifest_path
