from pydantic import BaseModel, ConfigDict

from wapm._compat import Self
from wapm.package.exceptions import InvalidCommandPackageError
from wapm.package.manifest.schema import Command


def split_command_package(package_string: str) -> tuple[str, str]:
    """Split a command's ``package`` field into ``(name, version)``.

    Raises:
        InvalidCommandPackageError: Unless the string is exactly two non-empty
            tokens separated by a single space.
    """
    tokens = package_string.split(" ")
    if len(tokens) != 2 or not all(tokens):
        msg = f"Invalid package name '{package_string}'. Expected '<name> <version>' (e.g. 'left-pad 1.0.0')."
        raise InvalidCommandPackageError(msg)
    return tokens[0], tokens[1]


class LockfileCommand(BaseModel):
    """Lock file record binding a command name to the package and module that provide it."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    name: str
    package_name: str
    package_version: str
    module: str
    is_top_level_dependency: bool
    main_args: str | None = None

    @classmethod
    def from_command(cls, local_package_name: str, local_package_version: str, command: Command) -> Self:
        """Derive the lock record for a manifest command.

        A command without ``package`` is served by a module of the local
        package; otherwise ``package`` names the dependency that ships it.

        Raises:
            InvalidCommandPackageError: If ``command.package`` is malformed.
        """
        if command.package is not None:
            package_name, package_version = split_command_package(command.package)
        else:
            package_name, package_version = local_package_name, local_package_version

        return cls(
            name=command.name,
            package_name=package_name,
            package_version=package_version,
            module=command.module,
            is_top_level_dependency=True,
            main_args=command.main_args,
        )


def build_lockfile_command(local_package_name: str, local_package_version: str, command: Command) -> LockfileCommand:
    return LockfileCommand.from_command(local_package_name, local_package_version, command)
