class WapmPackageError(Exception):
    """Base exception for all wapm package management errors."""

    def __init__(self, message: str = "") -> None:
        self.message = message
        super().__init__(message)


class ManifestError(WapmPackageError):
    pass


class ManifestParseError(ManifestError):
    pass


class ManifestValidationError(ManifestError):
    pass


class ManifestIOError(ManifestError):
    """Raised when wapm.toml exists but cannot be read, or the location is not usable."""


class ManifestSaveError(ManifestError):
    """Raised when an updated manifest cannot be written back to disk."""


class DependencyVersionError(ManifestError):
    """Raised when a declared dependency version is not a non-empty string."""


class LockFileError(WapmPackageError):
    """Raised when lock file parsing, generation, or I/O fails."""


class LockfileCommandError(LockFileError):
    pass


class InvalidCommandPackageError(LockfileCommandError):
    """Raised when a command's ``package`` field is not of the form ``"<name> <version>"``."""


class CommandNotFoundError(LockfileCommandError):
    """Raised when a command name is not recorded in the lock file."""


class ModuleForCommandDoesNotExistError(LockfileCommandError):
    """Raised when a locked command points at a module missing from the lock file."""
