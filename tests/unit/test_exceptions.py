import pytest

from wapm.package.exceptions import (
    CommandNotFoundError,
    DependencyVersionError,
    InvalidCommandPackageError,
    LockFileError,
    LockfileCommandError,
    ManifestError,
    ManifestIOError,
    ManifestParseError,
    ManifestSaveError,
    ManifestValidationError,
    ModuleForCommandDoesNotExistError,
    WapmPackageError,
)


class TestExceptions:
    """Tests for the wapm.package.exceptions hierarchy."""

    def test_base_exception_message(self):
        exc = WapmPackageError("something went wrong")
        assert exc.message == "something went wrong"
        assert str(exc) == "something went wrong"

    def test_base_exception_default_message(self):
        exc = WapmPackageError()
        assert exc.message == ""

    @pytest.mark.parametrize(
        ("child_cls", "parent_cls"),
        [
            (ManifestError, WapmPackageError),
            (ManifestParseError, ManifestError),
            (ManifestValidationError, ManifestError),
            (ManifestIOError, ManifestError),
            (ManifestSaveError, ManifestError),
            (DependencyVersionError, ManifestError),
            (LockFileError, WapmPackageError),
            (LockfileCommandError, LockFileError),
            (InvalidCommandPackageError, LockfileCommandError),
            (CommandNotFoundError, LockfileCommandError),
            (ModuleForCommandDoesNotExistError, LockfileCommandError),
        ],
    )
    def test_subclass_hierarchy(self, child_cls: type, parent_cls: type):
        """Each concrete exception is a subclass of its expected parent."""
        exc = child_cls("test")
        assert isinstance(exc, parent_cls)

    def test_catching_parent_catches_child(self):
        """Catching a parent class should also catch subclass exceptions."""
        msg_save = "save failed"
        with pytest.raises(ManifestError):
            raise ManifestSaveError(msg_save)

        msg_stale = "stale lock file"
        with pytest.raises(WapmPackageError):
            raise ModuleForCommandDoesNotExistError(msg_stale)
