import textwrap
from pathlib import Path

import pytest

from wapm.package.exceptions import CommandNotFoundError, InvalidCommandPackageError, LockFileError, ModuleForCommandDoesNotExistError
from wapm.package.lock_file import (
    LOCKFILE_VERSION,
    LockFile,
    LockfileModule,
    generate_lock_file,
    parse_lock_file,
    serialize_lock_file,
)
from wapm.package.lockfile_command import LockfileCommand
from wapm.package.manifest.parser import parse_wapm_toml
from wapm.package.manifest.schema import Abi
from wapm.package.manifest_packages import InstalledPackage, PackageKey

APP_TOML = textwrap.dedent("""\
    [package]
    name = "myapp"
    version = "2.0.0"
    description = "test"

    [dependencies]
    "left-pad" = "1.0.0"

    [[module]]
    name = "main"
    source = "target/main.wasm"
    abi = "wasi"

    [[command]]
    name = "run"
    module = "main"
    main_args = "--verbose"

    [[command]]
    name = "pad"
    module = "left-pad"
    package = "left-pad 1.0.0"
""")

LEFT_PAD_TOML = textwrap.dedent("""\
    [package]
    name = "left-pad"
    version = "1.0.0"
    description = "pads strings"

    [[module]]
    name = "left-pad"
    source = "left-pad.wasm"
""")


def _left_pad_installed(tmp_path: Path) -> InstalledPackage:
    return InstalledPackage(
        key=PackageKey.new_registry_package("left-pad", "1.0.0"),
        package_root=tmp_path / "wapm_packages" / "left-pad@1.0.0",
        download_url="https://registry.example.com/left-pad/1.0.0/download",
        manifest=parse_wapm_toml(LEFT_PAD_TOML),
    )


class TestLockFile:
    """Tests for the wapm.package.lock_file module."""

    # --- generate_lock_file ---

    def test_generate_local_and_dependency_modules(self, tmp_path: Path):
        lock = generate_lock_file(parse_wapm_toml(APP_TOML), [_left_pad_installed(tmp_path)])

        assert lock.lockfile_version == LOCKFILE_VERSION
        assert lock.modules == [
            LockfileModule(
                name="main",
                package_name="myapp",
                package_version="2.0.0",
                source="target/main.wasm",
                resolved="target/main.wasm",
                abi=Abi.WASI,
            ),
            LockfileModule(
                name="left-pad",
                package_name="left-pad",
                package_version="1.0.0",
                source="registry+left-pad",
                resolved="https://registry.example.com/left-pad/1.0.0/download",
            ),
        ]
        assert set(lock.commands) == {"run", "pad"}
        assert lock.commands["run"].package_name == "myapp"
        assert lock.commands["pad"].package_name == "left-pad"
        assert all(command.is_top_level_dependency for command in lock.commands.values())

    def test_generate_without_installed_packages(self):
        lock = generate_lock_file(parse_wapm_toml(APP_TOML))
        assert [module.name for module in lock.modules] == ["main"]
        assert set(lock.commands) == {"run", "pad"}

    def test_generate_installed_package_without_manifest(self, tmp_path: Path):
        installed = _left_pad_installed(tmp_path).model_copy(update={"manifest": None})
        lock = generate_lock_file(parse_wapm_toml(APP_TOML), [installed])
        assert [module.name for module in lock.modules] == ["main"]

    def test_generate_command_from_unknown_package(self):
        content = APP_TOML.replace('package = "left-pad 1.0.0"', 'package = "right-pad 3.0.0"')
        with pytest.raises(LockFileError, match="right-pad 3.0.0"):
            generate_lock_file(parse_wapm_toml(content))

    def test_generate_command_from_resolved_transitive_package(self, tmp_path: Path):
        content = APP_TOML.replace('package = "left-pad 1.0.0"', 'package = "string-utils 0.3.0"')
        transitive = InstalledPackage(
            key=PackageKey.new_registry_package("string-utils", "0.3.0"),
            package_root=tmp_path / "wapm_packages" / "string-utils@0.3.0",
            download_url="https://registry.example.com/string-utils/0.3.0/download",
        )
        lock = generate_lock_file(parse_wapm_toml(content), [transitive])
        assert lock.commands["pad"].package_name == "string-utils"

    def test_generate_malformed_command_package(self):
        content = APP_TOML.replace('package = "left-pad 1.0.0"', 'package = "left-pad"')
        with pytest.raises(InvalidCommandPackageError):
            generate_lock_file(parse_wapm_toml(content))

    def test_generate_non_string_dependency(self):
        content = APP_TOML.replace('"left-pad" = "1.0.0"', '"left-pad" = 1')
        with pytest.raises(LockFileError, match="Dependency version must be a string"):
            generate_lock_file(parse_wapm_toml(content))

    # --- command lookup ---

    def test_get_module_for_command(self, tmp_path: Path):
        lock = generate_lock_file(parse_wapm_toml(APP_TOML), [_left_pad_installed(tmp_path)])

        module = lock.get_module_for_command("pad")

        assert module.package_name == "left-pad"
        assert module.resolved == "https://registry.example.com/left-pad/1.0.0/download"

    def test_get_unknown_command(self):
        with pytest.raises(CommandNotFoundError, match="'deploy' is not in wapm.lock"):
            LockFile().get_command("deploy")

    def test_module_for_command_missing(self):
        lock = generate_lock_file(parse_wapm_toml(APP_TOML))
        with pytest.raises(ModuleForCommandDoesNotExistError, match="Did you modify the wapm.lock"):
            lock.get_module_for_command("pad")

    # --- parse / serialize ---

    def test_parse_empty(self):
        assert parse_lock_file("   \n") == LockFile()

    def test_roundtrip(self, tmp_path: Path):
        lock = generate_lock_file(parse_wapm_toml(APP_TOML), [_left_pad_installed(tmp_path)])

        parsed = parse_lock_file(serialize_lock_file(lock))

        assert parsed.commands == lock.commands
        assert sorted(parsed.modules, key=lambda module: module.name) == sorted(lock.modules, key=lambda module: module.name)

    def test_serialize_is_sorted_and_uses_record_field_names(self, tmp_path: Path):
        lock = generate_lock_file(parse_wapm_toml(APP_TOML), [_left_pad_installed(tmp_path)])

        content = serialize_lock_file(lock)

        assert content.index("[command.pad]") < content.index("[command.run]")
        assert content.index('package_name = "left-pad"') < content.index('package_name = "myapp"')
        assert "is_top_level_dependency = true" in content
        assert 'main_args = "--verbose"' in content

    def test_parse_command_table(self):
        content = textwrap.dedent("""\
            lockfile_version = "1"

            [command.run]
            package_name = "myapp"
            package_version = "2.0.0"
            module = "main"
            is_top_level_dependency = true
        """)
        lock = parse_lock_file(content)
        assert lock.commands == {
            "run": LockfileCommand(
                name="run",
                package_name="myapp",
                package_version="2.0.0",
                module="main",
                is_top_level_dependency=True,
            )
        }

    def test_parse_bad_toml_syntax(self):
        with pytest.raises(LockFileError, match="Invalid TOML"):
            parse_lock_file("[broken\ntoml")

    def test_parse_command_not_a_table(self):
        with pytest.raises(LockFileError, match="must be a table"):
            parse_lock_file('[command]\nrun = "main"\n')

    def test_parse_missing_field(self):
        content = '[command.run]\npackage_name = "myapp"\nmodule = "main"\nis_top_level_dependency = true\n'
        with pytest.raises(LockFileError, match="Invalid lock file"):
            parse_lock_file(content)

    def test_parse_command_name_mismatch(self):
        content = textwrap.dedent("""\
            [command.a]
            name = "b"
            package_name = "myapp"
            package_version = "2.0.0"
            module = "main"
            is_top_level_dependency = true
        """)
        with pytest.raises(LockFileError, match=r"\[command.a\] has mismatched name 'b'"):
            parse_lock_file(content)
