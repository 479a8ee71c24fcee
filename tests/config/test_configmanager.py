# Copyright 2023 Lawrence Livermore National Security, LLC
# See the top-level LICENSE file for details.
#
# SPDX-License-Identifier: MIT
import os
import platform
from pathlib import Path

import pytest

from pkgcatalog.configmanager import ConfigManager


@pytest.fixture(name="config_manager")
def fixture_config_manager(tmp_path):
    config_manager = ConfigManager(app_name="testapp", config_dir=tmp_path)
    yield config_manager
    ConfigManager.delete_instance("testapp")


def test_singleton(config_manager):
    config_manager2 = ConfigManager(app_name="testapp")
    assert config_manager is config_manager2


def test_set_and_get(config_manager):
    config_manager.set("core", "output_format", "spdx")
    assert config_manager.get("core", "output_format") == "spdx"


def test_set_and_getitem(config_manager):
    config_manager.set("core", "scope", "all-layers")
    assert config_manager["core"]["scope"] == "all-layers"
    assert config_manager["nosuch"] is None


def test_builtin_defaults(config_manager):
    assert config_manager.get("core", "output_format") == "native"
    assert config_manager.get("core", "scope") == "squashed"
    assert config_manager.get("core", "parallelism") == 4
    assert config_manager.get("image", "enable_docker_daemon") is True
    assert config_manager.get("nosuch", "option") is None


def test_get_with_fallback(config_manager):
    assert config_manager.get("core", "missing", fallback="light") == "light"
    # a value from the file takes precedence over the fallback
    config_manager.set("core", "scope", "all-layers")
    assert config_manager.get("core", "scope", fallback="squashed") == "all-layers"


def test_unset(config_manager):
    config_manager.set("core", "parallelism", 2)
    assert config_manager.unset("core", "parallelism")
    assert config_manager.get("core", "parallelism") == 4
    assert not config_manager.unset("core", "parallelism")


def test_config_file_persisted(config_manager):
    config_manager.set("core", "disable_plugins", ["pkgcatalog.catalogers.npm"])
    assert config_manager.config_file_path.exists()
    assert "disable_plugins" in config_manager.config_file_path.read_text()

    # a fresh instance reads the values back from the file
    ConfigManager.delete_instance("testapp")
    reloaded = ConfigManager(app_name="testapp", config_dir=config_manager.config_file_path.parents[1])
    assert reloaded.get("core", "disable_plugins") == ["pkgcatalog.catalogers.npm"]


@pytest.mark.skipif(platform.system() == "Windows", reason="Test specific to Unix-like platforms")
def test_unix_config_path():
    config_manager = ConfigManager(app_name="testapp")
    config_path = config_manager._get_config_file_path()  # pylint: disable=protected-access
    expected_config_dir = Path(os.getenv("XDG_CONFIG_HOME", str(Path("~/.config").expanduser())))
    assert expected_config_dir in config_path.parents
    assert config_path.parts[-2:] == ("testapp", "config.toml")
    config_manager.delete_instance("testapp")
