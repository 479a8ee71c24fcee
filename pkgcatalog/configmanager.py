# Copyright 2023 Lawrence Livermore National Security, LLC
# See the top-level LICENSE file for details.
#
# SPDX-License-Identifier: MIT
import os
import platform
from pathlib import Path
from threading import Lock
from typing import Any, Dict, Optional, Union

import tomlkit

# values used when the configuration file does not set an option
DEFAULTS: Dict[str, Dict[str, Any]] = {
    "core": {
        "output_format": "native",
        "scope": "squashed",
        "parallelism": 4,
        "disable_plugins": [],
    },
    "image": {
        "enable_docker_daemon": True,
    },
}


class ConfigManager:
    """Settings stored in a TOML file, one cached instance per application name.

    The file is read once when the instance is created; later changes made by other
    processes are not picked up until the instance is deleted and recreated.

    Attributes:
        app_name (str): The name of the application. (Default: 'pkgcatalog')
        config_dir (Optional[Path]): Directory override for the configuration file.
        config (tomlkit.TOMLDocument): The loaded document, formatting and comments preserved.
        config_file_path (Path): The path to the configuration file.
    """

    _initialized: bool = False
    _instances: Dict[str, "ConfigManager"] = {}
    _lock = Lock()

    def __new__(
        cls, app_name: str = "pkgcatalog", config_dir: Optional[Union[str, Path]] = None
    ) -> "ConfigManager":
        """Return the cached configuration manager for an application, creating it on first use.

        Args:
            app_name (str): The name of the application. (Default: 'pkgcatalog')
            config_dir (Optional[Union[str, Path]]): Directory override for the configuration
                file; the platform default is used when omitted.

        Returns:
            ConfigManager: The one instance for `app_name`.
        """
        with cls._lock:
            if app_name not in cls._instances:
                instance = super(ConfigManager, cls).__new__(cls)
                instance._initialized = False
                cls._instances[app_name] = instance
            return cls._instances[app_name]

    def __init__(
        self, app_name: str = "pkgcatalog", config_dir: Optional[Union[str, Path]] = None
    ) -> None:
        """Loads the configuration file the first time an instance is created.

        Later calls on the cached instance return immediately, so arguments given to them
        are ignored.

        Args:
            app_name (str): The name of the application. (Default: 'pkgcatalog')
            config_dir (Optional[Union[str, Path]]): Directory override for the configuration file.
        """
        if self._initialized:
            return
        self._initialized = True

        self.app_name = app_name
        self.config_dir = Path(config_dir) / app_name if config_dir else None
        self.config = tomlkit.document()
        self.config_file_path = self._get_config_file_path()
        self._write_lock = Lock()
        self._load_config()

    def _get_config_file_path(self) -> Path:
        """Determines the path of `config.toml` for this application.

        Returns:
            Path: `%APPDATA%/<app>/config.toml` on Windows, otherwise
            `$XDG_CONFIG_HOME/<app>/config.toml` (`~/.config` when unset).
        """
        if self.config_dir:
            config_dir = Path(self.config_dir)
        else:
            if platform.system() == "Windows":
                config_dir = Path(os.getenv("APPDATA", str(Path("~\\AppData\\Roaming"))))
            else:
                config_dir = Path(os.getenv("XDG_CONFIG_HOME", str(Path("~/.config"))))
            config_dir = config_dir / self.app_name
        return (config_dir / "config.toml").expanduser()

    def _load_config(self) -> None:
        if self.config_file_path.exists():
            with open(self.config_file_path, "r") as configfile:
                self.config = tomlkit.parse(configfile.read())

    def get(self, section: str, option: str, fallback: Optional[Any] = None) -> Any:
        """Gets a configuration value.

        Lookup order is the configuration file, then `fallback` when given, then the
        built-in default for the option.

        Args:
            section (str): The section within the configuration file.
            option (str): The option within the section.
            fallback (Optional[Any]): The value to use if the file does not set the option.

        Returns:
            Any: The configuration value.
        """
        value = self.config.get(section, {}).get(option)
        if value is not None:
            return value.unwrap() if hasattr(value, "unwrap") else value
        if fallback is not None:
            return fallback
        return DEFAULTS.get(section, {}).get(option)

    def set(self, section: str, option: str, value: Any) -> None:
        """Sets a configuration value and writes the file.

        Args:
            section (str): The section within the configuration file, e.g. `core`.
            option (str): The option within the section.
            value (Any): The value to store; it must be representable in TOML.
        """
        with self._write_lock:
            if section not in self.config:
                self.config[section] = tomlkit.table()
            self.config[section][option] = value
            self._save_config()

    def unset(self, section: str, option: str) -> bool:
        """Removes an option from the file, returning True if it was present."""
        with self._write_lock:
            table = self.config.get(section)
            if table is None or option not in table:
                return False
            del table[option]
            self._save_config()
            return True

    def _save_config(self) -> None:
        """Writes the configuration to the configuration file, creating its directory if needed."""
        if not self.config_file_path.exists():
            self.config_file_path.parent.mkdir(parents=True, exist_ok=True)
        with open(self.config_file_path, "w") as configfile:
            configfile.write(tomlkit.dumps(self.config))

    def __getitem__(self, key: str) -> Any:
        """Dictionary-style access to a whole section; None if the section is missing."""
        if key not in self.config:
            return None
        return self.config[key]

    @classmethod
    def delete_instance(cls, app_name: str) -> None:
        """Forgets the cached instance for the given application name.

        The next `ConfigManager(app_name)` reads the configuration file again.

        Args:
            app_name (str): The name of the application.
        """
        with cls._lock:
            if app_name in cls._instances:
                del cls._instances[app_name]
