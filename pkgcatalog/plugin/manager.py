# Copyright 2023 Lawrence Livermore National Security, LLC
# See the top-level LICENSE file for details.
#
# SPDX-License-Identifier: MIT
import sys
from typing import Any, List, Optional

import pluggy
from loguru import logger

from pkgcatalog.configmanager import ConfigManager
from pkgcatalog.plugin import hookspecs


def _register_plugins(pm: pluggy.PluginManager) -> None:
    # pylint: disable=import-outside-toplevel
    # don't want all these imports as part of the file-level scope
    from pkgcatalog.catalogers import apk, dpkg, npm, python_package
    from pkgcatalog.distro import os_release
    from pkgcatalog.image_providers import docker_daemon
    from pkgcatalog.input_readers import native_reader, spdx_reader
    from pkgcatalog.output import csv_writer, cyclonedx_writer, native_writer, spdx_writer
    from pkgcatalog.relationships import ownership

    # analyzer results are merged in this order
    internal_plugins = (
        python_package,
        dpkg,
        apk,
        npm,
        os_release,
        docker_daemon,
        ownership,
        native_writer,
        spdx_writer,
        cyclonedx_writer,
        csv_writer,
        native_reader,
        spdx_reader,
    )
    for plugin in internal_plugins:
        pm.register(plugin)


def set_blocked_plugins(pm: pluggy.PluginManager) -> None:
    """Unregisters and blocks every plugin named in the `core.disable_plugins` setting."""
    blocked = ConfigManager().get("core", "disable_plugins", [])
    if isinstance(blocked, str):
        blocked = [blocked]
    for plugin_name in blocked:
        if pm.is_blocked(plugin_name):
            logger.info(f"Plugin '{plugin_name}' is already disabled.")
            continue
        plugin = pm.unregister(name=plugin_name)
        if plugin is None:
            logger.info(f"Disabled plugin '{plugin_name}' not found.")
            continue
        pm.set_blocked(plugin_name)


def get_plugin_manager() -> pluggy.PluginManager:
    pm = pluggy.PluginManager("pkgcatalog")
    pm.add_hookspecs(hookspecs)
    pm.load_setuptools_entrypoints("pkgcatalog")
    _register_plugins(pm)
    set_blocked_plugins(pm)
    pm.check_pending()
    return pm


def is_hook_implemented(pm: pluggy.PluginManager, plugin: object, hook_name: str) -> bool:
    hook_callers = pm.get_hookcallers(plugin)
    if hook_callers:
        for hook_caller in hook_callers:
            if hook_caller.name == hook_name:
                return True
    return False


def plugin_short_name(pm: pluggy.PluginManager, plugin: object) -> Optional[str]:
    if is_hook_implemented(pm, plugin, "short_name"):
        return plugin.short_name()
    return None


def plugin_hooks(pm: pluggy.PluginManager, plugin: object) -> List[str]:
    """Names of the hooks a plugin implements, excluding the naming and init hooks."""
    callers = pm.get_hookcallers(plugin) or []
    return sorted(c.name for c in callers if c.name not in ("short_name", "init_hook"))


def find_io_plugin(pm: pluggy.PluginManager, io_format: str, function_name: str) -> Optional[Any]:
    """Look up the reader or writer plugin for a document format.

    `io_format` is matched against the registered plugin name first (e.g.
    `pkgcatalog.output.spdx_writer`), then case-insensitively against each plugin's
    `short_name`. Only plugins that define `function_name` are considered.

    Raises:
        SystemExit: If no plugin handles the format; the error is logged first.
    """
    found_plugin = pm.get_plugin(io_format)
    if found_plugin is not None and not hasattr(found_plugin, function_name):
        found_plugin = None

    if found_plugin is None:
        for plugin in pm.get_plugins():
            name = plugin_short_name(pm, plugin)
            if name and name.lower() == io_format.lower() and hasattr(plugin, function_name):
                found_plugin = plugin
                break

    if found_plugin is None:
        logger.error(f'No "{function_name}" plugin for format "{io_format}" found')
        sys.exit(1)

    return found_plugin


def call_init_hooks(
    pm: pluggy.PluginManager, hook_filter: List[str] = None, command_name: str = None
) -> None:
    """
    Call the initialization hook for plugins that implement it.

    Args:
        pm (pluggy.PluginManager): The plugin manager instance.
        hook_filter (List[str]): Only initialize plugins implementing one of these hooks.
        command_name (str): The name of the command invoking the initialization.
    """
    for plugin in pm.get_plugins():
        if is_hook_implemented(pm, plugin, "init_hook"):
            if hook_filter:
                if not any(is_hook_implemented(pm, plugin, hook) for hook in hook_filter):
                    continue
            plugin.init_hook(command_name=command_name)
