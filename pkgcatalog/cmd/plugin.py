# Copyright 2023 Lawrence Livermore National Security, LLC
# See the top-level LICENSE file for details.
#
# SPDX-License-Identifier: MIT
import click

from pkgcatalog.configmanager import ConfigManager
from pkgcatalog.plugin.manager import get_plugin_manager, plugin_hooks, plugin_short_name


def _blocked_plugins(config_manager: ConfigManager) -> list:
    blocked = config_manager.get("core", "disable_plugins", [])
    if isinstance(blocked, str):
        blocked = [blocked]
    return list(blocked)


@click.command(name="list")
def plugin_list_cmd():
    """Lists plugins."""
    pm = get_plugin_manager()
    click.echo("PLUGINS")
    for plugin in pm.get_plugins():
        click.echo(f"\t> name: {pm.get_name(plugin) or ''}")
        click.echo(f"\t  short name: {plugin_short_name(pm, plugin)}")
        click.echo(f"\t  hooks: {', '.join(plugin_hooks(pm, plugin))}\n")

    blocked = _blocked_plugins(ConfigManager())
    click.echo("\nDISABLED PLUGINS")
    if not blocked:
        click.echo("\tThere are no disabled plugins.")
    else:
        for disabled_plugin in blocked:
            click.echo(f"\tname: {disabled_plugin}")


@click.command(name="enable")
@click.argument("plugin_names", nargs=-1)
def plugin_enable_cmd(plugin_names):
    """Enables one or more plugins."""
    if not plugin_names:
        raise click.UsageError("At least one plugin name must be specified.")
    config_manager = ConfigManager()
    blocked = [p for p in _blocked_plugins(config_manager) if p not in plugin_names]
    config_manager.set("core", "disable_plugins", blocked)
    click.echo(f"Updated blocked plugins: {blocked}")


@click.command(name="disable")
@click.argument("plugin_names", nargs=-1)
def plugin_disable_cmd(plugin_names):
    """Disables one or more plugins by their registered name."""
    if not plugin_names:
        raise click.UsageError("At least one plugin name must be specified.")
    config_manager = ConfigManager()
    blocked = _blocked_plugins(config_manager)
    for plugin_name in plugin_names:
        if plugin_name not in blocked:
            blocked.append(plugin_name)
    config_manager.set("core", "disable_plugins", blocked)
    click.echo(f"Updated blocked plugins: {blocked}")
