# Copyright 2023 Lawrence Livermore National Security, LLC
# See the top-level LICENSE file for details.
#
# SPDX-License-Identifier: MIT
import sys

import click
from loguru import logger

from pkgcatalog.cmd.catalog import catalog
from pkgcatalog.cmd.config import config
from pkgcatalog.cmd.convert import convert
from pkgcatalog.cmd.plugin import plugin_disable_cmd, plugin_enable_cmd, plugin_list_cmd
from pkgcatalog.document import Descriptor


@click.group()
@click.version_option(
    Descriptor.current().version,
    "--version",
    "-v",
    message="%(version)s",
)
@click.option(
    "--log-level",
    type=click.Choice(
        ["TRACE", "DEBUG", "INFO", "SUCCESS", "WARNING", "ERROR", "CRITICAL"],
        case_sensitive=False,
    ),
    default="INFO",
)
def main(log_level="INFO"):
    # Can't change the logging level; need to remove and add a new logger with the desired log level
    logger.remove()
    logger.add(sys.stderr, level=log_level.upper())


@click.command("version")
def version():
    """Print version information."""
    click.echo(Descriptor.current().version)


@main.group("plugin")
def plugin():
    """Manage plugins."""


main.add_command(catalog)
main.add_command(convert)
main.add_command(config)
main.add_command(version)

plugin.add_command(plugin_list_cmd)
plugin.add_command(plugin_enable_cmd)
plugin.add_command(plugin_disable_cmd)


if __name__ == "__main__":
    main()
