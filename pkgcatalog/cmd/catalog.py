# Copyright 2023 Lawrence Livermore National Security, LLC
# See the top-level LICENSE file for details.
#
# SPDX-License-Identifier: MIT
import sys

import click
from loguru import logger

from pkgcatalog.catalogers import create_document
from pkgcatalog.configmanager import ConfigManager
from pkgcatalog.errors import CatalogError, DanglingRelationshipError
from pkgcatalog.plugin.manager import call_init_hooks, find_io_plugin, get_plugin_manager


def get_default_from_config(option: str):
    """Returns a callable that reads a `core` option when click needs the default."""
    return lambda: ConfigManager().get("core", option)


@click.command("catalog")
@click.argument("source", required=True)
@click.option(
    "-o",
    "--output",
    "output_format",
    default=get_default_from_config("output_format"),
    help="Output format (native, spdx, cyclonedx, csv, or any plugin short name)",
)
@click.option(
    "--scope",
    type=click.Choice(["squashed", "all-layers"], case_sensitive=False),
    default=get_default_from_config("scope"),
    help="Which image layers to catalog; ignored for directories",
)
@click.option(
    "--file",
    "outfile",
    type=click.File("w"),
    default="-",
    help="Write the document to a file instead of stdout",
)
@click.option(
    "--parallelism",
    type=click.IntRange(min=1),
    default=None,
    help="Number of analyzers to run at once",
)
def catalog(source: str, output_format: str, scope: str, outfile, parallelism):
    """Catalog the packages in SOURCE and write a document describing them.

    SOURCE is a directory, a `docker save` archive, or an image reference, optionally
    prefixed with a scheme such as dir:, docker-archive: or docker:.
    """
    pm = get_plugin_manager()
    call_init_hooks(pm, hook_filter=["catalog_packages", "identify_distro"], command_name="catalog")
    output_writer = find_io_plugin(pm, output_format, "write_document")

    try:
        document, result = create_document(pm, source, scope=scope, parallelism=parallelism)
    except (CatalogError, DanglingRelationshipError) as e:
        logger.error(str(e))
        sys.exit(1)

    if result.warnings:
        logger.warning(f"{len(result.warnings)} analyzers failed; the document may be incomplete")
    if result.catalog.conflicts:
        logger.warning(f"{len(result.catalog.conflicts)} duplicate package conflicts were resolved")
    output_writer.write_document(document=document, outfile=outfile)
