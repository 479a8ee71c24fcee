# Copyright 2023 Lawrence Livermore National Security, LLC
# See the top-level LICENSE file for details.
#
# SPDX-License-Identifier: MIT
import sys

import click
from loguru import logger

from pkgcatalog.errors import CatalogError
from pkgcatalog.plugin.manager import find_io_plugin, get_plugin_manager


@click.command("convert")
@click.argument("input_file", type=click.File("r"), required=True)
@click.option("-i", "--input-format", default="native", help="Format of INPUT_FILE")
@click.option("-o", "--output", "output_format", required=True, help="Format to convert to")
@click.option(
    "--file",
    "outfile",
    type=click.File("w"),
    default="-",
    help="Write the document to a file instead of stdout",
)
def convert(input_file, input_format: str, output_format: str, outfile):
    """Convert a document in one format (native by default) to another."""
    pm = get_plugin_manager()
    input_reader = find_io_plugin(pm, input_format, "read_document")
    output_writer = find_io_plugin(pm, output_format, "write_document")
    try:
        document = input_reader.read_document(infile=input_file)
    except CatalogError as e:
        logger.error(str(e))
        sys.exit(1)
    output_writer.write_document(document=document, outfile=outfile)
