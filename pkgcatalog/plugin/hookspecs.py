# Copyright 2023 Lawrence Livermore National Security, LLC
# See the top-level LICENSE file for details.
#
# SPDX-License-Identifier: MIT
# pylint: disable=unused-argument

import threading
from typing import List, Optional

from pluggy import HookspecMarker

from pkgcatalog.distro import Distro
from pkgcatalog.document import Document
from pkgcatalog.pkg import Catalog, Package, Relationship
from pkgcatalog.source import FileResolver

hookspec = HookspecMarker("pkgcatalog")


@hookspec
def catalog_packages(
    resolver: FileResolver, distro: Optional[Distro], cancel: threading.Event
) -> Optional[List[Package]]:
    """Find packages of one ecosystem through the given resolver.

    Each implementation is run on its own worker thread, so it must only read from the
    resolver and must not touch shared state. Raising an exception marks this analyzer
    as failed without affecting the others.

    Args:
        resolver (FileResolver): Read-only view of the source being cataloged.
        distro (Optional[Distro]): The Linux distribution found in the source, if any.
        cancel (threading.Event): Set when the operation has been cancelled; long running
            implementations should check it and stop early.

    Returns:
        Optional[List[Package]]: The packages found, or None if the analyzer has nothing to report.
    """


@hookspec(firstresult=True)
def identify_distro(resolver: FileResolver) -> Optional[Distro]:
    """Identify the Linux distribution of a source. The first non-None result wins.

    Args:
        resolver (FileResolver): Read-only view of the source being cataloged.

    Returns:
        Optional[Distro]: The distribution, or None if it could not be determined.
    """


@hookspec(firstresult=True)
def fetch_image(reference: str, destination: str, cancel: threading.Event) -> Optional[str]:
    """Save an image referenced by name (e.g. `alpine:3.18`) as a docker archive.

    Args:
        reference (str): The image reference given by the user.
        destination (str): Directory the archive should be written into.
        cancel (threading.Event): Set when the operation has been cancelled.

    Returns:
        Optional[str]: Path of the written archive, or None if this provider cannot fetch the image.
    """


@hookspec
def establish_relationships(catalog: Catalog, source_id: str) -> Optional[List[Relationship]]:
    """Derive relationships between the packages of a finished catalog.

    Args:
        catalog (Catalog): The complete, deduplicated catalog.
        source_id (str): The id of the source the catalog was built from.

    Returns:
        Optional[List[Relationship]]: Relationships to add to the document.
    """


@hookspec
def write_document(document: Document, outfile) -> None:
    """Writes the document to the given output file.

    Args:
        document (Document): The document to write.
        outfile: The text file handle to write to.
    """


@hookspec
# type: ignore[empty-body]
def read_document(infile) -> Document:
    """Reads a document from the given input file.

    Args:
        infile: The text file handle to read from.
    """


@hookspec
def short_name() -> Optional[str]:
    """A short name to register the hook as.

    Returns:
        Optional[str]: The name to register the hook with.
    """


@hookspec
def init_hook(command_name: Optional[str] = None) -> None:
    """Initialization hook for plugins, called before a command uses them.

    Args:
        command_name (Optional[str]): The name of the command invoking the initialization.
    """
