# Copyright 2023 Lawrence Livermore National Security, LLC
# See the top-level LICENSE file for details.
#
# SPDX-License-Identifier: MIT

from typing import Optional

import pkgcatalog.plugin
from pkgcatalog.document import Document
from pkgcatalog.formats.native import to_native


@pkgcatalog.plugin.hookimpl
def write_document(document: Document, outfile) -> None:
    # outfile is a file pointer, not a file name
    outfile.write(to_native(document).to_json(indent=2))
    outfile.write("\n")


@pkgcatalog.plugin.hookimpl
def short_name() -> Optional[str]:
    return "native"
