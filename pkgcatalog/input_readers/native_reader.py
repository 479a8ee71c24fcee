# Copyright 2023 Lawrence Livermore National Security, LLC
# See the top-level LICENSE file for details.
#
# SPDX-License-Identifier: MIT
import json
from typing import Optional

import pkgcatalog.plugin
from pkgcatalog.document import Document
from pkgcatalog.errors import DecodeError
from pkgcatalog.formats.native import from_native


@pkgcatalog.plugin.hookimpl
def read_document(infile) -> Document:
    try:
        data = json.load(infile)
    except json.JSONDecodeError as e:
        raise DecodeError(f"invalid JSON: {e}") from e
    return from_native(data)


@pkgcatalog.plugin.hookimpl
def short_name() -> Optional[str]:
    return "native"
