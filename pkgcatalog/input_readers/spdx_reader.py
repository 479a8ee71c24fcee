# Copyright 2023 Lawrence Livermore National Security, LLC
# See the top-level LICENSE file for details.
#
# SPDX-License-Identifier: MIT
import json
from typing import Optional

from spdx_tools.spdx.parser.error import SPDXParsingError
from spdx_tools.spdx.parser.jsonlikedict.json_like_dict_parser import JsonLikeDictParser

import pkgcatalog.plugin
from pkgcatalog.document import Document
from pkgcatalog.errors import DecodeError, UnsupportedSchema
from pkgcatalog.formats.spdx import from_spdx


@pkgcatalog.plugin.hookimpl
def read_document(infile) -> Document:
    try:
        data = json.load(infile)
    except json.JSONDecodeError as e:
        raise DecodeError(f"invalid JSON: {e}") from e
    if not isinstance(data, dict):
        raise DecodeError("document is not a JSON object")
    # check the version before handing the document to the SPDX parser
    spdx_version = data.get("spdxVersion")
    if not isinstance(spdx_version, str) or not spdx_version.startswith("SPDX-2."):
        raise UnsupportedSchema(spdx_version, supported="SPDX-2.x")
    # not part of the SPDX model
    data.pop("$schema", None)
    try:
        spdx_doc = JsonLikeDictParser().parse(data)
    except SPDXParsingError as e:
        raise DecodeError("; ".join(e.get_messages()), field="spdx") from e
    return from_spdx(spdx_doc)


@pkgcatalog.plugin.hookimpl
def short_name() -> Optional[str]:
    return "spdx"
