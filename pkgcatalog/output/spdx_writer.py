# Copyright 2023 Lawrence Livermore National Security, LLC
# See the top-level LICENSE file for details.
#
# SPDX-License-Identifier: MIT
import json
from typing import Optional

from loguru import logger
from spdx_tools.spdx.jsonschema.document_converter import DocumentConverter
from spdx_tools.spdx.validation.document_validator import validate_full_spdx_document

import pkgcatalog.plugin
from pkgcatalog.document import Document
from pkgcatalog.formats.spdx import SPDX_SCHEMA_URL, to_spdx


@pkgcatalog.plugin.hookimpl
def write_document(document: Document, outfile) -> None:
    """Writes the document as SPDX 2.3 JSON.

    The SPDX document is validated first; problems are logged as warnings and the
    document is written regardless, so that one odd package does not lose the whole
    result. The output names the SPDX JSON schema in its `$schema` key.

    Args:
        document (Document): The document to write.
        outfile: The output file handle to write to.
    """
    spdx_doc = to_spdx(document)
    for message in validate_full_spdx_document(spdx_doc):
        logger.warning(f"SPDX validation: {message.validation_message}")
    spdx_json = {"$schema": SPDX_SCHEMA_URL}
    spdx_json.update(DocumentConverter().convert(spdx_doc))
    json.dump(spdx_json, outfile, indent=4)
    outfile.write("\n")


@pkgcatalog.plugin.hookimpl
def short_name() -> Optional[str]:
    return "spdx"
