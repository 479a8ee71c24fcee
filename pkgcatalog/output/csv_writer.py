# Copyright 2023 Lawrence Livermore National Security, LLC
# See the top-level LICENSE file for details.
#
# SPDX-License-Identifier: MIT
import csv
import os
from typing import List, Optional

import pkgcatalog.plugin
from pkgcatalog.document import Document
from pkgcatalog.pkg import Package, package_url

default_fields = [
    "Path",
    "Layer",
    "Name",
    "Version",
    "Type",
    "Licenses",
    "PURL",
    "FoundBy",
]


@pkgcatalog.plugin.hookimpl
def write_document(document: Document, outfile) -> None:
    fields = default_fields

    # equivalent to `excel` dialect, other than lineterminator
    writer = csv.DictWriter(outfile, fieldnames=fields, lineterminator=os.linesep)
    writer.writeheader()
    for package in document.packages:
        write_package_entry(writer, document, package, fields)


@pkgcatalog.plugin.hookimpl
def short_name() -> Optional[str]:
    return "csv"


def write_package_entry(
    writer: csv.DictWriter, document: Document, package: Package, fields: List[str]
):
    values = {
        "Name": package.name,
        "Version": package.version,
        "Type": package.type.value,
        "Licenses": " AND ".join(package.licenses),
        "PURL": package_url(package, document.distro),
        "FoundBy": package.found_by,
    }
    # one row for every location the package was found at, or a single row without a path
    locations = package.locations.sorted() or [None]
    for location in locations:
        row = {f: values.get(f) for f in fields}
        if "Path" in fields:
            row["Path"] = location.real_path if location else None
        if "Layer" in fields:
            row["Layer"] = location.layer_id if location else None
        writer.writerow(row)
