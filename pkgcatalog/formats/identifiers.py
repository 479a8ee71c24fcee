# Copyright 2023 Lawrence Livermore National Security, LLC
# See the top-level LICENSE file for details.
#
# SPDX-License-Identifier: MIT
import re

from pkgcatalog.pkg import Package
from pkgcatalog.source import Scheme, SourceMetadata

# SPDX element ids may only contain letters, numbers, '.' and '-'
_INVALID_ID_CHARS = re.compile(r"[^A-Za-z0-9.\-]+")
_DASH_RUNS = re.compile(r"-{2,}")
# the content id that ends every external package id
_PACKAGE_ID_SUFFIX = re.compile(r"-([0-9a-f]{16})$")


def sanitize_id(value: str) -> str:
    return _DASH_RUNS.sub("-", _INVALID_ID_CHARS.sub("-", value)).strip("-")


def external_package_id(package: Package) -> str:
    """Identifier for a package in third-party formats: `<type>-<name>-<version>-<id>`."""
    return sanitize_id(f"{package.type.value}-{package.name}-{package.version}-{package.id}")


def package_id_from_external(external_id: str) -> str:
    """Recover the package id from an identifier written by `external_package_id`.

    Returns an empty string if the identifier does not end in a package id.
    """
    match = _PACKAGE_ID_SUFFIX.search(external_id)
    return match.group(1) if match else ""


def external_source_id(source: SourceMetadata) -> str:
    kind = "Directory" if source.scheme == Scheme.DIRECTORY else "Image"
    return sanitize_id(f"DocumentRoot-{kind}-{source.name}")
