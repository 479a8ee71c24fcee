# Copyright 2023 Lawrence Livermore National Security, LLC
# See the top-level LICENSE file for details.
#
# SPDX-License-Identifier: MIT
from ._catalog import Catalog
from ._metadata import (
    METADATA_TYPES,
    ApkMetadata,
    Digest,
    DpkgMetadata,
    FileRecord,
    MetadataType,
    NpmPackageJsonMetadata,
    PythonPackageMetadata,
    metadata_from_dict,
    metadata_type_of,
    owned_files,
)
from ._package import Package, PackageType
from ._purl import cpes, package_type_from_purl, package_url
from ._relationship import (
    DOCUMENT_ROOT_ID,
    Relationship,
    RelationshipType,
    normalize_relationships,
)

__all__ = [
    "DOCUMENT_ROOT_ID",
    "METADATA_TYPES",
    "ApkMetadata",
    "Catalog",
    "Digest",
    "DpkgMetadata",
    "FileRecord",
    "MetadataType",
    "NpmPackageJsonMetadata",
    "Package",
    "PackageType",
    "PythonPackageMetadata",
    "Relationship",
    "RelationshipType",
    "cpes",
    "metadata_from_dict",
    "metadata_type_of",
    "normalize_relationships",
    "owned_files",
    "package_type_from_purl",
    "package_url",
]
