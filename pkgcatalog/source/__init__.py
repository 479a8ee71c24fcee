# Copyright 2023 Lawrence Livermore National Security, LLC
# See the top-level LICENSE file for details.
#
# SPDX-License-Identifier: MIT
from ._image import FileNode, FileType, Image, Layer
from ._location import Location, LocationSet
from ._metadata import ImageMetadata, LayerMetadata, SourceMetadata
from ._resolver import (
    AllLayersResolver,
    DirectoryResolver,
    FileResolver,
    ImageSquashResolver,
    resolve_path,
)
from ._scheme import ImageSource, Scheme, Scope, detect_scheme
from ._source import Source, new_source

__all__ = [
    "AllLayersResolver",
    "DirectoryResolver",
    "FileNode",
    "FileResolver",
    "FileType",
    "Image",
    "ImageMetadata",
    "ImageSource",
    "ImageSquashResolver",
    "Layer",
    "LayerMetadata",
    "Location",
    "LocationSet",
    "Scheme",
    "Scope",
    "Source",
    "SourceMetadata",
    "detect_scheme",
    "new_source",
    "resolve_path",
]
