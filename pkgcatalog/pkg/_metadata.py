# Copyright 2023 Lawrence Livermore National Security, LLC
# See the top-level LICENSE file for details.
#
# SPDX-License-Identifier: MIT
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Type

from dataclasses_json import LetterCase, dataclass_json


class MetadataType(str, Enum):
    PYTHON_PACKAGE = "PythonPackageMetadata"
    DPKG = "DpkgMetadata"
    APK = "ApkMetadata"
    NPM_PACKAGE_JSON = "NpmPackageJsonMetadata"


@dataclass_json(letter_case=LetterCase.CAMEL)
@dataclass
class Digest:
    algorithm: str
    value: str


@dataclass_json(letter_case=LetterCase.CAMEL)
@dataclass
class FileRecord:
    path: str
    digest: Optional[Digest] = None
    size: Optional[int] = None


class _FileOwner:
    """Mixin for metadata that lists the files installed by the package."""

    files: List[FileRecord]

    def owned_files(self) -> List[str]:
        return sorted({record.path for record in self.files if record.path})


# pylint: disable=too-many-instance-attributes
@dataclass_json(letter_case=LetterCase.CAMEL)
@dataclass
class PythonPackageMetadata(_FileOwner):
    name: str
    version: str
    license: str = ""
    author: str = ""
    author_email: str = ""
    platform: str = ""
    site_packages_root_path: str = ""
    top_level_packages: List[str] = field(default_factory=list)
    files: List[FileRecord] = field(default_factory=list)


@dataclass_json(letter_case=LetterCase.CAMEL)
@dataclass
class DpkgMetadata(_FileOwner):
    package: str
    version: str
    source: str = ""
    source_version: str = ""
    architecture: str = ""
    maintainer: str = ""
    installed_size: int = 0
    files: List[FileRecord] = field(default_factory=list)


@dataclass_json(letter_case=LetterCase.CAMEL)
@dataclass
class ApkMetadata(_FileOwner):
    package: str
    version: str
    origin_package: str = ""
    maintainer: str = ""
    license: str = ""
    architecture: str = ""
    url: str = ""
    description: str = ""
    size: int = 0
    installed_size: int = 0
    pull_dependencies: List[str] = field(default_factory=list)
    files: List[FileRecord] = field(default_factory=list)


@dataclass_json(letter_case=LetterCase.CAMEL)
@dataclass
class NpmPackageJsonMetadata:
    name: str
    version: str
    author: str = ""
    homepage: str = ""
    description: str = ""
    url: str = ""
    private: bool = False


METADATA_TYPES: Dict[MetadataType, Type] = {
    MetadataType.PYTHON_PACKAGE: PythonPackageMetadata,
    MetadataType.DPKG: DpkgMetadata,
    MetadataType.APK: ApkMetadata,
    MetadataType.NPM_PACKAGE_JSON: NpmPackageJsonMetadata,
}


def metadata_type_of(metadata: Any) -> Optional[MetadataType]:
    for metadata_type, cls in METADATA_TYPES.items():
        if isinstance(metadata, cls):
            return metadata_type
    return None


def metadata_from_dict(metadata_type: MetadataType, data: Dict[str, Any]) -> Any:
    """Rebuild a metadata payload of the given type from its serialized form."""
    cls = METADATA_TYPES[MetadataType(metadata_type)]
    return cls.from_dict(data)


def owned_files(metadata: Any) -> List[str]:
    if isinstance(metadata, _FileOwner):
        return metadata.owned_files()
    return []
