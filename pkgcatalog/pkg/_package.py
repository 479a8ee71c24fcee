# Copyright 2023 Lawrence Livermore National Security, LLC
# See the top-level LICENSE file for details.
#
# SPDX-License-Identifier: MIT
from __future__ import annotations

import hashlib
import json
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Iterable, List, Optional, Tuple

from pkgcatalog.errors import DuplicateIdentityConflict
from pkgcatalog.source import Location, LocationSet

from ._metadata import MetadataType, metadata_type_of


class PackageType(str, Enum):
    PYTHON = "python"
    DEB = "deb"
    APK = "apk"
    NPM = "npm"
    UNKNOWN = "unknown"


# pylint: disable=too-many-instance-attributes
@dataclass(eq=False)
class Package:
    """A package observed by an analyzer.

    The `id` is derived from the normalized name, version, type and metadata, so two
    observations of the same logical package always get the same id no matter which
    analyzer produced them or in what order.
    """

    name: str
    version: str
    type: PackageType
    found_by: str = ""
    locations: LocationSet = field(default_factory=LocationSet)
    licenses: List[str] = field(default_factory=list)
    language: str = ""
    metadata_type: Optional[MetadataType] = None
    metadata: Optional[Any] = None
    id: str = field(init=False)

    def __post_init__(self):
        self.name = (self.name or "").strip()
        self.version = (self.version or "").strip()
        self.type = PackageType(self.type)
        if not isinstance(self.locations, LocationSet):
            self.locations = LocationSet(self.locations)
        self.licenses = sorted({lic.strip() for lic in self.licenses if lic and lic.strip()})
        if self.metadata_type is None and self.metadata is not None:
            self.metadata_type = metadata_type_of(self.metadata)
        if self.metadata_type is not None:
            self.metadata_type = MetadataType(self.metadata_type)
        self.id = self.fingerprint()

    def fingerprint(self) -> str:
        metadata = self.metadata.to_dict() if self.metadata is not None else None
        identity = [
            self.name,
            self.version,
            self.type.value,
            self.metadata_type.value if self.metadata_type else None,
            metadata,
        ]
        encoded = json.dumps(identity, sort_keys=True, separators=(",", ":"), default=str)
        return hashlib.sha256(encoded.encode("utf-8")).hexdigest()[:16]

    def sort_key(self) -> Tuple[str, str, str, str]:
        return (self.type.value, self.name, self.version, self.id)

    def add_locations(self, locations: Iterable[Location]) -> int:
        return self.locations.update(locations)

    def merge(self, other: Package) -> List[DuplicateIdentityConflict]:
        """Fold another observation of this package into this one.

        Locations are unioned; every other field keeps its current value. Descriptive
        fields that disagree are returned as conflicts for the caller to report.
        """
        if other.id != self.id:
            raise ValueError(f"cannot merge package {other.id} into {self.id}")
        self.add_locations(other.locations)
        conflicts = []
        for fld in ("licenses", "language"):
            kept, dropped = getattr(self, fld), getattr(other, fld)
            if dropped and kept != dropped:
                conflicts.append(DuplicateIdentityConflict(self.id, fld, kept, dropped))
        return conflicts

    def __str__(self) -> str:
        return f"Pkg(name={self.name!r} version={self.version!r} type={self.type.value!r} id={self.id})"
