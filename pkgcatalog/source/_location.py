# Copyright 2023 Lawrence Livermore National Security, LLC
# See the top-level LICENSE file for details.
#
# SPDX-License-Identifier: MIT
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Iterable, Iterator, List, Optional, Tuple

from dataclasses_json import config, dataclass_json


@dataclass_json
@dataclass(frozen=True)
class Location:
    """A file found through a FileResolver.

    `real_path` is the path of the file that holds the content. `virtual_path` is the
    path the file was requested through when it differs (e.g. via a symlink); it only
    helps disambiguate findings and is excluded from equality and serialization.
    `layer_id` is the digest of the image layer the file came from, if any.
    """

    real_path: str = field(metadata=config(field_name="path"))
    virtual_path: Optional[str] = field(
        default=None, compare=False, metadata=config(exclude=lambda _: True)
    )
    layer_id: Optional[str] = field(
        default=None, metadata=config(field_name="layerID", exclude=lambda v: v is None)
    )

    @property
    def coordinates(self) -> Tuple[str, Optional[str]]:
        return (self.real_path, self.layer_id)

    def sort_key(self) -> Tuple[str, str]:
        return (self.real_path, self.layer_id or "")

    def __str__(self) -> str:
        s = self.real_path
        if self.virtual_path and self.virtual_path != self.real_path:
            s = f"{self.virtual_path} -> {s}"
        if self.layer_id:
            s += f" (layer={self.layer_id})"
        return s


class LocationSet:
    """Insertion-ordered set of locations; equality ignores order."""

    def __init__(self, locations: Optional[Iterable[Location]] = None) -> None:
        self._locations: Dict[Tuple[str, Optional[str]], Location] = {}
        if locations:
            self.update(locations)

    def add(self, location: Location) -> bool:
        """Add a location, returning True if it was not already present."""
        if location.coordinates in self._locations:
            return False
        self._locations[location.coordinates] = location
        return True

    def update(self, locations: Iterable[Location]) -> int:
        return sum(1 for loc in locations if self.add(loc))

    def sorted(self) -> List[Location]:
        return sorted(self._locations.values(), key=Location.sort_key)

    def paths(self) -> List[str]:
        return [loc.real_path for loc in self]

    def copy(self) -> LocationSet:
        return LocationSet(self)

    def __contains__(self, location: object) -> bool:
        if not isinstance(location, Location):
            return False
        return location.coordinates in self._locations

    def __iter__(self) -> Iterator[Location]:
        return iter(list(self._locations.values()))

    def __len__(self) -> int:
        return len(self._locations)

    def __eq__(self, other: object) -> bool:
        if isinstance(other, LocationSet):
            return set(self._locations) == set(other._locations)
        return NotImplemented

    def __repr__(self) -> str:
        return f"LocationSet({list(self._locations.values())!r})"
