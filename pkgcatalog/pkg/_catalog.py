# Copyright 2023 Lawrence Livermore National Security, LLC
# See the top-level LICENSE file for details.
#
# SPDX-License-Identifier: MIT
from __future__ import annotations

import threading
from collections import defaultdict
from typing import Dict, Iterable, Iterator, List, Optional, Set

from loguru import logger

from pkgcatalog.errors import DuplicateIdentityConflict

from ._package import Package, PackageType


class Catalog:
    """Deduplicated set of packages keyed by package id.

    `add` may be called from several threads; it is the single point where identities
    are resolved. Enumeration is always in `Package.sort_key` order.
    """

    def __init__(self, packages: Optional[Iterable[Package]] = None) -> None:
        self._lock = threading.Lock()
        self._by_id: Dict[str, Package] = {}
        self._ids_by_path: Dict[str, Set[str]] = defaultdict(set)
        self.conflicts: List[DuplicateIdentityConflict] = []
        for p in packages or []:
            self.add(p)

    def add(self, package: Package) -> Package:
        """Insert a package, or merge it into the stored package with the same id.

        Returns:
            Package: The catalog entry the observation ended up in.
        """
        with self._lock:
            existing = self._by_id.get(package.id)
            if existing is None:
                self._by_id[package.id] = package
                stored = package
            else:
                stored = existing
                for conflict in existing.merge(package):
                    logger.warning(f"duplicate package identity: {conflict}")
                    self.conflicts.append(conflict)
            for location in package.locations:
                self._ids_by_path[location.real_path].add(package.id)
            return stored

    def package(self, package_id: str) -> Optional[Package]:
        return self._by_id.get(package_id)

    def packages_by_path(self, path: str) -> List[Package]:
        """Return the packages evidenced by a file at the given (real) path."""
        with self._lock:
            ids = list(self._ids_by_path.get(path, ()))
        return sorted((self._by_id[i] for i in ids), key=Package.sort_key)

    def sorted(self, *types: PackageType) -> List[Package]:
        with self._lock:
            packages = list(self._by_id.values())
        if types:
            wanted = {PackageType(t) for t in types}
            packages = [p for p in packages if p.type in wanted]
        return sorted(packages, key=Package.sort_key)

    def enumerate(self, *types: PackageType) -> Iterator[Package]:
        yield from self.sorted(*types)

    def ids(self) -> Set[str]:
        with self._lock:
            return set(self._by_id)

    def __contains__(self, package_id: object) -> bool:
        return package_id in self._by_id

    def __iter__(self) -> Iterator[Package]:
        return iter(self.sorted())

    def __len__(self) -> int:
        return len(self._by_id)
