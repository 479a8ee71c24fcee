# Copyright 2023 Lawrence Livermore National Security, LLC
# See the top-level LICENSE file for details.
#
# SPDX-License-Identifier: MIT
from collections import defaultdict
from typing import Dict, List, Optional, Set

from loguru import logger

import pkgcatalog.plugin
from pkgcatalog.pkg import Catalog, Relationship, RelationshipType, owned_files


@pkgcatalog.plugin.hookimpl
def short_name() -> str:
    return "ownership-by-file-overlap"


@pkgcatalog.plugin.hookimpl
def establish_relationships(catalog: Catalog, source_id: str) -> Optional[List[Relationship]]:
    """Link a package whose metadata lists installed files to the packages evidenced
    by those files, e.g. a dpkg package that installed a python dist-info directory."""
    # pylint: disable=unused-argument
    overlaps: Dict[tuple, Set[str]] = defaultdict(set)
    for parent in catalog:
        for path in owned_files(parent.metadata):
            for child in catalog.packages_by_path(path):
                if child.id == parent.id:
                    continue
                overlaps[(parent.id, child.id)].add(path)

    relationships = [
        Relationship(
            parent_id,
            child_id,
            RelationshipType.OWNERSHIP_BY_FILE_OVERLAP,
            metadata={"files": sorted(files)},
        )
        for (parent_id, child_id), files in sorted(overlaps.items())
    ]
    if relationships:
        logger.debug(f"found {len(relationships)} ownership-by-file-overlap relationships")
    return relationships
