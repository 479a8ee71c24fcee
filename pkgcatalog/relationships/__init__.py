# Copyright 2023 Lawrence Livermore National Security, LLC
# See the top-level LICENSE file for details.
#
# SPDX-License-Identifier: MIT
from typing import List

import pluggy
from loguru import logger

from pkgcatalog.document import known_ids
from pkgcatalog.pkg import (
    DOCUMENT_ROOT_ID,
    Catalog,
    Relationship,
    RelationshipType,
    normalize_relationships,
)
from pkgcatalog.source import SourceMetadata


def build_relationships(
    pm: pluggy.PluginManager, catalog: Catalog, source: SourceMetadata
) -> List[Relationship]:
    """Build the relationship list for a finished catalog.

    The document root describes the source, the source contains every package, and
    plugins implementing `establish_relationships` add package-to-package edges. The
    catalog itself is not modified.

    Raises:
        DanglingRelationshipError: If a plugin returns an edge to an unknown id.
    """
    relationships = [Relationship(DOCUMENT_ROOT_ID, source.id, RelationshipType.DESCRIBES)]
    relationships.extend(
        Relationship(source.id, package.id, RelationshipType.CONTAINS) for package in catalog
    )
    for result in pm.hook.establish_relationships(catalog=catalog, source_id=source.id):
        if result:
            relationships.extend(result)
    relationships = normalize_relationships(relationships, known_ids(catalog, source))
    logger.info(f"established {len(relationships)} relationships")
    return relationships
