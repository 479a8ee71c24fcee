# Copyright 2023 Lawrence Livermore National Security, LLC
# See the top-level LICENSE file for details.
#
# SPDX-License-Identifier: MIT
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Collection, Dict, Iterable, List, Optional, Tuple

from pkgcatalog.errors import DanglingRelationshipError

# synthetic id for the document that describes the source
DOCUMENT_ROOT_ID = "DocumentRoot"


class RelationshipType(str, Enum):
    # the parent (a source) contains the child package
    CONTAINS = "contains"
    # the parent package's metadata claims files that are evidence for the child package
    OWNERSHIP_BY_FILE_OVERLAP = "ownership-by-file-overlap"
    # the document root describes the source
    DESCRIBES = "describes"


@dataclass(frozen=True)
class Relationship:
    from_id: str
    to_id: str
    type: RelationshipType
    metadata: Optional[Dict[str, Any]] = field(default=None, compare=False, hash=False)

    def sort_key(self) -> Tuple[str, str, str]:
        return (RelationshipType(self.type).value, self.from_id, self.to_id)

    def __str__(self) -> str:
        return f"{self.from_id} --[{RelationshipType(self.type).value}]--> {self.to_id}"


def normalize_relationships(
    relationships: Iterable[Relationship], known_ids: Collection[str]
) -> List[Relationship]:
    """Deduplicate and sort relationships, checking that every endpoint exists.

    Duplicates keep the metadata of their first occurrence.

    Raises:
        DanglingRelationshipError: If an endpoint is not in `known_ids`.
    """
    unique: Dict[Tuple[str, str, str], Relationship] = {}
    for rel in relationships:
        unique.setdefault(rel.sort_key(), rel)
    for rel in unique.values():
        for endpoint in (rel.from_id, rel.to_id):
            if endpoint not in known_ids:
                raise DanglingRelationshipError(rel, endpoint)
    return [unique[key] for key in sorted(unique)]
