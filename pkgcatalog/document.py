# Copyright 2023 Lawrence Livermore National Security, LLC
# See the top-level LICENSE file for details.
#
# SPDX-License-Identifier: MIT
"""The assembled result of a cataloging run, as handed to the format writers."""

from __future__ import annotations

import importlib.metadata
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Iterable, Optional, Set, Tuple

from pkgcatalog.distro import Distro
from pkgcatalog.pkg import DOCUMENT_ROOT_ID, Catalog, Relationship, normalize_relationships
from pkgcatalog.source import SourceMetadata

# version of the native JSON schema written by this release
SCHEMA_VERSION = "1.1.0"
SCHEMA_URL_TEMPLATE = (
    "https://raw.githubusercontent.com/pkgcatalog/pkgcatalog/main/schema/json/schema-{version}.json"
)


def schema_url(version: str) -> str:
    return SCHEMA_URL_TEMPLATE.format(version=version)


@dataclass(frozen=True)
class Descriptor:
    """The tool that produced a document."""

    name: str
    version: str

    @classmethod
    def current(cls) -> Descriptor:
        try:
            version = importlib.metadata.version("pkgcatalog")
        except importlib.metadata.PackageNotFoundError:
            # pylint: disable-next=import-outside-toplevel
            from pkgcatalog import __version__ as version
        return cls(name="pkgcatalog", version=version or "unknown")


@dataclass(frozen=True)
class Schema:
    version: str
    url: str

    @classmethod
    def native(cls, version: str = SCHEMA_VERSION) -> Schema:
        return cls(version=version, url=schema_url(version))


# pylint: disable=too-many-instance-attributes
@dataclass(frozen=True)
class Document:
    """Read-only view over a catalog, its source and the relationships between them."""

    catalog: Catalog
    source: SourceMetadata
    distro: Optional[Distro]
    descriptor: Descriptor
    relationships: Tuple[Relationship, ...]
    schema: Schema
    timestamp: datetime

    @classmethod
    def create(
        cls,
        catalog: Catalog,
        source: SourceMetadata,
        distro: Optional[Distro],
        descriptor: Descriptor,
        relationships: Iterable[Relationship] = (),
        schema: Optional[Schema] = None,
        timestamp: Optional[datetime] = None,
    ) -> Document:
        """Assemble a document, checking that every relationship endpoint is known.

        Raises:
            DanglingRelationshipError: If a relationship references an unknown id.
        """
        known = known_ids(catalog, source)
        return cls(
            catalog=catalog,
            source=source,
            distro=distro,
            descriptor=descriptor,
            relationships=tuple(normalize_relationships(relationships, known)),
            schema=schema or Schema.native(),
            timestamp=timestamp or datetime.now(timezone.utc).replace(microsecond=0),
        )

    @property
    def packages(self):
        return self.catalog.sorted()


def known_ids(catalog: Catalog, source: SourceMetadata) -> Set[str]:
    """All ids a relationship may reference: the packages, the source and the document root."""
    ids = catalog.ids()
    ids.add(source.id)
    ids.add(DOCUMENT_ROOT_ID)
    return ids
