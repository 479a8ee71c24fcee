# Copyright 2023 Lawrence Livermore National Security, LLC
# See the top-level LICENSE file for details.
#
# SPDX-License-Identifier: MIT
"""The native JSON document schema and its conversion to and from a Document."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional

from dataclasses_json import LetterCase, config, dataclass_json
from loguru import logger

from pkgcatalog.distro import Distro
from pkgcatalog.document import Descriptor, Document, Schema
from pkgcatalog.errors import DanglingRelationshipError, DecodeError, UnsupportedSchema
from pkgcatalog.pkg import (
    DOCUMENT_ROOT_ID,
    Catalog,
    MetadataType,
    Package,
    PackageType,
    Relationship,
    RelationshipType,
    cpes,
    metadata_from_dict,
    package_url,
)
from pkgcatalog.source import ImageMetadata, Location, Scheme, SourceMetadata

# major.minor versions of the native schema that can be decoded
SUPPORTED_SCHEMA_VERSIONS = ("1.0", "1.1")


@dataclass_json(letter_case=LetterCase.CAMEL)
@dataclass
class NativePackage:
    id: str
    name: str
    version: str
    type: str
    found_by: str = ""
    locations: List[Location] = field(default_factory=list)
    licenses: List[str] = field(default_factory=list)
    language: str = ""
    cpes: List[str] = field(default_factory=list)
    purl: str = ""
    metadata_type: Optional[str] = None
    metadata: Optional[Dict[str, Any]] = None


@dataclass_json
@dataclass
class NativeRelationship:
    parent: str
    child: str
    type: str
    metadata: Optional[Dict[str, Any]] = field(
        default=None, metadata=config(exclude=lambda v: v is None)
    )


@dataclass_json
@dataclass
class NativeSource:
    id: str
    type: str
    target: Any


@dataclass_json
@dataclass
class NativeDistro:
    name: str = ""
    version: str = ""
    id_like: List[str] = field(default_factory=list, metadata=config(field_name="idLike"))


@dataclass_json
@dataclass
class NativeDescriptor:
    name: str
    version: str


@dataclass_json
@dataclass
class NativeSchema:
    version: str
    url: str


# pylint: disable=too-many-instance-attributes
@dataclass_json(letter_case=LetterCase.CAMEL)
@dataclass
class NativeDocument:
    artifacts: List[NativePackage]
    artifact_relationships: List[NativeRelationship]
    source: NativeSource
    distro: NativeDistro
    descriptor: NativeDescriptor
    schema: NativeSchema
    timestamp: str


def _encode_package(package: Package, distro: Optional[Distro]) -> NativePackage:
    return NativePackage(
        id=package.id,
        name=package.name,
        version=package.version,
        type=package.type.value,
        found_by=package.found_by,
        locations=package.locations.sorted(),
        licenses=list(package.licenses),
        language=package.language,
        cpes=cpes(package),
        purl=package_url(package, distro),
        metadata_type=package.metadata_type.value if package.metadata_type else None,
        metadata=package.metadata.to_dict() if package.metadata is not None else None,
    )


def _encode_source(source: SourceMetadata) -> NativeSource:
    if source.scheme == Scheme.DIRECTORY:
        target: Any = source.path
    else:
        target = source.image_metadata.to_dict()
    return NativeSource(id=source.id, type=source.scheme.value, target=target)


def to_native(document: Document) -> NativeDocument:
    distro = document.distro
    return NativeDocument(
        artifacts=[_encode_package(p, distro) for p in document.packages],
        artifact_relationships=[
            NativeRelationship(
                parent=r.from_id,
                child=r.to_id,
                type=RelationshipType(r.type).value,
                metadata=r.metadata,
            )
            for r in document.relationships
        ],
        source=_encode_source(document.source),
        distro=(
            NativeDistro(name=distro.name, version=distro.version, id_like=list(distro.id_like))
            if distro is not None
            else NativeDistro()
        ),
        descriptor=NativeDescriptor(
            name=document.descriptor.name, version=document.descriptor.version
        ),
        schema=NativeSchema(version=document.schema.version, url=document.schema.url),
        timestamp=document.timestamp.isoformat(),
    )


def check_schema_version(data: Dict[str, Any]) -> str:
    """Return the declared schema version, raising UnsupportedSchema if it cannot be decoded."""
    schema = data.get("schema")
    version = schema.get("version") if isinstance(schema, dict) else None
    if not isinstance(version, str) or ".".join(version.split(".")[:2]) not in SUPPORTED_SCHEMA_VERSIONS:
        raise UnsupportedSchema(version, supported=", ".join(f"{v}.x" for v in SUPPORTED_SCHEMA_VERSIONS))
    return version


def _decode_package(index: int, data: Any) -> NativePackage:
    where = f"artifacts[{index}]"
    if not isinstance(data, dict):
        raise DecodeError("package entry is not an object", field=where)
    try:
        return NativePackage.from_dict(data)
    except (KeyError, TypeError, ValueError, AttributeError) as e:
        raise DecodeError(f"malformed package entry: {e}", field=where) from e


def _build_package(index: int, entry: NativePackage) -> Package:
    where = f"artifacts[{index}]"
    try:
        package_type = PackageType(entry.type)
    except ValueError as e:
        raise DecodeError(f"unknown package type {entry.type!r}", field=f"{where}.type") from e
    metadata_type = None
    metadata = None
    if entry.metadata_type:
        try:
            metadata_type = MetadataType(entry.metadata_type)
            metadata = metadata_from_dict(metadata_type, entry.metadata or {})
        except (KeyError, TypeError, ValueError, AttributeError) as e:
            raise DecodeError(f"invalid metadata: {e}", field=f"{where}.metadata") from e
    return Package(
        name=entry.name,
        version=entry.version,
        type=package_type,
        found_by=entry.found_by,
        locations=entry.locations,
        licenses=entry.licenses,
        language=entry.language,
        metadata_type=metadata_type,
        metadata=metadata,
    )


def _decode_source(data: Any) -> SourceMetadata:
    if not isinstance(data, dict):
        raise DecodeError("missing source description", field="source")
    kind, target = data.get("type"), data.get("target")
    try:
        scheme = Scheme(kind)
    except ValueError as e:
        raise DecodeError(f"unknown source type {kind!r}", field="source.type") from e
    try:
        if scheme == Scheme.DIRECTORY:
            if not isinstance(target, str):
                raise DecodeError("directory target must be a path", field="source.target")
            return SourceMetadata(scheme, path=target)
        return SourceMetadata(scheme, image_metadata=ImageMetadata.from_dict(target))
    except (KeyError, TypeError, ValueError, AttributeError) as e:
        if isinstance(e, DecodeError):
            raise
        raise DecodeError(f"invalid source target: {e}", field="source.target") from e


def _decode_timestamp(value: Any) -> datetime:
    if not isinstance(value, str):
        raise DecodeError("missing timestamp", field="timestamp")
    try:
        return datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError as e:
        raise DecodeError(f"invalid timestamp {value!r}", field="timestamp") from e


def _decode_distro(data: Any) -> Optional[Distro]:
    if data is None:
        return None
    if not isinstance(data, dict):
        raise DecodeError("distro is not an object", field="distro")
    if not data.get("name"):
        return None
    if not isinstance(data.get("idLike", []), list):
        raise DecodeError("idLike is not a list", field="distro.idLike")
    try:
        native = NativeDistro.from_dict(data)
    except (KeyError, TypeError, ValueError, AttributeError) as e:
        raise DecodeError(f"invalid distro: {e}", field="distro") from e
    return Distro(name=native.name, version=native.version, id_like=list(native.id_like))


def _decode_descriptor(data: Any) -> Descriptor:
    if data is None:
        return Descriptor(name="", version="")
    if not isinstance(data, dict):
        raise DecodeError("descriptor is not an object", field="descriptor")
    name, version = data.get("name", ""), data.get("version", "")
    if not isinstance(name, str) or not isinstance(version, str):
        raise DecodeError("descriptor name and version must be strings", field="descriptor")
    return Descriptor(name=name, version=version)


def from_native(data: Any) -> Document:
    """Build a Document from a parsed native JSON document.

    The schema version is checked before anything else is decoded. Package and source
    ids are recomputed from their content; relationships are remapped accordingly.

    Raises:
        UnsupportedSchema: If the schema version is missing or not supported.
        DecodeError: If the document is malformed.
    """
    if not isinstance(data, dict):
        raise DecodeError("document is not a JSON object")
    version = check_schema_version(data)

    source = _decode_source(data.get("source"))
    id_map = {DOCUMENT_ROOT_ID: DOCUMENT_ROOT_ID, source.id: source.id}
    if isinstance(data["source"].get("id"), str):
        id_map[data["source"]["id"]] = source.id

    artifacts = data.get("artifacts")
    if not isinstance(artifacts, list):
        raise DecodeError("missing package list", field="artifacts")
    catalog = Catalog()
    for index, item in enumerate(artifacts):
        entry = _decode_package(index, item)
        package = catalog.add(_build_package(index, entry))
        if entry.id != package.id:
            logger.debug(f"package id {entry.id} recomputed as {package.id}")
        id_map[entry.id] = package.id

    relationships = []
    for index, item in enumerate(data.get("artifactRelationships") or []):
        where = f"artifactRelationships[{index}]"
        try:
            rel = NativeRelationship.from_dict(item)
            rel_type = RelationshipType(rel.type)
        except (KeyError, TypeError, ValueError, AttributeError) as e:
            raise DecodeError(f"malformed relationship: {e}", field=where) from e
        relationships.append(
            Relationship(
                id_map.get(rel.parent, rel.parent),
                id_map.get(rel.child, rel.child),
                rel_type,
                metadata=rel.metadata,
            )
        )

    descriptor = _decode_descriptor(data.get("descriptor"))
    distro = _decode_distro(data.get("distro"))
    try:
        return Document.create(
            catalog=catalog,
            source=source,
            distro=distro,
            descriptor=descriptor,
            relationships=relationships,
            schema=Schema(version=version, url=data["schema"].get("url", "")),
            timestamp=_decode_timestamp(data.get("timestamp")),
        )
    except DanglingRelationshipError as e:
        raise DecodeError(str(e), field="artifactRelationships") from e
