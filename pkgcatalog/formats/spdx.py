# Copyright 2023 Lawrence Livermore National Security, LLC
# See the top-level LICENSE file for details.
#
# SPDX-License-Identifier: MIT
"""Mapping between a Document and an SPDX 2.3 document model."""

import hashlib
import uuid
from datetime import timezone
from typing import Dict, List, Optional, Tuple
from urllib.parse import quote

from loguru import logger
from spdx_tools.common.spdx_licensing import spdx_licensing
from spdx_tools.spdx.model.actor import Actor, ActorType
from spdx_tools.spdx.model.document import CreationInfo
from spdx_tools.spdx.model.document import Document as SpdxDocument
from spdx_tools.spdx.model.package import (
    ExternalPackageRef,
    ExternalPackageRefCategory,
)
from spdx_tools.spdx.model.package import Package as SpdxPackage
from spdx_tools.spdx.model.relationship import Relationship as SpdxRelationship
from spdx_tools.spdx.model.relationship import RelationshipType as SpdxRelationshipType
from spdx_tools.spdx.model.spdx_no_assertion import SpdxNoAssertion
from spdx_tools.spdx.model.spdx_none import SpdxNone

from pkgcatalog import licenses
from pkgcatalog.document import Descriptor, Document, Schema
from pkgcatalog.errors import DanglingRelationshipError, DecodeError, UnsupportedSchema
from pkgcatalog.formats.identifiers import (
    external_package_id,
    external_source_id,
    package_id_from_external,
)
from pkgcatalog.pkg import (
    DOCUMENT_ROOT_ID,
    Catalog,
    Package,
    PackageType,
    Relationship,
    RelationshipType,
    cpes,
    package_type_from_purl,
    package_url,
)
from pkgcatalog.source import ImageMetadata, Scheme, SourceMetadata

SPDX_VERSION = "SPDX-2.3"
SPDX_SCHEMA_URL = "https://raw.githubusercontent.com/spdx/spdx-spec/v2.3/schemas/spdx-schema.json"
DOCUMENT_SPDX_ID = "SPDXRef-DOCUMENT"
NAMESPACE_BASE = "https://pkgcatalog.dev/spdxdocs"

PACKAGE_ID_PREFIX = "SPDXRef-Package-"
ROOT_ID_PREFIX = "SPDXRef-DocumentRoot-"

CPE_REF_TYPE = "cpe23Type"
PURL_REF_TYPE = "purl"

# relationship types SPDX does not define are written as OTHER with this comment prefix
OTHER_COMMENT_PREFIX = "Type: "


def package_spdx_id(package: Package) -> str:
    return PACKAGE_ID_PREFIX + external_package_id(package)


def source_spdx_id(source: SourceMetadata) -> str:
    return "SPDXRef-" + external_source_id(source)


def license_declared(package: Package):
    """Declared license of a package in SPDX terms; never absent."""
    if package.licenses == [licenses.NONE]:
        return SpdxNone()
    expression = licenses.expression(package.licenses)
    if expression is None:
        if package.licenses:
            logger.warning(f"{package}: no valid SPDX expression in licenses {package.licenses}")
        return SpdxNoAssertion()
    return spdx_licensing.parse(expression)


def _document_namespace(source: SourceMetadata) -> str:
    name = quote(source.name.strip("/").replace("/", "-") or "root", safe="")
    return f"{NAMESPACE_BASE}/{source.scheme.value}/{name}-{uuid.uuid4()}"


def _source_package(source: SourceMetadata) -> SpdxPackage:
    version = None
    if source.scheme == Scheme.IMAGE:
        version = source.image_metadata.image_id or None
    return SpdxPackage(
        spdx_id=source_spdx_id(source),
        name=source.name,
        download_location=SpdxNoAssertion(),
        version=version,
        files_analyzed=False,
        license_concluded=SpdxNoAssertion(),
        license_declared=SpdxNoAssertion(),
        copyright_text=SpdxNoAssertion(),
        supplier=SpdxNoAssertion(),
        comment=f"{source.scheme.value} source",
    )


def _package(package: Package, document: Document) -> SpdxPackage:
    refs = [
        ExternalPackageRef(
            category=ExternalPackageRefCategory.SECURITY,
            reference_type=CPE_REF_TYPE,
            locator=cpe,
        )
        for cpe in cpes(package)
    ]
    refs.append(
        ExternalPackageRef(
            category=ExternalPackageRefCategory.PACKAGE_MANAGER,
            reference_type=PURL_REF_TYPE,
            locator=package_url(package, document.distro),
        )
    )
    return SpdxPackage(
        spdx_id=package_spdx_id(package),
        name=package.name,
        download_location=SpdxNoAssertion(),
        version=package.version or None,
        files_analyzed=False,
        license_concluded=SpdxNoAssertion(),
        license_declared=license_declared(package),
        copyright_text=SpdxNoAssertion(),
        supplier=SpdxNoAssertion(),
        source_info=f"acquired package info from {package.found_by}" if package.found_by else None,
        external_references=refs,
    )


def _relationship(rel: Relationship, ids: Dict[str, str]) -> SpdxRelationship:
    rel_type = RelationshipType(rel.type)
    comment = None
    if rel_type == RelationshipType.DESCRIBES:
        spdx_type = SpdxRelationshipType.DESCRIBES
    elif rel_type == RelationshipType.CONTAINS:
        spdx_type = SpdxRelationshipType.CONTAINS
    else:
        spdx_type = SpdxRelationshipType.OTHER
        comment = OTHER_COMMENT_PREFIX + rel_type.value
        if rel.metadata and rel.metadata.get("files"):
            comment += "; files: " + ", ".join(rel.metadata["files"])
    return SpdxRelationship(
        spdx_element_id=ids[rel.from_id],
        relationship_type=spdx_type,
        related_spdx_element_id=ids[rel.to_id],
        comment=comment,
    )


def to_spdx(document: Document) -> SpdxDocument:
    source = document.source
    creation_info = CreationInfo(
        spdx_version=SPDX_VERSION,
        spdx_id=DOCUMENT_SPDX_ID,
        name=source.name,
        document_namespace=_document_namespace(source),
        creators=[
            Actor(
                actor_type=ActorType.TOOL,
                name=f"{document.descriptor.name}-{document.descriptor.version}",
            )
        ],
        # spdx-tools expects a naive UTC datetime
        created=document.timestamp.astimezone(timezone.utc).replace(tzinfo=None),
    )
    spdx_doc = SpdxDocument(creation_info=creation_info)

    ids = {DOCUMENT_ROOT_ID: DOCUMENT_SPDX_ID, source.id: source_spdx_id(source)}
    spdx_packages = [_source_package(source)]
    for package in document.packages:
        spdx_package = _package(package, document)
        ids[package.id] = spdx_package.spdx_id
        spdx_packages.append(spdx_package)
    spdx_doc.packages = spdx_packages
    spdx_doc.relationships = [_relationship(rel, ids) for rel in document.relationships]
    return spdx_doc


def _external_ref(spdx_package: SpdxPackage, reference_type: str) -> Optional[str]:
    for ref in spdx_package.external_references or []:
        if ref.reference_type == reference_type:
            return ref.locator
    return None


def _package_type(spdx_package: SpdxPackage) -> PackageType:
    purl = _external_ref(spdx_package, PURL_REF_TYPE)
    if purl:
        return package_type_from_purl(purl)
    # SPDXRef-Package-<type>-<name>-<version>-<id>
    if spdx_package.spdx_id.startswith(PACKAGE_ID_PREFIX):
        prefix = spdx_package.spdx_id[len(PACKAGE_ID_PREFIX) :].split("-", 1)[0]
        try:
            return PackageType(prefix)
        except ValueError:
            pass
    return PackageType.UNKNOWN


def _licenses(spdx_package: SpdxPackage) -> List[str]:
    declared = spdx_package.license_declared
    if isinstance(declared, SpdxNone):
        return [licenses.NONE]
    if declared is None or isinstance(declared, SpdxNoAssertion):
        return []
    return licenses.split_expression(str(declared))


def _found_by(spdx_package: SpdxPackage) -> str:
    prefix = "acquired package info from "
    info = spdx_package.source_info or ""
    return info[len(prefix) :] if info.startswith(prefix) else ""


def _source_from_root(root: Optional[SpdxPackage], spdx_doc: SpdxDocument) -> SourceMetadata:
    if root is None or not root.spdx_id.startswith(ROOT_ID_PREFIX):
        return SourceMetadata(Scheme.DIRECTORY, path=spdx_doc.creation_info.name)
    if root.spdx_id.startswith(ROOT_ID_PREFIX + "Image-"):
        return SourceMetadata(
            Scheme.IMAGE,
            image_metadata=ImageMetadata(user_input=root.name, image_id=root.version or ""),
        )
    return SourceMetadata(Scheme.DIRECTORY, path=root.name)


def _descriptor(spdx_doc: SpdxDocument) -> Descriptor:
    for creator in spdx_doc.creation_info.creators:
        if creator.actor_type == ActorType.TOOL:
            name, _, version = creator.name.rpartition("-")
            if not name:
                return Descriptor(name=version, version="")
            return Descriptor(name=name, version=version)
    return Descriptor(name="", version="")


def _relationship_type(spdx_rel: SpdxRelationship) -> Optional[RelationshipType]:
    if spdx_rel.relationship_type == SpdxRelationshipType.DESCRIBES:
        return RelationshipType.DESCRIBES
    if spdx_rel.relationship_type == SpdxRelationshipType.CONTAINS:
        return RelationshipType.CONTAINS
    comment = spdx_rel.comment or ""
    if spdx_rel.relationship_type == SpdxRelationshipType.OTHER and comment.startswith(
        OTHER_COMMENT_PREFIX
    ):
        name = comment[len(OTHER_COMMENT_PREFIX) :].partition("; files: ")[0]
        try:
            return RelationshipType(name.strip())
        except ValueError:
            return None
    return None


def _relationship_files(spdx_rel: SpdxRelationship) -> Optional[Dict[str, List[str]]]:
    _, sep, files = (spdx_rel.comment or "").partition("; files: ")
    if not sep:
        return None
    return {"files": [f.strip() for f in files.split(",") if f.strip()]}


def _decode_package(spdx_package: SpdxPackage) -> Package:
    package = Package(
        name=spdx_package.name,
        version=spdx_package.version or "",
        type=_package_type(spdx_package),
        found_by=_found_by(spdx_package),
        licenses=_licenses(spdx_package),
    )
    # without metadata the content id would merge packages that only differ there,
    # so keep the id the package was written with
    written_id = package_id_from_external(spdx_package.spdx_id)
    if written_id:
        package.id = written_id
    else:
        identity = f"{package.id}:{spdx_package.spdx_id}"
        package.id = hashlib.sha256(identity.encode("utf-8")).hexdigest()[:16]
    return package


def from_spdx(spdx_doc: SpdxDocument) -> Document:
    """Build a Document from an SPDX document.

    Package metadata, locations and the distro are not represented in SPDX, so a
    decoded document carries none of them. Every SPDX package becomes its own catalog
    entry: packages written by pkgcatalog keep their original id, others get an id
    derived from their SPDX id.

    Raises:
        UnsupportedSchema: If the document is not SPDX 2.x.
        DecodeError: If relationships reference unknown elements.
    """
    spdx_version = spdx_doc.creation_info.spdx_version
    if not spdx_version or not spdx_version.startswith("SPDX-2."):
        raise UnsupportedSchema(spdx_version, supported="SPDX-2.x")

    described = [
        rel.related_spdx_element_id
        for rel in spdx_doc.relationships
        if rel.spdx_element_id == DOCUMENT_SPDX_ID
        and rel.relationship_type == SpdxRelationshipType.DESCRIBES
    ]
    by_id = {p.spdx_id: p for p in spdx_doc.packages}
    root = next(
        (by_id[i] for i in described if i in by_id and i.startswith(ROOT_ID_PREFIX)), None
    )
    source = _source_from_root(root, spdx_doc)

    ids: Dict[str, str] = {DOCUMENT_SPDX_ID: DOCUMENT_ROOT_ID}
    if root is not None:
        ids[root.spdx_id] = source.id
    catalog = Catalog()
    for spdx_package in spdx_doc.packages:
        if root is not None and spdx_package.spdx_id == root.spdx_id:
            continue
        package = catalog.add(_decode_package(spdx_package))
        ids[spdx_package.spdx_id] = package.id

    relationships: List[Relationship] = []
    for spdx_rel in spdx_doc.relationships:
        rel_type = _relationship_type(spdx_rel)
        endpoints: Tuple[Optional[str], Optional[str]] = (
            ids.get(spdx_rel.spdx_element_id),
            ids.get(str(spdx_rel.related_spdx_element_id)),
        )
        if rel_type is None:
            logger.debug(f"skipping unsupported SPDX relationship {spdx_rel.relationship_type.name}")
            continue
        if rel_type == RelationshipType.DESCRIBES and root is None:
            continue
        if None in endpoints:
            raise DecodeError(
                f"relationship references unknown element "
                f"{spdx_rel.spdx_element_id} -> {spdx_rel.related_spdx_element_id}",
                field="relationships",
            )
        relationships.append(
            Relationship(
                endpoints[0], endpoints[1], rel_type, metadata=_relationship_files(spdx_rel)
            )
        )
    if root is None:
        relationships.append(Relationship(DOCUMENT_ROOT_ID, source.id, RelationshipType.DESCRIBES))

    created = spdx_doc.creation_info.created
    if created.tzinfo is None:
        created = created.replace(tzinfo=timezone.utc)
    try:
        return Document.create(
            catalog=catalog,
            source=source,
            distro=None,
            descriptor=_descriptor(spdx_doc),
            relationships=relationships,
            schema=Schema(version=spdx_version, url=SPDX_SCHEMA_URL),
            timestamp=created,
        )
    except DanglingRelationshipError as e:
        raise DecodeError(str(e), field="relationships") from e
