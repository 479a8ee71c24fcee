# Copyright 2023 Lawrence Livermore National Security, LLC
# See the top-level LICENSE file for details.
#
# SPDX-License-Identifier: MIT
from typing import Dict, Optional

import cyclonedx.output
import cyclonedx.schema
from cyclonedx.factory.license import LicenseFactory
from cyclonedx.model import Tool
from cyclonedx.model.bom import Bom, BomMetaData
from cyclonedx.model.bom_ref import BomRef
from cyclonedx.model.component import Component, ComponentType
from cyclonedx.model.dependency import Dependency
from packageurl import PackageURL

import pkgcatalog.plugin
from pkgcatalog import licenses
from pkgcatalog.document import Document
from pkgcatalog.formats.identifiers import external_package_id, external_source_id
from pkgcatalog.pkg import DOCUMENT_ROOT_ID, Package, RelationshipType, cpes, package_url
from pkgcatalog.source import Scheme, SourceMetadata


@pkgcatalog.plugin.hookimpl
def write_document(document: Document, outfile) -> None:
    """Writes the document as a CycloneDX 1.5 JSON BOM.

    The source becomes the BOM metadata component and every package a library
    component. CycloneDX has no "no assertion" license value, so packages without a
    license simply have no licenses listed.

    Args:
        document (Document): The document to write.
        outfile: The output file handle to write to.
    """
    tool = Tool(name=document.descriptor.name, version=document.descriptor.version)
    root = convert_source_to_cyclonedx_component(document.source)
    bom = Bom(
        metadata=BomMetaData(tools=[tool], component=root, timestamp=document.timestamp)
    )

    refs: Dict[str, str] = {document.source.id: root.bom_ref.value}
    for package in document.packages:
        component = convert_package_to_cyclonedx_component(package, document)
        refs[package.id] = component.bom_ref.value
        bom.components.add(component)

    # the document root is implied by the metadata component
    cdx_rels: Dict[str, Dependency] = {}
    for rel in document.relationships:
        if rel.from_id == DOCUMENT_ROOT_ID or RelationshipType(rel.type) == RelationshipType.DESCRIBES:
            continue
        parent = refs[rel.from_id]
        if parent not in cdx_rels:
            cdx_rels[parent] = Dependency(ref=BomRef(parent))
        cdx_rels[parent].dependencies.add(Dependency(ref=BomRef(refs[rel.to_id])))
    for dependency in cdx_rels.values():
        bom.dependencies.add(dependency)

    outputter: cyclonedx.output.BaseOutput = cyclonedx.output.make_outputter(
        bom=bom,
        output_format=cyclonedx.output.OutputFormat.JSON,
        schema_version=cyclonedx.schema.SchemaVersion.V1_5,
    )
    outfile.write(outputter.output_as_string(indent=2))
    outfile.write("\n")


@pkgcatalog.plugin.hookimpl
def short_name() -> Optional[str]:
    return "cyclonedx"


def convert_source_to_cyclonedx_component(source: SourceMetadata) -> Component:
    if source.scheme == Scheme.IMAGE:
        return Component(
            bom_ref=external_source_id(source),
            name=source.name,
            version=source.image_metadata.image_id or None,
            type=ComponentType.CONTAINER,
        )
    return Component(
        bom_ref=external_source_id(source),
        name=source.name,
        type=ComponentType.FILE,
    )


def convert_package_to_cyclonedx_component(package: Package, document: Document) -> Component:
    package_cpes = cpes(package)
    expression = licenses.expression(package.licenses)
    return Component(
        bom_ref=external_package_id(package),
        name=package.name,
        version=package.version or None,
        type=ComponentType.LIBRARY,
        purl=PackageURL.from_string(package_url(package, document.distro)),
        cpe=package_cpes[0] if package_cpes else None,
        licenses=[LicenseFactory().make_from_string(expression)] if expression else None,
    )
