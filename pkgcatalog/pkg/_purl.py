# Copyright 2023 Lawrence Livermore National Security, LLC
# See the top-level LICENSE file for details.
#
# SPDX-License-Identifier: MIT
import re
from typing import List, Optional

from packageurl import PackageURL

from pkgcatalog.distro import Distro

from ._metadata import ApkMetadata, DpkgMetadata
from ._package import Package, PackageType

# package-url types for each package type
PURL_TYPES = {
    PackageType.PYTHON: "pypi",
    PackageType.DEB: "deb",
    PackageType.APK: "apk",
    PackageType.NPM: "npm",
}

# the reverse mapping, with aliases seen in documents written by other tools
PACKAGE_TYPES_BY_PURL_TYPE = {
    "pypi": PackageType.PYTHON,
    "deb": PackageType.DEB,
    "apk": PackageType.APK,
    "alpine": PackageType.APK,
    "npm": PackageType.NPM,
}

_CPE_SPECIAL = re.compile(r"([^A-Za-z0-9._\-~])")


def package_url(package: Package, distro: Optional[Distro] = None) -> str:
    """Build the package-url string for a package."""
    purl_type = PURL_TYPES.get(package.type)
    if purl_type is None:
        return PackageURL(type="generic", name=package.name, version=package.version or None).to_string()

    namespace = None
    name = package.name
    qualifiers = {}
    if package.type == PackageType.NPM and name.startswith("@") and "/" in name:
        namespace, name = name.split("/", 1)
    elif package.type in (PackageType.DEB, PackageType.APK):
        if distro is not None:
            namespace = distro.name
            if distro.version:
                qualifiers["distro"] = f"{distro.name}-{distro.version}"
        if isinstance(package.metadata, (DpkgMetadata, ApkMetadata)) and package.metadata.architecture:
            qualifiers["arch"] = package.metadata.architecture
    return PackageURL(
        type=purl_type,
        namespace=namespace,
        name=name,
        version=package.version or None,
        qualifiers=qualifiers or None,
    ).to_string()


def package_type_from_purl(purl: str) -> PackageType:
    try:
        parsed = PackageURL.from_string(purl)
    except ValueError:
        return PackageType.UNKNOWN
    return PACKAGE_TYPES_BY_PURL_TYPE.get(parsed.type, PackageType.UNKNOWN)


def _cpe_escape(value: str) -> str:
    return _CPE_SPECIAL.sub(r"\\\1", value.strip().lower().replace(" ", "_")) or "*"


def cpes(package: Package) -> List[str]:
    """Candidate CPE 2.3 strings for a package; the product is its name."""
    if not package.name:
        return []
    vendors = [package.name]
    if package.type == PackageType.PYTHON:
        vendors.append(f"python-{package.name}")
    version = _cpe_escape(package.version) if package.version else "*"
    product = _cpe_escape(package.name)
    return sorted(
        {f"cpe:2.3:a:{_cpe_escape(vendor)}:{product}:{version}:*:*:*:*:*:*:*" for vendor in vendors}
    )
