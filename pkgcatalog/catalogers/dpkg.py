# Copyright 2023 Lawrence Livermore National Security, LLC
# See the top-level LICENSE file for details.
#
# SPDX-License-Identifier: MIT
import posixpath
import re
import threading
from typing import Dict, Iterator, List, Optional

from loguru import logger

import pkgcatalog.plugin
from pkgcatalog.errors import OperationCancelled
from pkgcatalog.pkg import Digest, DpkgMetadata, FileRecord, Package, PackageType
from pkgcatalog.source import FileResolver, Location

STATUS_PATH = "/var/lib/dpkg/status"
# distroless images keep one status file per package
STATUS_DIR_GLOB = "/var/lib/dpkg/status.d/*"
INFO_DIR = "/var/lib/dpkg/info"

_SOURCE_WITH_VERSION = re.compile(r"^(?P<name>\S+)\s*\((?P<version>[^)]+)\)$")


@pkgcatalog.plugin.hookimpl
def short_name() -> str:
    return "dpkg-db-cataloger"


def parse_control_paragraphs(content: str) -> Iterator[Dict[str, str]]:
    """Yield each paragraph of a deb822 control file as a dict of field -> value.

    Continuation lines are joined to the previous field with newlines.
    """
    entry: Dict[str, str] = {}
    key = None
    for line in content.splitlines():
        if not line.strip():
            if entry:
                yield entry
            entry, key = {}, None
            continue
        if line[0] in " \t":
            if key is not None:
                entry[key] += "\n" + line.strip()
            continue
        if ":" not in line:
            logger.debug(f"ignoring malformed control line: {line!r}")
            continue
        key, value = line.split(":", 1)
        key = key.strip()
        entry[key] = value.strip()
    if entry:
        yield entry


def _is_installed(entry: Dict[str, str]) -> bool:
    words = entry.get("Status", "").split()
    return not words or words[-1] == "installed"


def _info_file(resolver: FileResolver, location: Location, package: str, arch: str, ext: str):
    candidates = [posixpath.join(INFO_DIR, f"{package}.{ext}")]
    if arch:
        candidates.insert(0, posixpath.join(INFO_DIR, f"{package}:{arch}.{ext}"))
    for candidate in candidates:
        found = resolver.relative_file_path(location, candidate)
        if found is not None:
            return found
    return None


def _parse_md5sums(content: str) -> Dict[str, str]:
    digests = {}
    for line in content.splitlines():
        parts = line.split(None, 1)
        if len(parts) == 2:
            digests["/" + parts[1].strip().lstrip("/")] = parts[0]
    return digests


def parse_copyright_licenses(content: str) -> List[str]:
    """Collect the License: fields of a debian copyright file, in order of appearance."""
    licenses: List[str] = []
    for line in content.splitlines():
        if line.startswith("License:"):
            value = line[len("License:") :].strip()
            if value and value not in licenses:
                licenses.append(value)
    return licenses


def _source_fields(entry: Dict[str, str]):
    source = entry.get("Source", "")
    match = _SOURCE_WITH_VERSION.match(source)
    if match:
        return match.group("name"), match.group("version")
    return source, ""


def parse_dpkg_entry(
    resolver: FileResolver, status_location: Location, entry: Dict[str, str]
) -> Optional[Package]:
    name = entry.get("Package", "")
    version = entry.get("Version", "")
    if not name or not version:
        return None
    arch = entry.get("Architecture", "")
    locations = [status_location]

    files: List[FileRecord] = []
    list_location = _info_file(resolver, status_location, name, arch, "list")
    if list_location is not None:
        locations.append(list_location)
        digests: Dict[str, str] = {}
        md5_location = _info_file(resolver, status_location, name, arch, "md5sums")
        if md5_location is not None:
            locations.append(md5_location)
            digests = _parse_md5sums(resolver.read_text(md5_location))
        for line in resolver.read_text(list_location).splitlines():
            path = line.strip()
            if not path or path == "/.":
                continue
            digest = Digest("md5", digests[path]) if path in digests else None
            files.append(FileRecord(path=path, digest=digest))

    licenses: List[str] = []
    copyright_location = resolver.relative_file_path(
        status_location, f"/usr/share/doc/{name}/copyright"
    )
    if copyright_location is not None:
        locations.append(copyright_location)
        licenses = parse_copyright_licenses(resolver.read_text(copyright_location))

    source, source_version = _source_fields(entry)
    installed_size = entry.get("Installed-Size", "0")
    metadata = DpkgMetadata(
        package=name,
        version=version,
        source=source,
        source_version=source_version,
        architecture=arch,
        maintainer=entry.get("Maintainer", ""),
        installed_size=int(installed_size) if installed_size.isdigit() else 0,
        files=files,
    )
    return Package(
        name=name,
        version=version,
        type=PackageType.DEB,
        found_by=short_name(),
        locations=locations,
        licenses=licenses,
        metadata=metadata,
    )


@pkgcatalog.plugin.hookimpl
def catalog_packages(resolver: FileResolver, cancel: threading.Event) -> List[Package]:
    packages = []
    status_files = resolver.files_by_path(STATUS_PATH) + resolver.files_by_glob(STATUS_DIR_GLOB)
    for status_location in status_files:
        logger.debug(f"reading dpkg status database {status_location}")
        for entry in parse_control_paragraphs(resolver.read_text(status_location)):
            if cancel.is_set():
                raise OperationCancelled("dpkg cataloging was cancelled")
            if not _is_installed(entry):
                continue
            package = parse_dpkg_entry(resolver, status_location, entry)
            if package is not None:
                packages.append(package)
    return packages
