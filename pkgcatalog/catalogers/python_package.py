# Copyright 2023 Lawrence Livermore National Security, LLC
# See the top-level LICENSE file for details.
#
# SPDX-License-Identifier: MIT
import csv
import io
import posixpath
import threading
from email.parser import HeaderParser
from typing import List, Optional

from loguru import logger

import pkgcatalog.plugin
from pkgcatalog.errors import OperationCancelled
from pkgcatalog.pkg import Digest, FileRecord, Package, PackageType, PythonPackageMetadata
from pkgcatalog.source import FileResolver, Location

# metadata files written by installers into site-packages
METADATA_GLOBS = ("*.dist-info/METADATA", "*.egg-info/PKG-INFO", "*.egg-info")

# classifier prefix followed by a license name
_LICENSE_CLASSIFIER = "License :: OSI Approved :: "


@pkgcatalog.plugin.hookimpl
def short_name() -> str:
    return "python-package-cataloger"


def _license_from_headers(headers) -> List[str]:
    expression = (headers.get("License-Expression") or "").strip()
    if expression:
        return [expression]
    declared = (headers.get("License") or "").strip()
    # some packages put the full license text in this field
    if declared and "\n" not in declared and len(declared) < 100:
        return [declared]
    return [
        classifier[len(_LICENSE_CLASSIFIER) :].strip()
        for classifier in headers.get_all("Classifier") or []
        if classifier.startswith(_LICENSE_CLASSIFIER)
    ]


def _parse_record(content: str, site_packages: str) -> List[FileRecord]:
    records = []
    for row in csv.reader(io.StringIO(content)):
        if not row or not row[0]:
            continue
        path = posixpath.normpath(posixpath.join(site_packages, row[0]))
        digest = None
        if len(row) > 1 and "=" in row[1]:
            algorithm, value = row[1].split("=", 1)
            digest = Digest(algorithm=algorithm, value=value)
        size = int(row[2]) if len(row) > 2 and row[2].isdigit() else None
        records.append(FileRecord(path=path, digest=digest, size=size))
    return records


def _parse_installed_files(content: str, egg_info_dir: str) -> List[FileRecord]:
    # egg-info installed-files.txt lists paths relative to the egg-info directory
    return [
        FileRecord(path=posixpath.normpath(posixpath.join(egg_info_dir, line.strip())))
        for line in content.splitlines()
        if line.strip()
    ]


def parse_python_package(resolver: FileResolver, location: Location) -> Optional[Package]:
    """Build a package from a dist-info METADATA or egg-info PKG-INFO file."""
    headers = HeaderParser().parsestr(resolver.read_text(location))
    name = (headers.get("Name") or "").strip()
    version = (headers.get("Version") or "").strip()
    if not name or not version:
        logger.debug(f"skipping python metadata without name or version: {location}")
        return None

    path = location.virtual_path or location.real_path
    if path.endswith(".egg-info"):
        metadata_dir = path
    else:
        metadata_dir = posixpath.dirname(path)
    site_packages = posixpath.dirname(metadata_dir)

    locations = [location]
    files: List[FileRecord] = []
    top_level: List[str] = []
    if not path.endswith(".egg-info"):
        record = resolver.relative_file_path(location, posixpath.join(metadata_dir, "RECORD"))
        if record is not None:
            locations.append(record)
            files = _parse_record(resolver.read_text(record), site_packages)
        else:
            installed = resolver.relative_file_path(
                location, posixpath.join(metadata_dir, "installed-files.txt")
            )
            if installed is not None:
                locations.append(installed)
                files = _parse_installed_files(resolver.read_text(installed), metadata_dir)
        top_level_location = resolver.relative_file_path(
            location, posixpath.join(metadata_dir, "top_level.txt")
        )
        if top_level_location is not None:
            locations.append(top_level_location)
            top_level = [
                line.strip()
                for line in resolver.read_text(top_level_location).splitlines()
                if line.strip()
            ]

    licenses = _license_from_headers(headers)
    metadata = PythonPackageMetadata(
        name=name,
        version=version,
        license=licenses[0] if len(licenses) == 1 else " AND ".join(licenses),
        author=(headers.get("Author") or "").strip(),
        author_email=(headers.get("Author-email") or "").strip(),
        platform=(headers.get("Platform") or "").strip(),
        site_packages_root_path=site_packages,
        top_level_packages=sorted(top_level),
        files=files,
    )
    return Package(
        name=name,
        version=version,
        type=PackageType.PYTHON,
        found_by=short_name(),
        locations=locations,
        licenses=licenses,
        language="python",
        metadata=metadata,
    )


@pkgcatalog.plugin.hookimpl
def catalog_packages(resolver: FileResolver, cancel: threading.Event) -> List[Package]:
    packages = []
    for location in resolver.files_by_glob(*METADATA_GLOBS):
        if cancel.is_set():
            raise OperationCancelled("python package cataloging was cancelled")
        package = parse_python_package(resolver, location)
        if package is not None:
            packages.append(package)
    return packages
