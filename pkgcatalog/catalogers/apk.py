# Copyright 2023 Lawrence Livermore National Security, LLC
# See the top-level LICENSE file for details.
#
# SPDX-License-Identifier: MIT
import threading
from typing import Dict, Iterator, List, Optional

from loguru import logger

import pkgcatalog.plugin
from pkgcatalog.errors import OperationCancelled
from pkgcatalog.pkg import ApkMetadata, Digest, FileRecord, Package, PackageType
from pkgcatalog.source import FileResolver, Location

INSTALLED_DB_PATH = "/lib/apk/db/installed"


@pkgcatalog.plugin.hookimpl
def short_name() -> str:
    return "apkdb-cataloger"


def _int(value: str) -> int:
    return int(value) if value.isdigit() else 0


def parse_installed_db(content: str) -> Iterator[Dict]:
    """Parse the apk installed database into one dict per package.

    Single-letter keys are kept as-is; file ownership is collected under "files" as
    (path, checksum) pairs built from the F: (directory) and R: (file) lines.
    """
    entry: Dict = {}
    directory = ""
    for line in content.splitlines():
        if not line.strip():
            if entry:
                yield entry
            entry, directory = {}, ""
            continue
        if len(line) < 2 or line[1] != ":":
            logger.debug(f"ignoring malformed apk db line: {line!r}")
            continue
        key, value = line[0], line[2:].strip()
        if key == "F":
            directory = value
        elif key == "R":
            path = "/" + "/".join(p for p in (directory, value) if p)
            entry.setdefault("files", []).append([path, None])
        elif key == "Z" and entry.get("files"):
            entry["files"][-1][1] = value
        else:
            entry[key] = value
    if entry:
        yield entry


def _digest(checksum: Optional[str]) -> Optional[Digest]:
    if not checksum:
        return None
    # Q1 prefix marks a base64 encoded sha1
    if checksum.startswith("Q1"):
        return Digest("sha1", checksum[2:])
    return Digest("md5", checksum)


def parse_apk_entry(location: Location, entry: Dict) -> Optional[Package]:
    name, version = entry.get("P", ""), entry.get("V", "")
    if not name or not version:
        return None
    license_value = entry.get("L", "")
    metadata = ApkMetadata(
        package=name,
        version=version,
        origin_package=entry.get("o", ""),
        maintainer=entry.get("m", ""),
        license=license_value,
        architecture=entry.get("A", ""),
        url=entry.get("U", ""),
        description=entry.get("T", ""),
        size=_int(entry.get("S", "")),
        installed_size=_int(entry.get("I", "")),
        pull_dependencies=entry.get("D", "").split(),
        files=[FileRecord(path=path, digest=_digest(checksum)) for path, checksum in entry.get("files", [])],
    )
    return Package(
        name=name,
        version=version,
        type=PackageType.APK,
        found_by=short_name(),
        locations=[location],
        licenses=[license_value] if license_value else [],
        metadata=metadata,
    )


@pkgcatalog.plugin.hookimpl
def catalog_packages(resolver: FileResolver, cancel: threading.Event) -> List[Package]:
    packages = []
    for location in resolver.files_by_path(INSTALLED_DB_PATH):
        for entry in parse_installed_db(resolver.read_text(location)):
            if cancel.is_set():
                raise OperationCancelled("apk cataloging was cancelled")
            package = parse_apk_entry(location, entry)
            if package is not None:
                packages.append(package)
    return packages
