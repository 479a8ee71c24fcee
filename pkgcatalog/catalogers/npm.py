# Copyright 2023 Lawrence Livermore National Security, LLC
# See the top-level LICENSE file for details.
#
# SPDX-License-Identifier: MIT
import json
import posixpath
import threading
from typing import Any, List, Optional

from loguru import logger

import pkgcatalog.plugin
from pkgcatalog.errors import OperationCancelled
from pkgcatalog.pkg import NpmPackageJsonMetadata, Package, PackageType
from pkgcatalog.source import FileResolver, Location

PACKAGE_JSON_GLOB = "*/node_modules/*/package.json"


@pkgcatalog.plugin.hookimpl
def short_name() -> str:
    return "javascript-package-cataloger"


def is_installed_package_json(path: str) -> bool:
    """True for node_modules/<name>/package.json and node_modules/@scope/<name>/package.json."""
    parts = path.split("/")
    if len(parts) >= 4 and parts[-3] == "node_modules":
        return True
    return len(parts) >= 5 and parts[-4] == "node_modules" and parts[-3].startswith("@")


def _person(value: Any) -> str:
    if isinstance(value, dict):
        name = value.get("name", "")
        email = value.get("email", "")
        return f"{name} <{email}>" if email else name
    return value if isinstance(value, str) else ""


def _licenses(data: dict) -> List[str]:
    found = []
    values = [data.get("license")] + list(data.get("licenses") or [])
    for value in values:
        if isinstance(value, dict):
            value = value.get("type")
        if isinstance(value, str) and value.strip():
            found.append(value.strip())
    return found


def _repository_url(value: Any) -> str:
    if isinstance(value, dict):
        return value.get("url", "")
    return value if isinstance(value, str) else ""


def parse_package_json(resolver: FileResolver, location: Location) -> Optional[Package]:
    try:
        data = json.loads(resolver.read_text(location))
    except json.JSONDecodeError as e:
        logger.warning(f"invalid package.json at {location}: {e}")
        return None
    if not isinstance(data, dict):
        return None
    name, version = data.get("name"), data.get("version")
    if not isinstance(name, str) or not isinstance(version, str) or not name or not version:
        return None
    metadata = NpmPackageJsonMetadata(
        name=name,
        version=version,
        author=_person(data.get("author")),
        homepage=data.get("homepage", "") if isinstance(data.get("homepage"), str) else "",
        description=data.get("description", "") if isinstance(data.get("description"), str) else "",
        url=_repository_url(data.get("repository")),
        private=bool(data.get("private", False)),
    )
    return Package(
        name=name,
        version=version,
        type=PackageType.NPM,
        found_by=short_name(),
        locations=[location],
        licenses=_licenses(data),
        language="javascript",
        metadata=metadata,
    )


@pkgcatalog.plugin.hookimpl
def catalog_packages(resolver: FileResolver, cancel: threading.Event) -> List[Package]:
    packages = []
    for location in resolver.files_by_glob(PACKAGE_JSON_GLOB):
        if cancel.is_set():
            raise OperationCancelled("javascript package cataloging was cancelled")
        path = location.virtual_path or location.real_path
        if not is_installed_package_json(posixpath.normpath(path)):
            continue
        package = parse_package_json(resolver, location)
        if package is not None:
            packages.append(package)
    return packages
