# Copyright 2023 Lawrence Livermore National Security, LLC
# See the top-level LICENSE file for details.
#
# SPDX-License-Identifier: MIT
import threading

import pytest

from pkgcatalog.errors import DuplicateIdentityConflict
from pkgcatalog.pkg import (
    Catalog,
    FileRecord,
    MetadataType,
    Package,
    PackageType,
    PythonPackageMetadata,
)
from pkgcatalog.source import Location


def _pkg1(found_by="python-package-cataloger", path="/some/path/pkg1", **kwargs):
    return Package(
        name="pkg1",
        version="1.0.1",
        type=PackageType.PYTHON,
        found_by=found_by,
        locations=[Location(path)],
        **kwargs,
    )


def test_same_package_seen_twice():
    catalog = Catalog()
    catalog.add(_pkg1(found_by="first"))
    catalog.add(_pkg1(found_by="second"))
    assert len(catalog) == 1
    (stored,) = list(catalog)
    assert stored.found_by == "first"
    assert stored.locations.paths() == ["/some/path/pkg1"]
    assert not catalog.conflicts


def test_locations_are_merged():
    catalog = Catalog([_pkg1(), _pkg1(path="/other/pkg1")])
    (stored,) = list(catalog)
    assert sorted(stored.locations.paths()) == ["/other/pkg1", "/some/path/pkg1"]
    assert [p.name for p in catalog.packages_by_path("/other/pkg1")] == ["pkg1"]
    assert catalog.packages_by_path("/nowhere") == []


def test_id_ignores_provenance_and_evidence():
    first = _pkg1(found_by="a", path="/x")
    second = _pkg1(found_by="b", path="/y", licenses=["MIT"], language="python")
    assert first.id == second.id
    assert len(first.id) == 16


def test_id_covers_identity_fields():
    base = _pkg1()
    assert _pkg1().id == base.id
    assert Package("pkg1", "1.0.2", PackageType.PYTHON).id != base.id
    assert Package("pkg1", "1.0.1", PackageType.NPM).id != base.id
    assert Package(" pkg1 ", "1.0.1 ", "python").id == base.id
    with_metadata = _pkg1(metadata=PythonPackageMetadata(name="pkg1", version="1.0.1"))
    assert with_metadata.metadata_type == MetadataType.PYTHON_PACKAGE
    assert with_metadata.id != base.id


def test_metadata_payload_changes_id():
    one = _pkg1(metadata=PythonPackageMetadata("pkg1", "1.0.1", files=[FileRecord("/a")]))
    two = _pkg1(metadata=PythonPackageMetadata("pkg1", "1.0.1", files=[FileRecord("/b")]))
    assert one.id != two.id


def test_licenses_are_normalized():
    package = _pkg1(licenses=["MIT", " Apache-2.0", "MIT", ""])
    assert package.licenses == ["Apache-2.0", "MIT"]


def test_conflicting_observations_keep_first():
    catalog = Catalog()
    catalog.add(_pkg1(licenses=["MIT"]))
    stored = catalog.add(_pkg1(licenses=["BSD-3-Clause"]))
    assert stored.licenses == ["MIT"]
    assert len(catalog) == 1
    (conflict,) = catalog.conflicts
    assert isinstance(conflict, DuplicateIdentityConflict)
    assert conflict.field == "licenses"
    assert conflict.kept == ["MIT"]
    assert conflict.dropped == ["BSD-3-Clause"]


def test_missing_fields_are_not_conflicts():
    catalog = Catalog([_pkg1(licenses=["MIT"], language="python"), _pkg1()])
    assert not catalog.conflicts


def test_merge_rejects_other_identity():
    with pytest.raises(ValueError):
        _pkg1().merge(Package("pkg2", "1.0", PackageType.PYTHON))


def test_enumeration_is_sorted():
    packages = [
        Package("zlib", "1.2", PackageType.APK),
        Package("requests", "2.31.0", PackageType.PYTHON),
        Package("busybox", "1.36", PackageType.APK),
        Package("left-pad", "1.3.0", PackageType.NPM),
        Package("requests", "2.30.0", PackageType.PYTHON),
    ]
    forward = Catalog(packages)
    backward = Catalog(reversed(packages))
    expected = [
        ("apk", "busybox"),
        ("apk", "zlib"),
        ("npm", "left-pad"),
        ("python", "requests"),
        ("python", "requests"),
    ]
    assert [(p.type.value, p.name) for p in forward] == expected
    assert [p.id for p in forward] == [p.id for p in backward]
    assert [p.version for p in forward.sorted(PackageType.PYTHON)] == ["2.30.0", "2.31.0"]
    assert [p.name for p in forward.enumerate(PackageType.NPM, PackageType.APK)] == [
        "busybox",
        "zlib",
        "left-pad",
    ]


def test_lookup():
    catalog = Catalog([_pkg1()])
    package_id = _pkg1().id
    assert package_id in catalog
    assert catalog.package(package_id).name == "pkg1"
    assert catalog.package("nope") is None
    assert catalog.ids() == {package_id}


def test_concurrent_adds():
    catalog = Catalog()

    def worker(index):
        for i in range(50):
            catalog.add(_pkg1(path=f"/worker{index}/{i}"))

    threads = [threading.Thread(target=worker, args=(n,)) for n in range(8)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()
    (stored,) = list(catalog)
    assert len(stored.locations) == 8 * 50
