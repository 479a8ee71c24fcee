# Copyright 2023 Lawrence Livermore National Security, LLC
# See the top-level LICENSE file for details.
#
# SPDX-License-Identifier: MIT
import pytest

from pkgcatalog import licenses
from pkgcatalog.distro import Distro
from pkgcatalog.pkg import (
    ApkMetadata,
    Package,
    PackageType,
    cpes,
    package_type_from_purl,
    package_url,
)


def test_package_url():
    assert package_url(Package("requests", "2.31.0", PackageType.PYTHON)) == "pkg:pypi/requests@2.31.0"
    assert package_url(Package("@babel/core", "7.23.0", "npm")) == "pkg:npm/%40babel/core@7.23.0"
    assert package_url(Package("thing", "1", PackageType.UNKNOWN)) == "pkg:generic/thing@1"


def test_package_url_with_distro():
    musl = Package(
        "musl",
        "1.2.4-r2",
        PackageType.APK,
        metadata=ApkMetadata(package="musl", version="1.2.4-r2", architecture="x86_64"),
    )
    assert (
        package_url(musl, Distro(name="alpine", version="3.18.4"))
        == "pkg:apk/alpine/musl@1.2.4-r2?arch=x86_64&distro=alpine-3.18.4"
    )
    assert package_url(musl) == "pkg:apk/musl@1.2.4-r2?arch=x86_64"


@pytest.mark.parametrize(
    "purl,expected",
    [
        ("pkg:pypi/six@1.16.0", PackageType.PYTHON),
        ("pkg:alpine/musl@1.2.4", PackageType.APK),
        ("pkg:deb/debian/zlib1g@1.2.13", PackageType.DEB),
        ("pkg:maven/org.example/lib@1.0", PackageType.UNKNOWN),
        ("not a purl", PackageType.UNKNOWN),
    ],
)
def test_package_type_from_purl(purl, expected):
    assert package_type_from_purl(purl) == expected


def test_cpes():
    assert cpes(Package("six", "1.16.0", PackageType.PYTHON)) == [
        "cpe:2.3:a:python-six:six:1.16.0:*:*:*:*:*:*:*",
        "cpe:2.3:a:six:six:1.16.0:*:*:*:*:*:*:*",
    ]
    assert cpes(Package("Open SSL", "", PackageType.DEB)) == [
        "cpe:2.3:a:open_ssl:open_ssl:*:*:*:*:*:*:*:*"
    ]
    assert cpes(Package("", "1", PackageType.DEB)) == []


@pytest.mark.parametrize(
    "value,expected",
    [
        ("MIT", "MIT"),
        ("MIT License", "MIT"),
        ("Apache Software License", "Apache-2.0"),
        ("none", "NONE"),
        ("UNKNOWN", None),
        ("", None),
        ("not a license at all", None),
    ],
)
def test_normalize(value, expected):
    assert licenses.normalize(value) == expected


def test_expression():
    assert licenses.expression([]) is None
    assert licenses.expression(["MIT"]) == "MIT"
    assert licenses.expression(["MIT", "GPL-2.0-only", "MIT License"]) == "GPL-2.0-only AND MIT"
    assert licenses.expression(["MIT OR Apache-2.0", "Zlib"]) == "(MIT OR Apache-2.0) AND Zlib"
    assert licenses.expression(["NONE"]) is None


def test_split_expression():
    assert licenses.split_expression("NOASSERTION") == []
    assert licenses.split_expression("NONE") == ["NONE"]
    assert licenses.split_expression("GPL-2.0-only AND MIT") == ["GPL-2.0-only", "MIT"]
    assert licenses.split_expression("(MIT OR Apache-2.0) AND Zlib") == ["MIT OR Apache-2.0", "Zlib"]
    assert licenses.split_expression("MIT OR Apache-2.0") == ["MIT OR Apache-2.0"]
    assert licenses.split_expression("MIT AND (BSD-3-Clause AND Zlib)") == ["MIT", "BSD-3-Clause", "Zlib"]
    assert licenses.split_expression("(MIT  OR Apache-2.0)   AND  Zlib") == ["MIT OR Apache-2.0", "Zlib"]
    assert licenses.split_expression("(MIT OR (Apache-2.0 AND Zlib))") == ["MIT OR (Apache-2.0 AND Zlib)"]
