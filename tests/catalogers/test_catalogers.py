# Copyright 2023 Lawrence Livermore National Security, LLC
# See the top-level LICENSE file for details.
#
# SPDX-License-Identifier: MIT
import threading

import pytest

import pkgcatalog.plugin
from pkgcatalog.catalogers import apk, catalog_source, dpkg, npm, python_package, run_catalogers
from pkgcatalog.configmanager import ConfigManager
from pkgcatalog.distro import Distro
from pkgcatalog.errors import OperationCancelled
from pkgcatalog.pkg import MetadataType, PackageType
from pkgcatalog.plugin.manager import get_plugin_manager
from pkgcatalog.source import DirectoryResolver, new_source


@pytest.fixture(name="resolver")
def fixture_resolver(rootfs):
    return DirectoryResolver(str(rootfs))


def _by_name(packages):
    return {p.name: p for p in packages}


def test_python_packages(resolver):
    packages = _by_name(python_package.catalog_packages(resolver, threading.Event()))
    assert set(packages) == {"six", "legacy"}

    six = packages["six"]
    assert six.version == "1.16.0"
    assert six.type == PackageType.PYTHON
    assert six.language == "python"
    assert six.licenses == ["MIT"]
    assert six.metadata_type == MetadataType.PYTHON_PACKAGE
    assert six.metadata.author == "Benjamin Peterson"
    assert six.metadata.site_packages_root_path == "/usr/lib/python3.11/site-packages"
    assert six.metadata.top_level_packages == ["six"]
    record = {f.path: f for f in six.metadata.files}
    six_py = record["/usr/lib/python3.11/site-packages/six.py"]
    assert six_py.digest.algorithm == "sha256"
    assert six_py.size == 34549
    assert record["/usr/lib/python3.11/site-packages/six-1.16.0.dist-info/METADATA"].digest is None
    assert sorted(six.locations.paths()) == [
        "/usr/lib/python3.11/site-packages/six-1.16.0.dist-info/METADATA",
        "/usr/lib/python3.11/site-packages/six-1.16.0.dist-info/RECORD",
        "/usr/lib/python3.11/site-packages/six-1.16.0.dist-info/top_level.txt",
    ]

    assert packages["legacy"].licenses == ["BSD License"]


def test_dpkg_packages(resolver):
    (zlib,) = dpkg.catalog_packages(resolver, threading.Event())
    assert zlib.name == "zlib1g"
    assert zlib.version == "1:1.2.13.dfsg-1"
    assert zlib.type == PackageType.DEB
    assert zlib.licenses == ["Zlib"]
    assert zlib.metadata.source == "zlib"
    assert zlib.metadata.source_version == "1:1.2.13.dfsg-1"
    assert zlib.metadata.architecture == "amd64"
    assert zlib.metadata.installed_size == 164
    (libz,) = zlib.metadata.files
    assert libz.path == "/usr/lib/x86_64-linux-gnu/libz.so.1"
    assert libz.digest.value == "d41d8cd98f00b204e9800998ecf8427e"
    assert "/var/lib/dpkg/info/zlib1g:amd64.list" in zlib.locations.paths()
    assert "/usr/share/doc/zlib1g/copyright" in zlib.locations.paths()


def test_parse_control_paragraphs():
    (entry,) = dpkg.parse_control_paragraphs("Package: a\nDescription: short\n long\n  more\n")
    assert entry == {"Package": "a", "Description": "short\nlong\nmore"}


def test_apk_packages(resolver):
    packages = _by_name(apk.catalog_packages(resolver, threading.Event()))
    musl = packages["musl"]
    assert musl.version == "1.2.4-r2"
    assert musl.licenses == ["MIT"]
    assert musl.metadata.origin_package == "musl"
    assert musl.metadata.size == 383152
    assert [f.path for f in musl.metadata.files] == [
        "/lib/ld-musl-x86_64.so.1",
        "/lib/libc.musl-x86_64.so.1",
    ]
    assert musl.metadata.files[0].digest.algorithm == "sha1"
    assert musl.metadata.files[1].digest is None
    assert packages["busybox"].metadata.pull_dependencies == ["so:libc.musl-x86_64.so.1"]


def test_npm_packages(resolver):
    packages = _by_name(npm.catalog_packages(resolver, threading.Event()))
    assert set(packages) == {"left-pad", "@types/node"}
    left_pad = packages["left-pad"]
    assert left_pad.licenses == ["WTFPL"]
    assert left_pad.language == "javascript"
    assert left_pad.metadata.author == "azer <azer@roadbeats.com>"
    assert left_pad.metadata.url == "git://github.com/stevemao/left-pad.git"
    assert packages["@types/node"].licenses == ["MIT"]


@pytest.mark.parametrize(
    "path,expected",
    [
        ("/app/node_modules/left-pad/package.json", True),
        ("/app/node_modules/@types/node/package.json", True),
        ("/app/node_modules/left-pad/lib/package.json", False),
        ("/app/package.json", False),
    ],
)
def test_is_installed_package_json(path, expected):
    assert npm.is_installed_package_json(path) == expected


def test_run_catalogers(resolver):
    catalog, failures = run_catalogers(get_plugin_manager(), resolver, parallelism=2)
    assert not failures
    assert sorted((p.type.value, p.name) for p in catalog) == [
        ("apk", "busybox"),
        ("apk", "musl"),
        ("deb", "zlib1g"),
        ("npm", "@types/node"),
        ("npm", "left-pad"),
        ("python", "legacy"),
        ("python", "six"),
    ]


def test_run_catalogers_is_deterministic(resolver):
    first, _ = run_catalogers(get_plugin_manager(), resolver, parallelism=4)
    second, _ = run_catalogers(get_plugin_manager(), resolver, parallelism=1)
    assert [(p.id, p.found_by) for p in first] == [(p.id, p.found_by) for p in second]


class ExplodingCataloger:
    @pkgcatalog.plugin.hookimpl
    def catalog_packages(self, resolver):
        raise RuntimeError("corrupt database")


class ShadowCataloger:
    """Reports the python packages again, with different licenses."""

    @pkgcatalog.plugin.hookimpl
    def short_name(self):
        return "shadow-cataloger"

    @pkgcatalog.plugin.hookimpl
    def catalog_packages(self, resolver, cancel):
        packages = python_package.catalog_packages(resolver, cancel)
        for package in packages:
            package.found_by = "shadow-cataloger"
            package.licenses = ["Apache-2.0"]
        return packages


def test_failing_analyzer_is_isolated(resolver):
    pm = get_plugin_manager()
    pm.register(ExplodingCataloger(), name="exploding")
    catalog, failures = run_catalogers(pm, resolver)
    assert len(catalog) == 7
    (failure,) = failures
    assert failure.analyzer == "exploding"
    assert isinstance(failure.cause, RuntimeError)


def test_duplicate_identity_first_registered_wins(resolver):
    pm = get_plugin_manager()
    pm.register(ShadowCataloger(), name="shadow")
    catalog, failures = run_catalogers(pm, resolver)
    assert not failures
    assert len(catalog) == 7
    six = [p for p in catalog if p.name == "six"][0]
    assert six.found_by == "python-package-cataloger"
    assert six.licenses == ["MIT"]
    assert {c.package_id for c in catalog.conflicts} == {
        p.id for p in catalog.sorted(PackageType.PYTHON)
    }


def test_disabled_analyzer(resolver):
    ConfigManager().set("core", "disable_plugins", ["pkgcatalog.catalogers.npm"])
    catalog, _ = run_catalogers(get_plugin_manager(), resolver)
    assert not catalog.sorted(PackageType.NPM)


def test_cancel_before_start(resolver):
    cancel = threading.Event()
    cancel.set()
    with pytest.raises(OperationCancelled):
        run_catalogers(get_plugin_manager(), resolver, cancel=cancel)


class CancellingCataloger:
    @pkgcatalog.plugin.hookimpl
    def catalog_packages(self, cancel):
        cancel.set()
        return []


def test_cancel_while_running(resolver):
    pm = get_plugin_manager()
    pm.register(CancellingCataloger(), name="cancelling")
    with pytest.raises(OperationCancelled):
        run_catalogers(pm, resolver, cancel=threading.Event())


def test_catalog_source_identifies_distro(rootfs):
    with new_source(f"dir:{rootfs}") as src:
        result = catalog_source(get_plugin_manager(), src)
    assert result.distro == Distro(name="debian", version="12")
    assert len(result.catalog) == 7
    assert not result.warnings


def test_catalog_image_all_layers(docker_archive):
    base = {"lib/apk/db/installed": "P:musl\nV:1.2.4-r1\nL:MIT\n"}
    upgrade = {"lib/apk/db/installed": "P:musl\nV:1.2.4-r2\nL:MIT\n", "etc/os-release": "ID=alpine\nVERSION_ID=3.18.4\n"}
    archive = docker_archive([base, upgrade])
    pm = get_plugin_manager()
    with new_source(archive) as src:
        squashed = catalog_source(pm, src, "squashed")
        all_layers = catalog_source(pm, src, "all-layers")
    assert [p.version for p in squashed.catalog] == ["1.2.4-r2"]
    assert [p.version for p in all_layers.catalog] == ["1.2.4-r1", "1.2.4-r2"]
    # the distro always comes from the final filesystem
    assert all_layers.distro == Distro(name="alpine", version="3.18.4")
