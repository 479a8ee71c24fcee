# Copyright 2023 Lawrence Livermore National Security, LLC
# See the top-level LICENSE file for details.
#
# SPDX-License-Identifier: MIT
import hashlib
import io
import json
import os
import tarfile
from datetime import datetime, timezone
from pathlib import Path

import pytest

from pkgcatalog.configmanager import ConfigManager
from pkgcatalog.distro import Distro
from pkgcatalog.document import Descriptor, Document
from pkgcatalog.pkg import (
    Catalog,
    Digest,
    DpkgMetadata,
    FileRecord,
    Package,
    PackageType,
    PythonPackageMetadata,
)
from pkgcatalog.plugin.manager import get_plugin_manager
from pkgcatalog.relationships import build_relationships
from pkgcatalog.source import Location, Scheme, SourceMetadata


def _add_entry(tar: tarfile.TarFile, name: str, content) -> None:
    info = tarfile.TarInfo(name.lstrip("/"))
    if content is None:
        info.type = tarfile.DIRTYPE
        info.mode = 0o755
        tar.addfile(info)
    elif isinstance(content, tuple) and content[0] == "symlink":
        info.type = tarfile.SYMTYPE
        info.linkname = content[1]
        tar.addfile(info)
    else:
        data = content.encode() if isinstance(content, str) else content
        info.size = len(data)
        info.mode = 0o644
        tar.addfile(info, io.BytesIO(data))


def _tar_bytes(entries) -> bytes:
    buf = io.BytesIO()
    with tarfile.open(fileobj=buf, mode="w") as tar:
        for name, content in entries.items():
            _add_entry(tar, name, content)
    return buf.getvalue()


@pytest.fixture(name="docker_archive")
def fixture_docker_archive(tmp_path):
    """Factory writing a `docker save` style archive from a list of layers.

    Each layer maps paths to content: bytes or str for a regular file, None for a
    directory and ("symlink", target) for a symbolic link. Whiteouts are written as
    ordinary `.wh.` files, exactly as docker stores them.
    """

    def make(layers, name="image.tar", tag="example/image:latest") -> str:
        blobs = [_tar_bytes(layer) for layer in layers]
        config = {
            "architecture": "amd64",
            "os": "linux",
            "rootfs": {
                "type": "layers",
                "diff_ids": ["sha256:" + hashlib.sha256(b).hexdigest() for b in blobs],
            },
        }
        config_bytes = json.dumps(config).encode()
        config_name = hashlib.sha256(config_bytes).hexdigest() + ".json"
        layer_names = [f"layer{i}/layer.tar" for i in range(len(blobs))]
        manifest = [{"Config": config_name, "RepoTags": [tag], "Layers": layer_names}]

        entries = {config_name: config_bytes, "manifest.json": json.dumps(manifest)}
        entries.update(zip(layer_names, blobs))
        archive = os.path.join(tmp_path, name)
        with open(archive, "wb") as f:
            f.write(_tar_bytes(entries))
        return archive

    return make


@pytest.fixture(name="make_tree")
def fixture_make_tree(tmp_path):
    """Factory creating a directory tree below tmp_path/<name>; same content layout as docker_archive."""

    def make(files, name="root") -> Path:
        root = Path(tmp_path, name)
        root.mkdir(parents=True, exist_ok=True)
        for path, content in files.items():
            dest = Path(root, path.lstrip("/"))
            dest.parent.mkdir(parents=True, exist_ok=True)
            if content is None:
                dest.mkdir(parents=True, exist_ok=True)
            elif isinstance(content, tuple) and content[0] == "symlink":
                os.symlink(content[1], dest)
            elif isinstance(content, bytes):
                dest.write_bytes(content)
            else:
                dest.write_text(content)
        return root

    return make


@pytest.fixture(autouse=True)
def fixture_isolated_config(tmp_path, monkeypatch):
    """Point the configuration file at an empty temporary location for every test."""
    monkeypatch.setenv("XDG_CONFIG_HOME", str(Path(tmp_path, "xdg-config")))
    ConfigManager.delete_instance("pkgcatalog")
    yield
    ConfigManager.delete_instance("pkgcatalog")


SIX_METADATA = "/usr/lib/python3/dist-packages/six-1.16.0.dist-info/METADATA"


@pytest.fixture(name="sample_document")
def fixture_sample_document():
    """A small directory document with one package of each kind and an ownership edge."""
    catalog = Catalog(
        [
            Package(
                "six",
                "1.16.0",
                PackageType.PYTHON,
                found_by="python-package-cataloger",
                locations=[Location(SIX_METADATA)],
                licenses=["MIT"],
                language="python",
                metadata=PythonPackageMetadata(
                    name="six",
                    version="1.16.0",
                    license="MIT",
                    site_packages_root_path="/usr/lib/python3/dist-packages",
                    files=[FileRecord("/usr/lib/python3/dist-packages/six.py", Digest("sha256", "abc"), 34549)],
                ),
            ),
            Package(
                "python3-six",
                "1.16.0-4",
                PackageType.DEB,
                found_by="dpkg-db-cataloger",
                locations=[Location("/var/lib/dpkg/status")],
                licenses=["MIT", "GPL-2.0-only"],
                metadata=DpkgMetadata(
                    package="python3-six",
                    version="1.16.0-4",
                    architecture="all",
                    files=[FileRecord(SIX_METADATA)],
                ),
            ),
            Package(
                "left-pad",
                "1.3.0",
                PackageType.NPM,
                found_by="javascript-package-cataloger",
                locations=[Location("/app/node_modules/left-pad/package.json")],
                language="javascript",
            ),
            Package(
                "@types/node",
                "20.8.0",
                PackageType.NPM,
                found_by="javascript-package-cataloger",
                locations=[Location("/app/node_modules/@types/node/package.json")],
                licenses=["MIT"],
            ),
            Package(
                "alpine-baselayout-data",
                "3.4.3-r1",
                PackageType.APK,
                found_by="apkdb-cataloger",
                locations=[Location("/lib/apk/db/installed", layer_id="sha256:1234")],
                licenses=["NONE"],
            ),
        ]
    )
    source = SourceMetadata(Scheme.DIRECTORY, path="/rootfs")
    return Document.create(
        catalog=catalog,
        source=source,
        distro=Distro(name="debian", version="12"),
        descriptor=Descriptor(name="pkgcatalog", version="0.4.0"),
        relationships=build_relationships(get_plugin_manager(), catalog, source),
        timestamp=datetime(2024, 3, 1, 12, 30, 0, tzinfo=timezone.utc),
    )
