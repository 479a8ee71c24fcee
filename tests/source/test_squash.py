# Copyright 2023 Lawrence Livermore National Security, LLC
# See the top-level LICENSE file for details.
#
# SPDX-License-Identifier: MIT
import time

from pkgcatalog.source import FileType
from pkgcatalog.source._image import FileNode, Layer, squash


def _layer(index, files=(), dirs=(), whiteouts=(), opaque_dirs=()):
    digest = f"sha256:{index}"
    nodes = {p: FileNode(p, FileType.REGULAR, digest) for p in files}
    nodes.update({p: FileNode(p, FileType.DIRECTORY, digest) for p in dirs})
    return Layer(
        index=index,
        digest=digest,
        media_type="application/vnd.docker.image.rootfs.diff.tar",
        tar_path=f"{index}/layer.tar",
        content_root=f"/tmp/layer-{index}",
        files=nodes,
        whiteouts=set(whiteouts),
        opaque_dirs=set(opaque_dirs),
    )


BASE = squash(
    {},
    _layer(
        0,
        files=["/etc/hosts", "/opt/app/a.txt", "/opt/app/lib/b.so", "/opt/apple"],
        dirs=["/etc", "/opt", "/opt/app"],
    ),
)


def test_whiteout_removes_descendants():
    tree = squash(BASE, _layer(1, whiteouts=["/opt/app"]))
    assert sorted(tree) == ["/etc", "/etc/hosts", "/opt", "/opt/apple"]


def test_whiteout_of_implied_directory():
    # /opt/app/lib has no entry of its own
    tree = squash(BASE, _layer(1, whiteouts=["/opt/app/lib"]))
    assert "/opt/app/lib/b.so" not in tree
    assert "/opt/app/a.txt" in tree


def test_opaque_directory_keeps_itself():
    tree = squash(BASE, _layer(1, files=["/opt/app/c.txt"], opaque_dirs=["/opt/app"]))
    assert sorted(p for p in tree if p.startswith("/opt/app/")) == ["/opt/app/c.txt"]
    assert tree["/opt/app"].type == FileType.DIRECTORY


def test_file_replaces_directory():
    tree = squash(BASE, _layer(1, files=["/opt/app"]))
    assert tree["/opt/app"].type == FileType.REGULAR
    assert tree["/opt/app"].layer_id == "sha256:1"
    assert not [p for p in tree if p.startswith("/opt/app/")]
    assert "/opt/apple" in tree


def test_file_replaces_file():
    tree = squash(BASE, _layer(1, files=["/opt/app/a.txt"]))
    assert tree["/opt/app/a.txt"].layer_id == "sha256:1"
    assert tree["/opt/app/lib/b.so"].layer_id == "sha256:0"


def test_lower_view_is_not_modified():
    before = dict(BASE)
    squash(BASE, _layer(1, files=["/opt/app"], whiteouts=["/etc"]))
    assert BASE == before


def test_large_layers():
    files = [f"/usr/share/doc/pkg{i // 100}/file{i}" for i in range(20000)]
    start = time.perf_counter()
    lower = squash({}, _layer(0, files=files))
    tree = squash(lower, _layer(1, files=files[::2], whiteouts=["/usr/share/doc/pkg0"]))
    elapsed = time.perf_counter() - start
    # whiteouts only hide lower layers, so the re-added half of pkg0 stays
    assert len(tree) == 20000 - 50
    assert tree[files[200]].layer_id == "sha256:1"
    assert tree[files[201]].layer_id == "sha256:0"
    assert elapsed < 10
