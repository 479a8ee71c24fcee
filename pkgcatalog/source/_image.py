# Copyright 2023 Lawrence Livermore National Security, LLC
# See the top-level LICENSE file for details.
#
# SPDX-License-Identifier: MIT
from __future__ import annotations

import hashlib
import json
import os
import posixpath
import shutil
import tarfile
import threading
from collections import defaultdict
from dataclasses import dataclass, field
from enum import Enum
from typing import IO, Any, Dict, List, Optional, Set

from loguru import logger

from pkgcatalog.errors import OperationCancelled
from pkgcatalog.utils.paths import clean_path

WHITEOUT_PREFIX = ".wh."
OPAQUE_WHITEOUT = ".wh..wh..opq"

DOCKER_MANIFEST_MEDIA_TYPE = "application/vnd.docker.distribution.manifest.v2+json"
DOCKER_LAYER_MEDIA_TYPE = "application/vnd.docker.image.rootfs.diff.tar"


class FileType(str, Enum):
    REGULAR = "file"
    DIRECTORY = "dir"
    SYMLINK = "symlink"
    OTHER = "other"


@dataclass(frozen=True)
class FileNode:
    path: str
    type: FileType
    layer_id: Optional[str] = None
    link_target: Optional[str] = None
    size: int = 0
    mode: int = 0


# pylint: disable=too-many-instance-attributes
@dataclass
class Layer:
    index: int
    digest: str
    media_type: str
    tar_path: str
    content_root: str
    size: int = 0
    files: Dict[str, FileNode] = field(default_factory=dict)
    whiteouts: Set[str] = field(default_factory=set)
    opaque_dirs: Set[str] = field(default_factory=set)
    # the filesystem as seen after applying this layer on top of all lower layers
    squashed: Dict[str, FileNode] = field(default_factory=dict, repr=False)

    def content_path(self, path: str) -> str:
        return os.path.join(self.content_root, clean_path(path).lstrip("/"))


def _member_name(name: str) -> str:
    while name.startswith("./"):
        name = name[2:]
    return name


def _check_cancel(cancel: Optional[threading.Event]) -> None:
    if cancel is not None and cancel.is_set():
        raise OperationCancelled("image materialization cancelled")


def _children_index(tree: Dict[str, FileNode]) -> Dict[str, Set[str]]:
    """Map every directory path to its direct children, including implied parent dirs."""
    children: Dict[str, Set[str]] = defaultdict(set)
    for path in tree:
        child = path
        while child != "/":
            parent = posixpath.dirname(child)
            if child in children[parent]:
                break
            children[parent].add(child)
            child = parent
    return children


def _remove_tree(
    tree: Dict[str, FileNode], children: Dict[str, Set[str]], path: str, keep_root: bool = False
) -> None:
    pending = [path]
    while pending:
        current = pending.pop()
        pending.extend(children.pop(current, ()))
        if keep_root and current == path:
            continue
        tree.pop(current, None)
    if not keep_root and path != "/":
        siblings = children.get(posixpath.dirname(path))
        if siblings is not None:
            siblings.discard(path)


def squash(lower: Dict[str, FileNode], layer: Layer) -> Dict[str, FileNode]:
    """Apply a layer on top of the given lower filesystem view and return the new view.

    Opaque directories hide everything the lower layers put underneath them, whiteouts
    remove a path and its descendants, and a non-directory entry replaces whatever tree
    existed at its path.
    """
    tree = dict(lower)
    children = _children_index(tree)
    for opaque_dir in layer.opaque_dirs:
        _remove_tree(tree, children, opaque_dir, keep_root=True)
    for deleted in layer.whiteouts:
        _remove_tree(tree, children, deleted)
    for path, node in sorted(layer.files.items()):
        if node.type != FileType.DIRECTORY and children.get(path):
            _remove_tree(tree, children, path)
        tree[path] = node
    return tree


# pylint: disable=too-many-instance-attributes
class Image:
    """A container image read from a `docker save` archive.

    Regular file contents of every layer are written below `workdir` (one directory per
    layer) so that resolvers can serve reads without touching the archive again. The
    owner of `workdir` is responsible for removing it.
    """

    def __init__(self, user_input: str, workdir: str) -> None:
        self.user_input = user_input
        self.workdir = workdir
        self.id = ""
        self.manifest_digest = ""
        self.media_type = DOCKER_MANIFEST_MEDIA_TYPE
        self.tags: List[str] = []
        self.repo_digests: List[str] = []
        self.architecture = ""
        self.os = ""
        self.config: Dict[str, Any] = {}
        self.layers: List[Layer] = []

    @property
    def size(self) -> int:
        return sum(layer.size for layer in self.layers)

    @property
    def squashed(self) -> Dict[str, FileNode]:
        if not self.layers:
            return {}
        return self.layers[-1].squashed

    def layer(self, digest: Optional[str]) -> Optional[Layer]:
        for layer in self.layers:
            if layer.digest == digest:
                return layer
        return None

    @classmethod
    def from_docker_archive(
        cls,
        archive: str,
        user_input: str,
        workdir: str,
        cancel: Optional[threading.Event] = None,
    ) -> Image:
        """Read the first image described by the manifest of a `docker save` tarball."""
        img = cls(user_input, workdir)
        with tarfile.open(archive) as tarball:
            members = {_member_name(m.name): m for m in tarball.getmembers()}
            manifest = json.load(_extract(tarball, members, "manifest.json"))
            if not isinstance(manifest, list) or not manifest:
                raise ValueError("manifest.json does not describe any images")
            entry = manifest[0]
            config_bytes = _extract(tarball, members, entry["Config"]).read()
            img.config = json.loads(config_bytes)
            img.id = "sha256:" + hashlib.sha256(config_bytes).hexdigest()
            img.manifest_digest = (
                "sha256:"
                + hashlib.sha256(
                    json.dumps(entry, sort_keys=True, separators=(",", ":")).encode()
                ).hexdigest()
            )
            img.tags = list(entry.get("RepoTags") or [])
            img.repo_digests = list(entry.get("RepoDigests") or [])
            img.architecture = img.config.get("architecture", "")
            img.os = img.config.get("os", "")
            diff_ids = img.config.get("rootfs", {}).get("diff_ids", [])

            lower: Dict[str, FileNode] = {}
            for index, layer_path in enumerate(entry.get("Layers", [])):
                _check_cancel(cancel)
                digest = diff_ids[index] if index < len(diff_ids) else None
                layer = img._read_layer(
                    _extract(tarball, members, layer_path), index, layer_path, digest, cancel
                )
                layer.squashed = squash(lower, layer)
                lower = layer.squashed
                img.layers.append(layer)
                logger.debug(
                    f"read layer {index} ({layer.digest}): {len(layer.files)} entries, "
                    f"{len(layer.whiteouts)} whiteouts"
                )
        logger.info(f"loaded image {img.id} with {len(img.layers)} layers from {archive}")
        return img

    def _read_layer(
        self,
        layer_file: IO[bytes],
        index: int,
        tar_path: str,
        digest: Optional[str],
        cancel: Optional[threading.Event],
    ) -> Layer:
        if digest is None:
            sha = hashlib.sha256()
            for chunk in iter(lambda: layer_file.read(65536), b""):
                sha.update(chunk)
            digest = "sha256:" + sha.hexdigest()
            layer_file.seek(0)

        content_root = os.path.join(self.workdir, f"layer-{index}")
        os.makedirs(content_root, exist_ok=True)
        layer = Layer(
            index=index,
            digest=digest,
            media_type=DOCKER_LAYER_MEDIA_TYPE,
            tar_path=tar_path,
            content_root=content_root,
        )

        with tarfile.open(fileobj=layer_file, mode="r:*") as layer_tar:
            for member in layer_tar:
                _check_cancel(cancel)
                path = clean_path(member.name)
                if path == "/":
                    continue
                parent, base = posixpath.split(path)
                if base == OPAQUE_WHITEOUT:
                    layer.opaque_dirs.add(parent)
                    continue
                if base.startswith(WHITEOUT_PREFIX):
                    layer.whiteouts.add(posixpath.join(parent, base[len(WHITEOUT_PREFIX) :]))
                    continue

                if member.isdir():
                    node = FileNode(path, FileType.DIRECTORY, digest, mode=member.mode)
                elif member.issym():
                    node = FileNode(
                        path, FileType.SYMLINK, digest, link_target=member.linkname, mode=member.mode
                    )
                elif member.isfile() or member.islnk():
                    if not self._write_content(layer_tar, member, layer.content_path(path)):
                        continue
                    size = os.path.getsize(layer.content_path(path))
                    node = FileNode(path, FileType.REGULAR, digest, size=size, mode=member.mode)
                    layer.size += size
                else:
                    node = FileNode(path, FileType.OTHER, digest, mode=member.mode)
                layer.files[path] = node
        return layer

    @staticmethod
    def _write_content(layer_tar: tarfile.TarFile, member: tarfile.TarInfo, dest: str) -> bool:
        try:
            src = layer_tar.extractfile(member)
            if src is None:
                return False
            os.makedirs(os.path.dirname(dest), exist_ok=True)
            with src, open(dest, "wb") as dst:
                shutil.copyfileobj(src, dst)
        except (OSError, KeyError, tarfile.TarError) as e:
            logger.warning(f"unable to read {member.name} from layer: {e}")
            return False
        return True


def _extract(tarball: tarfile.TarFile, members: Dict[str, tarfile.TarInfo], name: str) -> IO[bytes]:
    member = members.get(_member_name(name))
    if member is None:
        raise ValueError(f"archive does not contain {name!r}")
    fileobj = tarball.extractfile(member)
    if fileobj is None:
        raise ValueError(f"archive entry {name!r} is not a file")
    return fileobj
