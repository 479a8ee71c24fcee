# Copyright 2023 Lawrence Livermore National Security, LLC
# See the top-level LICENSE file for details.
#
# SPDX-License-Identifier: MIT
from __future__ import annotations

import os
import posixpath
from abc import ABC, abstractmethod
from collections import deque
from fnmatch import fnmatchcase
from typing import IO, Callable, Dict, Iterable, Iterator, List, Optional

from loguru import logger

from pkgcatalog.utils.paths import clean_path

from ._image import FileNode, FileType, Image, Layer
from ._location import Location, LocationSet

MAX_LINK_DEPTH = 40

Lookup = Callable[[str], Optional[FileNode]]


def resolve_path(lookup: Lookup, path: str) -> Optional[str]:
    """Resolve every symlink along `path`, returning the real path (which may not exist).

    Absolute link targets are interpreted relative to the root of the view being
    resolved, never relative to the host. Returns None for symlink cycles.
    """
    queue = deque(clean_path(path).strip("/").split("/"))
    resolved = "/"
    hops = 0
    while queue:
        part = queue.popleft()
        if part in ("", "."):
            continue
        if part == "..":
            resolved = posixpath.dirname(resolved)
            continue
        candidate = posixpath.join(resolved, part)
        node = lookup(candidate)
        if node is not None and node.type == FileType.SYMLINK:
            hops += 1
            if hops > MAX_LINK_DEPTH:
                logger.debug(f"too many levels of symbolic links resolving {path}")
                return None
            target = node.link_target or ""
            if target.startswith("/"):
                resolved = "/"
            queue.extendleft(reversed(target.split("/")))
            continue
        resolved = candidate
    return resolved


class FileResolver(ABC):
    """Read-only file access over a source, safe for concurrent use by analyzers."""

    @abstractmethod
    def files_by_path(self, *paths: str) -> List[Location]:
        """Return locations for the given paths, following symlinks."""

    @abstractmethod
    def files_by_glob(self, *patterns: str) -> List[Location]:
        """Return locations for all files matching any of the glob patterns."""

    @abstractmethod
    def relative_file_path(self, location: Location, path: str) -> Optional[Location]:
        """Find `path` in the same view (and layer context) that `location` came from."""

    @abstractmethod
    def file_contents_by_location(self, location: Location) -> IO[bytes]:
        """Open the content of the file at `location` for binary reading."""

    @abstractmethod
    def all_locations(self) -> Iterator[Location]:
        """Iterate over every regular file visible through this resolver."""

    def has_path(self, path: str) -> bool:
        return bool(self.files_by_path(path))

    def read_text(self, location: Location, encoding: str = "utf-8") -> str:
        with self.file_contents_by_location(location) as f:
            return f.read().decode(encoding, errors="replace")


def _locate(lookup: Lookup, requested: str, layer_id: Optional[str] = None) -> Optional[Location]:
    real = resolve_path(lookup, requested)
    if real is None:
        return None
    node = lookup(real)
    if node is None or node.type != FileType.REGULAR:
        return None
    return Location(
        real_path=real,
        virtual_path=requested if requested != real else None,
        layer_id=layer_id if layer_id is not None else node.layer_id,
    )


def _glob(paths: Iterable[str], patterns: Iterable[str]) -> Iterator[str]:
    patterns = list(patterns)
    for path in paths:
        if any(fnmatchcase(path, pattern) for pattern in patterns):
            yield path


class DirectoryResolver(FileResolver):
    """Resolver over a directory tree; paths are reported relative to the root."""

    def __init__(self, root: str) -> None:
        self.root = os.path.abspath(root)
        self._index: Dict[str, FileNode] = {}
        self._index_tree()

    def _index_tree(self) -> None:
        for cdir, dirs, files in os.walk(self.root):
            for name in dirs + files:
                full_path = os.path.join(cdir, name)
                path = clean_path(os.path.relpath(full_path, self.root))
                if os.path.islink(full_path):
                    try:
                        target = os.readlink(full_path)
                    except OSError as e:
                        logger.warning(f"unable to read symlink {full_path}: {e}")
                        continue
                    node = FileNode(path, FileType.SYMLINK, link_target=target.replace("\\", "/"))
                elif os.path.isdir(full_path):
                    node = FileNode(path, FileType.DIRECTORY)
                elif os.path.isfile(full_path):
                    node = FileNode(path, FileType.REGULAR, size=os.path.getsize(full_path))
                else:
                    node = FileNode(path, FileType.OTHER)
                self._index[path] = node
        logger.debug(f"indexed {len(self._index)} entries under {self.root}")

    def _real_file(self, path: str) -> str:
        return os.path.join(self.root, clean_path(path).lstrip("/"))

    def files_by_path(self, *paths: str) -> List[Location]:
        found = LocationSet()
        for path in paths:
            location = _locate(self._index.get, clean_path(path))
            if location is not None:
                found.add(location)
        return list(found)

    def files_by_glob(self, *patterns: str) -> List[Location]:
        found = LocationSet()
        for path in _glob(sorted(self._index), patterns):
            location = _locate(self._index.get, path)
            if location is not None:
                found.add(location)
        return list(found)

    def relative_file_path(self, location: Location, path: str) -> Optional[Location]:
        return _locate(self._index.get, clean_path(path))

    def file_contents_by_location(self, location: Location) -> IO[bytes]:
        # pylint: disable=consider-using-with
        return open(self._real_file(location.real_path), "rb")

    def all_locations(self) -> Iterator[Location]:
        for path in sorted(self._index):
            if self._index[path].type == FileType.REGULAR:
                yield Location(real_path=path)


class ImageSquashResolver(FileResolver):
    """Resolver over the merged view of all image layers, as a running container sees it."""

    def __init__(self, img: Image) -> None:
        self._image = img
        self._tree = img.squashed

    def files_by_path(self, *paths: str) -> List[Location]:
        found = LocationSet()
        for path in paths:
            location = _locate(self._tree.get, clean_path(path))
            if location is not None:
                found.add(location)
        return list(found)

    def files_by_glob(self, *patterns: str) -> List[Location]:
        found = LocationSet()
        for path in _glob(sorted(self._tree), patterns):
            location = _locate(self._tree.get, path)
            if location is not None:
                found.add(location)
        return list(found)

    def relative_file_path(self, location: Location, path: str) -> Optional[Location]:
        return _locate(self._tree.get, clean_path(path))

    def file_contents_by_location(self, location: Location) -> IO[bytes]:
        return _open_layer_file(self._image, location)

    def all_locations(self) -> Iterator[Location]:
        for path in sorted(self._tree):
            node = self._tree[path]
            if node.type == FileType.REGULAR:
                yield Location(real_path=path, layer_id=node.layer_id)


class AllLayersResolver(FileResolver):
    """Resolver exposing every layer: a path present in several layers yields one
    location per layer that introduced (or replaced) the file."""

    def __init__(self, img: Image) -> None:
        self._image = img

    def _locate_in_layer(self, layer: Layer, requested: str) -> Optional[Location]:
        location = _locate(layer.squashed.get, requested)
        if location is None:
            return None
        node = layer.files.get(location.real_path)
        if node is not None and node.type == FileType.REGULAR:
            return Location(location.real_path, location.virtual_path, layer.digest)
        # a link added by this layer that points at a file from a lower layer
        link = layer.files.get(requested)
        if link is not None and link.type == FileType.SYMLINK:
            return location
        return None

    def files_by_path(self, *paths: str) -> List[Location]:
        found = LocationSet()
        for path in paths:
            requested = clean_path(path)
            for layer in self._image.layers:
                location = self._locate_in_layer(layer, requested)
                if location is not None:
                    found.add(location)
        return list(found)

    def files_by_glob(self, *patterns: str) -> List[Location]:
        found = LocationSet()
        for layer in self._image.layers:
            for path in _glob(sorted(layer.files), patterns):
                location = self._locate_in_layer(layer, path)
                if location is not None:
                    found.add(location)
        return list(found)

    def relative_file_path(self, location: Location, path: str) -> Optional[Location]:
        layer = self._image.layer(location.layer_id)
        tree = layer.squashed if layer is not None else self._image.squashed
        return _locate(tree.get, clean_path(path))

    def file_contents_by_location(self, location: Location) -> IO[bytes]:
        return _open_layer_file(self._image, location)

    def all_locations(self) -> Iterator[Location]:
        for layer in self._image.layers:
            for path in sorted(layer.files):
                if layer.files[path].type == FileType.REGULAR:
                    yield Location(real_path=path, layer_id=layer.digest)


def _open_layer_file(img: Image, location: Location) -> IO[bytes]:
    layer = img.layer(location.layer_id)
    if layer is None:
        raise FileNotFoundError(f"no layer {location.layer_id!r} for {location.real_path}")
    # pylint: disable=consider-using-with
    return open(layer.content_path(location.real_path), "rb")
