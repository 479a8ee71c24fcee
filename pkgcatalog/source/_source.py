# Copyright 2023 Lawrence Livermore National Security, LLC
# See the top-level LICENSE file for details.
#
# SPDX-License-Identifier: MIT
from __future__ import annotations

import os
import shutil
import tarfile
import tempfile
import threading
from contextlib import ExitStack
from typing import Optional, Union

from loguru import logger

from pkgcatalog.errors import InvalidScope, SourceUnavailable

from ._image import Image
from ._metadata import ImageMetadata, SourceMetadata
from ._resolver import AllLayersResolver, DirectoryResolver, FileResolver, ImageSquashResolver
from ._scheme import ImageSource, Scheme, Scope, detect_scheme, is_docker_archive


class Source:
    """The target being cataloged, plus any resources held on its behalf.

    A Source is a context manager; leaving the context (or calling `close`) releases
    materialized image data exactly once, whether cataloging succeeded or not.
    """

    def __init__(
        self,
        metadata: SourceMetadata,
        image: Optional[Image] = None,
        resources: Optional[ExitStack] = None,
    ) -> None:
        self.metadata = metadata
        self.image = image
        self._resources = resources if resources is not None else ExitStack()
        self._closed = False
        self._lock = threading.Lock()

    @classmethod
    def from_directory(cls, path: str) -> Source:
        return cls(SourceMetadata(Scheme.DIRECTORY, path=path))

    @classmethod
    def from_image(cls, img: Image, resources: Optional[ExitStack] = None) -> Source:
        if img is None:
            raise ValueError("no image given")
        metadata = SourceMetadata(Scheme.IMAGE, image_metadata=ImageMetadata.from_image(img))
        return cls(metadata, img, resources)

    @property
    def id(self) -> str:
        return self.metadata.id

    @property
    def scheme(self) -> Scheme:
        return self.metadata.scheme

    def file_resolver(self, scope: Union[Scope, str] = Scope.SQUASHED) -> FileResolver:
        """Create a resolver for this source. Directory sources ignore the scope."""
        if self.scheme == Scheme.DIRECTORY:
            return DirectoryResolver(self.metadata.path)
        try:
            scope = Scope(scope)
        except ValueError as e:
            raise InvalidScope(scope, self.scheme) from e
        if scope == Scope.SQUASHED:
            return ImageSquashResolver(self.image)
        if scope == Scope.ALL_LAYERS:
            return AllLayersResolver(self.image)
        raise InvalidScope(scope, self.scheme)

    def close(self) -> None:
        with self._lock:
            if self._closed:
                return
            self._closed = True
        logger.debug(f"releasing resources for source {self.metadata.name}")
        self._resources.close()

    @property
    def closed(self) -> bool:
        return self._closed

    def __enter__(self) -> Source:
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()


def new_source(
    user_input: str, pm=None, cancel: Optional[threading.Event] = None
) -> Source:
    """Produce a Source from user input such as `dir:path`, `docker-archive:img.tar` or `alpine:3.18`.

    Any temporary data allocated while materializing an image is released before an
    error propagates; on success it becomes owned by the returned Source.

    Raises:
        SourceUnavailable: If the input cannot be resolved to a directory or an image.
        OperationCancelled: If `cancel` is set while the image is being materialized.
    """
    scheme, location, image_source = detect_scheme(user_input)

    if scheme == Scheme.DIRECTORY:
        if not os.path.isdir(location):
            raise SourceUnavailable(user_input, f"given path is not a directory: {location}")
        return Source.from_directory(location)

    with ExitStack() as stack:
        workdir = tempfile.mkdtemp(prefix="pkgcatalog-")
        stack.callback(shutil.rmtree, workdir, ignore_errors=True)
        try:
            if image_source == ImageSource.DOCKER_DAEMON:
                archive = _fetch_image(pm, location, workdir, cancel)
            else:
                archive = location
                if not is_docker_archive(archive):
                    raise SourceUnavailable(user_input, "not a docker archive")
            img = Image.from_docker_archive(
                archive, user_input, os.path.join(workdir, "layers"), cancel
            )
        except (OSError, ValueError, KeyError, tarfile.TarError) as e:
            raise SourceUnavailable(user_input, f"could not read image: {e}") from e
        return Source.from_image(img, stack.pop_all())


def _fetch_image(pm, reference: str, workdir: str, cancel: Optional[threading.Event]) -> str:
    if pm is None:
        # pylint: disable=import-outside-toplevel
        from pkgcatalog.plugin.manager import get_plugin_manager

        pm = get_plugin_manager()
    archive = pm.hook.fetch_image(reference=reference, destination=workdir, cancel=cancel)
    if not archive:
        raise SourceUnavailable(reference, "no image provider could fetch the image")
    return archive
