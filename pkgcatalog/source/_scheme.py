# Copyright 2023 Lawrence Livermore National Security, LLC
# See the top-level LICENSE file for details.
#
# SPDX-License-Identifier: MIT
import os
import tarfile
from enum import Enum
from typing import Tuple


class Scheme(str, Enum):
    DIRECTORY = "directory"
    IMAGE = "image"


class ImageSource(str, Enum):
    """Where the image for an image scheme source is materialized from."""

    DOCKER_ARCHIVE = "docker-archive"
    DOCKER_DAEMON = "docker"


class Scope(str, Enum):
    SQUASHED = "squashed"
    ALL_LAYERS = "all-layers"

    @classmethod
    def parse(cls, value: str) -> "Scope":
        """Parse user input into a Scope, accepting a few common spellings."""
        normalized = value.strip().lower().replace("_", "-")
        if normalized in ("all-layers", "alllayers", "all"):
            return cls.ALL_LAYERS
        return cls(normalized)


_IMAGE_PREFIXES = {
    "docker-archive:": ImageSource.DOCKER_ARCHIVE,
    "docker:": ImageSource.DOCKER_DAEMON,
    "image:": ImageSource.DOCKER_DAEMON,
}


def is_docker_archive(filename: str) -> bool:
    """Return True if given file is a tarball with a `docker save` style manifest."""
    try:
        if not tarfile.is_tarfile(filename):
            return False
        with tarfile.open(filename) as tarball:
            return "manifest.json" in tarball.getnames()
    except (OSError, tarfile.TarError):
        return False


def detect_scheme(user_input: str) -> Tuple[Scheme, str, ImageSource]:
    """Determine the scheme of the user input.

    An explicit `dir:` prefix selects a directory, `docker-archive:`, `docker:` and
    `image:` prefixes select an image. Without a prefix the path is checked on disk:
    directories are directory sources and `docker save` tarballs are image sources;
    anything else is treated as an image reference for the docker daemon.

    Returns:
        Tuple[Scheme, str, ImageSource]: the scheme, the location with any prefix
        removed, and the image source (only meaningful for the image scheme).
    """
    if user_input.startswith("dir:"):
        return Scheme.DIRECTORY, user_input[len("dir:") :], ImageSource.DOCKER_ARCHIVE
    for prefix, image_source in _IMAGE_PREFIXES.items():
        if user_input.startswith(prefix):
            return Scheme.IMAGE, user_input[len(prefix) :], image_source

    location = os.path.expanduser(user_input)
    if os.path.isdir(location):
        return Scheme.DIRECTORY, location, ImageSource.DOCKER_ARCHIVE
    if os.path.isfile(location):
        return Scheme.IMAGE, location, ImageSource.DOCKER_ARCHIVE
    return Scheme.IMAGE, user_input, ImageSource.DOCKER_DAEMON
