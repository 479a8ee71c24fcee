# Copyright 2023 Lawrence Livermore National Security, LLC
# See the top-level LICENSE file for details.
#
# SPDX-License-Identifier: MIT
import pathlib
import posixpath
from typing import Union


def normalize_path(*path_parts: Union[str, pathlib.PurePath]) -> str:
    """
    Normalize one or more path parts into a single POSIX-style path string.

    Args:
        *path_parts: One or more path components, strings or PurePath objects.

    Returns:
        str: POSIX-style normalized path (e.g., 'C:/Program Files/App')
    """
    # Replace backslashes in each part before joining
    cleaned_parts = [str(p).replace("\\", "/") for p in path_parts]
    return pathlib.PurePosixPath(*cleaned_parts).as_posix()


def clean_path(path: Union[str, pathlib.PurePath]) -> str:
    """
    Convert a path into the absolute, normalized POSIX form used as a key by file resolvers.

    '..' and '.' segments are collapsed and the result always starts with a single '/'.

    Args:
        path: Path to clean, relative paths are treated as relative to the root.

    Returns:
        str: The cleaned path (e.g., 'usr/lib/../bin' -> '/usr/bin')
    """
    return posixpath.normpath("/" + normalize_path(path).lstrip("/"))


def is_within(path: str, directory: str) -> bool:
    """Return True if the cleaned `path` is `directory` itself or lies underneath it."""
    if directory == "/":
        return True
    return path == directory or path.startswith(directory + "/")
